"""
SFTP utilities for the Emeralds Killfeed PvP Statistics Discord Bot.

SFTPManager wraps a single asyncssh connection to a game server host.
SFTPTransport is the transport used by the path repair engine: every call opens a
short-lived connection, is bounded by connect and operation timeouts, and raises
SFTPError on any failure.
"""

import asyncio
import logging
import posixpath
import re
import stat
from typing import List, Optional

import asyncssh

from utils.server_identity import clean_hostname

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_OPERATION_TIMEOUT = 30.0


class SFTPError(Exception):
    """Remote transport failure: connect, auth, timeout or missing path"""


class SFTPManager:
    """Connection to one game server's SFTP service"""

    def __init__(self, hostname: str, port: int = 22, username: Optional[str] = None,
                 password: Optional[str] = None, server_id: Optional[str] = None,
                 connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 operation_timeout: float = DEFAULT_OPERATION_TIMEOUT):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.server_id = server_id
        self.connect_timeout = connect_timeout
        self.operation_timeout = operation_timeout
        self.conn: Optional[asyncssh.SSHClientConnection] = None
        self.client: Optional[asyncssh.SFTPClient] = None
        self.last_error: Optional[str] = None

    async def __aenter__(self) -> "SFTPManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        if self.client is not None:
            return
        if not self.hostname:
            raise SFTPError(f"No SFTP host configured for server {self.server_id}")

        try:
            self.conn = await asyncio.wait_for(
                asyncssh.connect(
                    self.hostname,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    known_hosts=None,
                    connect_timeout=self.connect_timeout,
                ),
                timeout=self.connect_timeout,
            )
            self.client = await asyncio.wait_for(
                self.conn.start_sftp_client(), timeout=self.operation_timeout
            )
            self.last_error = None
            logger.debug(f"Connected to SFTP {self.hostname}:{self.port} for server {self.server_id}")
        except asyncio.TimeoutError as e:
            self.last_error = "Connection timed out"
            await self.disconnect()
            raise SFTPError(f"Timed out connecting to {self.hostname}:{self.port}") from e
        except (asyncssh.Error, OSError) as e:
            self.last_error = str(e)
            await self.disconnect()
            raise SFTPError(f"Failed to connect to {self.hostname}:{self.port}: {e}") from e

    async def disconnect(self) -> None:
        if self.client is not None:
            self.client.exit()
            self.client = None
        if self.conn is not None:
            self.conn.close()
            try:
                await self.conn.wait_closed()
            except (asyncssh.Error, OSError) as e:
                logger.debug(f"Error closing SFTP connection to {self.hostname}: {e}")
            self.conn = None

    async def _call(self, coro, description: str):
        if self.client is None:
            raise SFTPError("Not connected")
        try:
            return await asyncio.wait_for(coro, timeout=self.operation_timeout)
        except asyncio.TimeoutError as e:
            self.last_error = f"Timed out: {description}"
            raise SFTPError(self.last_error) from e
        except (asyncssh.Error, OSError) as e:
            self.last_error = f"{description}: {e}"
            raise SFTPError(self.last_error) from e

    async def list_files(self, path: str, pattern: str = r".*",
                         include_subdirs: bool = True) -> List[str]:
        """List file names in a directory matching a regex

        Map directories (``world_0``, ``world_1`` ...) sit one level below the
        deathlogs directory, so immediate subdirectories are searched too and their
        matches are returned as ``<subdir>/<name>``.

        Raises:
            SFTPError: when the directory cannot be read
        """
        regex = re.compile(pattern, re.IGNORECASE)
        entries = await self._call(self.client.readdir(path), f"list {path}")

        matches: List[str] = []
        subdirs: List[str] = []
        for entry in entries:
            name = entry.filename
            if name in (".", ".."):
                continue
            perms = entry.attrs.permissions
            if perms is not None and stat.S_ISDIR(perms):
                subdirs.append(name)
            elif regex.match(name):
                matches.append(name)

        if include_subdirs:
            for subdir in subdirs:
                sub_path = posixpath.join(path, subdir)
                try:
                    names = await self._call(self.client.listdir(sub_path), f"list {sub_path}")
                except SFTPError as e:
                    logger.debug(f"Skipping unreadable subdirectory {sub_path}: {e}")
                    continue
                matches.extend(f"{subdir}/{name}" for name in names if regex.match(name))

        return matches


class SFTPTransport:
    """Remote transport collaborator for path repair

    Connection details come from the server descriptor; this class never stores
    credentials beyond a single call.
    """

    def __init__(self, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 operation_timeout: float = DEFAULT_OPERATION_TIMEOUT):
        self.connect_timeout = connect_timeout
        self.operation_timeout = operation_timeout

    def _manager_for(self, server) -> SFTPManager:
        return SFTPManager(
            hostname=clean_hostname(server.remote_host),
            port=server.sftp_port,
            username=server.sftp_username,
            password=server.sftp_password,
            server_id=server.server_id,
            connect_timeout=self.connect_timeout,
            operation_timeout=self.operation_timeout,
        )

    async def test_connection(self, server) -> bool:
        """Check that the server's SFTP service accepts our credentials"""
        try:
            async with self._manager_for(server):
                return True
        except SFTPError as e:
            logger.warning(f"SFTP connection test failed for server {server.server_id}: {e}")
            return False

    async def list_artifacts(self, server, path: str, pattern: str) -> List[str]:
        """List files matching ``pattern`` under ``path`` on the server's host

        Raises:
            SFTPError: on any connection or listing failure
        """
        async with self._manager_for(server) as sftp:
            return await sftp.list_files(path, pattern)
