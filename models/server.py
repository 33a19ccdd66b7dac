"""
Server model for the Emeralds Killfeed PvP Statistics Discord Bot.

A Server is the descriptor the path repair engine works on. It is loaded from the
``game_servers`` collection and carries the two remote directories the parsers read:
the deathlogs directory (CSV kill/death events) and the log directory (Deadside.log).
"""

import copy
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class Server:
    """Game server descriptor

    Path fields are mutated only by the path resolver. A Server instance must not be
    shared between concurrent resolutions, hand each one a ``copy()``.
    """

    def __init__(self, server_id: str, guild_id: str, name: str = "",
                 hostname: Optional[str] = None, sftp_host: Optional[str] = None,
                 sftp_port: int = 22, sftp_username: Optional[str] = None,
                 sftp_password: Optional[str] = None,
                 original_server_id: Optional[str] = None,
                 deathlogs_path: Optional[str] = None, log_path: Optional[str] = None,
                 path_repair_exempt: bool = False):
        self.server_id = str(server_id) if server_id is not None else ""
        self.guild_id = str(guild_id) if guild_id is not None else ""
        self.name = name or ""
        self.hostname = hostname
        self.sftp_host = sftp_host
        self.sftp_port = sftp_port
        self.sftp_username = sftp_username
        self.sftp_password = sftp_password
        self.original_server_id = original_server_id
        self.deathlogs_path = deathlogs_path
        self.log_path = log_path
        self.path_repair_exempt = path_repair_exempt

    def __repr__(self) -> str:
        return f"<Server {self.server_id!r} guild={self.guild_id!r} name={self.name!r}>"

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Server":
        """Build a Server from a ``game_servers`` document

        Accepts the legacy field names the bot has written over time
        (``deathlogs_directory``, ``log_directory``, ``restricted_isolation``).
        """
        port = doc.get("sftp_port") or 22
        try:
            port = int(port)
        except (TypeError, ValueError):
            logger.warning(f"Invalid sftp_port {port!r} for server {doc.get('server_id')}, using 22")
            port = 22

        return cls(
            server_id=doc.get("server_id") or doc.get("_id"),
            guild_id=doc.get("guild_id"),
            name=doc.get("name", ""),
            hostname=doc.get("hostname"),
            sftp_host=doc.get("sftp_host"),
            sftp_port=port,
            sftp_username=doc.get("sftp_username"),
            sftp_password=doc.get("sftp_password"),
            original_server_id=doc.get("original_server_id"),
            deathlogs_path=doc.get("deathlogs_path") or doc.get("deathlogs_directory"),
            log_path=doc.get("log_path") or doc.get("log_directory"),
            path_repair_exempt=bool(doc.get("path_repair_exempt")
                                    or doc.get("restricted_isolation")),
        )

    def get_path(self, category) -> Optional[str]:
        """Get the configured remote directory for a path category"""
        return getattr(self, category.field_name)

    def set_path(self, category, path: Optional[str]) -> None:
        setattr(self, category.field_name, path)

    @property
    def remote_host(self) -> Optional[str]:
        """SFTP host, falling back to the generic hostname"""
        return self.sftp_host or self.hostname

    def copy(self) -> "Server":
        """Independent copy, safe to hand to a concurrent resolution"""
        return copy.deepcopy(self)
