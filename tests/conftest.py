"""Shared fakes for the path repair tests."""
import asyncio
from typing import Dict, List, Optional, Set

import pytest

from models.server import Server
from utils.path_cache import PathCache
from utils.path_candidates import PathCategory
from utils.path_resolver import PathResolver
from utils.path_validator import RemotePathValidator
from utils.repair_stats import RepairStatistics
from utils.sftp import SFTPError


class FakeTransport:
    """Transport that reports artifacts only for a fixed set of paths"""

    def __init__(self, valid_paths: Optional[Set[str]] = None, delay: float = 0.0):
        self.valid_paths = set(valid_paths or ())
        self.delay = delay
        self.calls: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.connection_ok = True

    async def test_connection(self, server) -> bool:
        return self.connection_ok

    async def list_artifacts(self, server, path: str, pattern: str) -> List[str]:
        self.calls.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        if path in self.valid_paths:
            return ["2025.05.01-00.00.00.csv"]
        raise SFTPError(f"No such file: {path}")


class FakeRepository:
    """In-memory server repository keyed by guild"""

    def __init__(self, servers: Optional[List[Server]] = None):
        self.servers: Dict[str, List[Server]] = {}
        self.saved: List[Server] = []
        self.save_error: Optional[Exception] = None
        self.broken_guilds: Set[str] = set()
        for server in servers or ():
            self.add(server)

    def add(self, server: Server) -> None:
        self.servers.setdefault(server.guild_id, []).append(server)

    async def find_guild_ids(self) -> List[str]:
        return list(self.servers)

    async def find_all_by_guild(self, guild_id: str) -> List[Server]:
        if guild_id in self.broken_guilds:
            raise RuntimeError(f"guild {guild_id} unavailable")
        return [server.copy() for server in self.servers.get(guild_id, [])]

    async def find_by_id(self, guild_id: str, server_id: str) -> Optional[Server]:
        for server in self.servers.get(guild_id, []):
            if server.server_id == server_id:
                return server.copy()
        return None

    async def find_by_name(self, guild_id: str, name: str) -> Optional[Server]:
        for server in self.servers.get(guild_id, []):
            if server.name.lower() == name.lower():
                return server.copy()
        return None

    async def save(self, server: Server, *categories: PathCategory) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(server.copy())
        for existing in self.servers.get(server.guild_id, []):
            if existing.server_id == server.server_id:
                for category in categories or tuple(PathCategory):
                    existing.set_path(category, server.get_path(category))


def make_server(server_id: str = "s1", guild_id: str = "g1", hostname: str = "h",
                **kwargs) -> Server:
    return Server(server_id=server_id, guild_id=guild_id, hostname=hostname, **kwargs)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def cache():
    return PathCache()


@pytest.fixture
def stats():
    return RepairStatistics()


@pytest.fixture
def resolver(repository, transport, cache, stats):
    return PathResolver(repository, RemotePathValidator(transport), cache, stats)
