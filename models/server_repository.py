"""
Server repository backed by the ``game_servers`` collection.

Every query is scoped by guild ID. Failures are raised as RepositoryError and
never roll back the in-memory Server the caller holds.
"""

import logging
from typing import Any, List, Optional

from pymongo.errors import PyMongoError

from models.server import Server
from utils.path_candidates import PathCategory

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Database operation on a server record failed"""


class ServerRepository:
    """Guild-scoped CRUD for Server records"""

    def __init__(self, db: Any, collection_name: str = "game_servers"):
        self.db = db
        self.collection = db[collection_name]

    async def find_by_id(self, guild_id: str, server_id: str) -> Optional[Server]:
        try:
            doc = await self.collection.find_one({"guild_id": str(guild_id),
                                                  "server_id": str(server_id)})
        except PyMongoError as e:
            raise RepositoryError(f"Failed to load server {server_id}: {e}") from e
        return Server.from_document(doc) if doc else None

    async def find_by_name(self, guild_id: str, name: str) -> Optional[Server]:
        """Find a server by display name, case-insensitive"""
        try:
            async for doc in self.collection.find({"guild_id": str(guild_id)}):
                if str(doc.get("name", "")).lower() == name.lower():
                    return Server.from_document(doc)
        except PyMongoError as e:
            raise RepositoryError(f"Failed to search servers in guild {guild_id}: {e}") from e
        return None

    async def find_all_by_guild(self, guild_id: str) -> List[Server]:
        try:
            docs = await self.collection.find({"guild_id": str(guild_id)}).to_list(length=None)
        except PyMongoError as e:
            raise RepositoryError(f"Failed to list servers for guild {guild_id}: {e}") from e
        return [Server.from_document(doc) for doc in docs]

    async def find_guild_ids(self) -> List[str]:
        """All guilds that have at least one server"""
        try:
            guild_ids = await self.collection.distinct("guild_id")
        except PyMongoError as e:
            raise RepositoryError(f"Failed to list guilds: {e}") from e
        return [str(guild_id) for guild_id in guild_ids if guild_id]

    async def save(self, server: Server, *categories: PathCategory) -> None:
        """Persist the server's remote paths

        Only the path fields of ``categories`` are written (both when none are
        given). Other copies of the same server may hold stale values for the
        remaining fields, so those are left as stored.
        """
        fields = {category.field_name: server.get_path(category)
                  for category in (categories or tuple(PathCategory))}
        try:
            result = await self.collection.update_one(
                {"guild_id": server.guild_id, "server_id": server.server_id},
                {"$set": fields},
            )
        except PyMongoError as e:
            raise RepositoryError(f"Failed to save server {server.server_id}: {e}") from e

        if result.matched_count == 0:
            raise RepositoryError(f"Server {server.server_id} not found in guild {server.guild_id}")
        logger.debug(f"Saved paths for server {server.server_id}")
