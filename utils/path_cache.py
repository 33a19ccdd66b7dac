"""
Last-known-good path cache.

One explicitly constructed instance is shared by the resolver, the health monitor
and the admin commands. Keys are ``(guild_id, server_id, category)``; entries are
overwritten, never appended.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, NamedTuple, Optional, Tuple

from utils.path_candidates import PathCategory

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, PathCategory]


class CacheEntry(NamedTuple):
    path: str
    resolved_at: datetime


class PathCache:
    """Thread-safe map of (guild, server, category) to the last validated path

    Entries are immutable tuples swapped under a lock, so a reader always sees one
    complete entry that some writer stored.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, guild_id: str, server_id: str, category: PathCategory) -> Optional[str]:
        entry = self.get_entry(guild_id, server_id, category)
        return entry.path if entry else None

    def get_entry(self, guild_id: str, server_id: str,
                  category: PathCategory) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get((str(guild_id), str(server_id), category))

    def put(self, guild_id: str, server_id: str, category: PathCategory, path: str) -> None:
        if not path:
            logger.warning(f"Refusing to cache empty {category.label} path for server {server_id}")
            return
        entry = CacheEntry(path, datetime.now(timezone.utc))
        with self._lock:
            self._entries[(str(guild_id), str(server_id), category)] = entry
        logger.debug(f"Cached {category.label} path for server {server_id}: {path}")

    def clear(self, guild_id: str, server_id: str) -> int:
        """Drop both categories for one server

        Returns:
            Number of entries removed
        """
        return self._remove(lambda key: key[0] == str(guild_id) and key[1] == str(server_id))

    def clear_guild(self, guild_id: str) -> int:
        return self._remove(lambda key: key[0] == str(guild_id))

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared path cache ({count} entries)")
        return count

    def snapshot(self) -> Dict[CacheKey, CacheEntry]:
        """Point-in-time copy of all entries for diagnostics"""
        with self._lock:
            return dict(self._entries)

    def _remove(self, predicate) -> int:
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug(f"Removed {len(doomed)} path cache entries")
        return len(doomed)
