"""
Path resolution and repair for remote deathlogs and log directories.

The resolver keeps each server pointed at directories that actually contain
parser input. It checks the configured path first, then walks the generated
candidates one at a time and persists the first one that validates.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from utils.path_cache import PathCache
from utils.path_candidates import PathCategory, generate_candidate_paths, is_structurally_valid
from utils.path_validator import RemotePathValidator
from utils.repair_stats import RepairStatistics

logger = logging.getLogger(__name__)


@dataclass
class ResolutionOutcome:
    """Result of resolving one server + category

    ``success`` with ``persisted=False`` and ``changed=True`` means the remote path
    is valid but the database write failed; the fix only lives in memory.
    """

    success: bool
    resolved_path: Optional[str] = None
    candidates_tried: List[str] = field(default_factory=list)
    category: Optional[PathCategory] = None
    original_path: Optional[str] = None
    changed: bool = False
    persisted: bool = False
    error: Optional[str] = None


class PathResolver:
    """Resolves and repairs server paths

    Args:
        repository: Server repository with ``save(server, *categories)`` and guild-scoped finders
        validator: RemotePathValidator
        cache: Shared PathCache
        stats: Shared RepairStatistics
    """

    def __init__(self, repository, validator: RemotePathValidator, cache: PathCache,
                 stats: Optional[RepairStatistics] = None):
        self.repository = repository
        self.validator = validator
        self.cache = cache
        self.stats = stats or RepairStatistics()
        # key -> [lock, number of callers holding or waiting on it]
        self._key_locks: Dict[Tuple[str, str, PathCategory], list] = {}

    async def resolve(self, server, category: Optional[PathCategory]) -> ResolutionOutcome:
        """Find a validated path for a server and category, repairing it if needed

        Concurrent calls for the same server and category are serialized. The
        server passed in is mutated on success; on failure its path is unchanged.

        Returns:
            ResolutionOutcome, never raises for transport or database failures
        """
        self.stats.record_checked()

        if server is None or category is None:
            logger.warning("Cannot resolve path: server or category missing")
            return ResolutionOutcome(success=False, category=category,
                                     error="Invalid input: server and category are required")

        key = (server.guild_id, server.server_id, category)
        entry = self._key_locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                outcome = await self._resolve(server, category)
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._key_locks[key]

        if outcome.changed:
            self.stats.record_fixed()
        return outcome

    async def _resolve(self, server, category: PathCategory) -> ResolutionOutcome:
        original_path = server.get_path(category)
        tried: List[str] = []

        if original_path and is_structurally_valid(original_path, category):
            tried.append(original_path)
            if await self.validator.validate(server, category):
                self.cache.put(server.guild_id, server.server_id, category, original_path)
                logger.debug(f"{category.label} path for server {server.server_id} is valid: {original_path}")
                return ResolutionOutcome(success=True, resolved_path=original_path,
                                         candidates_tried=tried, category=category,
                                         original_path=original_path)

        cached_path = self.cache.get(server.guild_id, server.server_id, category)
        candidates = [path for path in generate_candidate_paths(server, category, cached_path)
                      if path != original_path]

        repaired_path = None
        try:
            for candidate in candidates:
                tried.append(candidate)
                server.set_path(category, candidate)
                if await self.validator.validate(server, category):
                    repaired_path = candidate
                    break
        finally:
            if repaired_path is None:
                server.set_path(category, original_path)

        if repaired_path is not None:
            return await self._apply_repair(server, category, original_path, repaired_path, tried)

        logger.warning(f"No valid {category.label} path found for server {server.server_id} "
                       f"after {len(tried)} candidates")
        return ResolutionOutcome(success=False, candidates_tried=tried, category=category,
                                 original_path=original_path,
                                 error=f"No valid {category.label} path found")

    async def _apply_repair(self, server, category: PathCategory, original_path: Optional[str],
                            path: str, tried: List[str]) -> ResolutionOutcome:
        server.set_path(category, path)
        self.cache.put(server.guild_id, server.server_id, category, path)
        logger.info(f"Fixed {category.label} path for server {server.server_id}: "
                    f"{original_path or '<unset>'} -> {path}")

        outcome = ResolutionOutcome(success=True, resolved_path=path, candidates_tried=tried,
                                    category=category, original_path=original_path,
                                    changed=True)
        try:
            await self.repository.save(server, category)
            outcome.persisted = True
        except Exception as e:
            # The remote path is valid, so the caller still gets success.
            logger.error(f"Validated {category.label} path {path} for server {server.server_id} "
                         f"but failed to persist it; the fix is not durable: {e}")
            outcome.error = "Path could not be saved"
        return outcome

    async def fix_both_categories(self, server) -> bool:
        """Resolve deathlogs and logs paths

        Returns:
            True if either path was changed
        """
        if server is None:
            logger.warning("Cannot fix paths for null server")
            return False

        changed = False
        for category in PathCategory:
            outcome = await self.resolve(server, category)
            changed = changed or outcome.changed
        return changed

    async def fix_all_servers_for_guild(self, guild_id: str) -> Dict[str, int]:
        """Resolve both categories for every non-exempt server in a guild

        Returns:
            ``{"checked": servers attempted, "fixed": servers with a changed path}``
        """
        checked = 0
        fixed = 0
        servers = await self.repository.find_all_by_guild(guild_id)
        for server in servers:
            if server.path_repair_exempt:
                logger.debug(f"Skipping exempt server {server.server_id}")
                continue
            checked += 1
            if await self.fix_both_categories(server):
                fixed += 1

        logger.info(f"Path repair for guild {guild_id}: checked={checked}, fixed={fixed}")
        return {"checked": checked, "fixed": fixed}

    def get_statistics(self) -> str:
        return self.stats.format()
