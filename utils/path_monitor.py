"""
Background health monitor for server paths.

Every ``interval_minutes`` the monitor walks all guilds and their servers and
resolves any deathlogs/logs path the cache has not already confirmed. The sweep
runs on a single ``discord.ext.tasks`` loop, so two cycles never overlap.
"""

import asyncio
import logging
import time
from contextlib import suppress
from typing import Dict, Optional

from discord.ext import tasks

from utils.guild_isolation import IsolationContext, guild_isolation
from utils.path_candidates import PathCategory
from utils.path_resolver import PathResolver

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 30.0
DEFAULT_INITIAL_DELAY = 60.0
DEFAULT_STOP_GRACE_PERIOD = 30.0


class PathHealthMonitor:
    """Periodic path sweep with an idempotent start and a bounded stop

    Args:
        resolver: Shared PathResolver
        repository: Server repository used to enumerate guilds and servers
        isolation: Optional isolation context entered once per guild
        bot: Optional bot; when given the first sweep waits until it is ready
        interval_minutes: Period between sweeps
        initial_delay: Seconds to wait before the first sweep
        stop_grace_period: Seconds ``stop()`` waits for an in-flight sweep
    """

    def __init__(self, resolver: PathResolver, repository,
                 isolation: Optional[IsolationContext] = None, bot=None,
                 interval_minutes: float = DEFAULT_INTERVAL_MINUTES,
                 initial_delay: float = DEFAULT_INITIAL_DELAY,
                 stop_grace_period: float = DEFAULT_STOP_GRACE_PERIOD):
        self.resolver = resolver
        self.repository = repository
        self.isolation = isolation
        self.bot = bot
        self.initial_delay = initial_delay
        self.stop_grace_period = stop_grace_period
        self._cycle_lock = asyncio.Lock()
        self._idle = asyncio.Event()
        self._idle.set()
        self.health_check_task.change_interval(minutes=interval_minutes)

    @property
    def stats(self):
        return self.resolver.stats

    def is_running(self) -> bool:
        return self.health_check_task.is_running()

    def start(self) -> bool:
        """Schedule the sweep

        Returns:
            False if the monitor was already running
        """
        if self.health_check_task.is_running():
            logger.debug("Path health monitor already running")
            return False
        self.health_check_task.start()
        logger.info(f"Path health monitor started (first sweep in {self.initial_delay:.0f}s)")
        return True

    async def stop(self) -> None:
        """Cancel the schedule, letting an in-flight sweep finish within the grace period"""
        if not self.health_check_task.is_running():
            return

        task = self.health_check_task.get_task()
        if not self._idle.is_set():
            logger.info(f"Waiting up to {self.stop_grace_period:.0f}s for the current path sweep")
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=self.stop_grace_period)
            except asyncio.TimeoutError:
                logger.warning("Path sweep did not finish in time, cancelling it")

        self.health_check_task.cancel()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task
        logger.info("Path health monitor stopped")

    @tasks.loop(minutes=DEFAULT_INTERVAL_MINUTES)
    async def health_check_task(self):
        """Scheduled sweep; errors are logged so the schedule survives them"""
        try:
            await self.run_cycle()
        except Exception as e:
            logger.error(f"Error in path health sweep: {e}", exc_info=True)

    @health_check_task.before_loop
    async def before_health_check_task(self):
        if self.bot is not None:
            await self.bot.wait_until_ready()
        if self.initial_delay > 0:
            await asyncio.sleep(self.initial_delay)

    async def run_cycle(self) -> Dict[str, int]:
        """Sweep every guild once

        Returns:
            Checked and fixed counts for this cycle
        """
        async with self._cycle_lock:
            self._idle.clear()
            start_time = time.monotonic()
            totals = {"checked": 0, "fixed": 0}
            try:
                guild_ids = await self.repository.find_guild_ids()
                for guild_id in guild_ids:
                    try:
                        with guild_isolation(self.isolation, guild_id):
                            result = await self._check_guild(guild_id)
                    except Exception as e:
                        logger.error(f"Path sweep failed for guild {guild_id}: {e}", exc_info=True)
                        continue
                    totals["checked"] += result["checked"]
                    totals["fixed"] += result["fixed"]
            finally:
                self._idle.set()

            duration = time.monotonic() - start_time
            self.stats.record_cycle(totals["checked"], totals["fixed"], duration)
            logger.info(f"Path sweep completed in {duration:.2f}s: "
                        f"checked={totals['checked']}, fixed={totals['fixed']}")
            return totals

    async def _check_guild(self, guild_id: str) -> Dict[str, int]:
        checked = 0
        fixed = 0
        servers = await self.repository.find_all_by_guild(guild_id)
        for server in servers:
            if server.path_repair_exempt:
                continue
            for category in PathCategory:
                current = server.get_path(category)
                cached = self.resolver.cache.get(guild_id, server.server_id, category)
                if current and current == cached:
                    continue

                outcome = await self.resolver.resolve(server, category)
                checked += 1
                if outcome.changed:
                    fixed += 1
        return {"checked": checked, "fixed": fixed}
