"""Tests for the background path health monitor."""
import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import FakeRepository, FakeTransport, make_server
from utils.path_cache import PathCache
from utils.path_candidates import PathCategory
from utils.path_monitor import PathHealthMonitor
from utils.path_resolver import PathResolver
from utils.path_validator import RemotePathValidator


class BlockingRepository(FakeRepository):
    """Repository whose guild listing waits for a release signal"""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def find_guild_ids(self):
        self.entered.set()
        await self.release.wait()
        return await super().find_guild_ids()


def build_monitor(repository, transport=None, **kwargs):
    transport = transport or FakeTransport()
    resolver = PathResolver(repository, RemotePathValidator(transport), PathCache())
    kwargs.setdefault("interval_minutes", 60.0)
    kwargs.setdefault("initial_delay", 0)
    return PathHealthMonitor(resolver, repository, **kwargs)


class TestRunCycle:

    @pytest.mark.asyncio
    async def test_sweeps_every_guild_and_skips_exempt_servers(self):
        repository = FakeRepository([
            make_server("s1", "g1", hostname="h"),
            make_server("s2", "g1", hostname="h", path_repair_exempt=True),
            make_server("s3", "g2", hostname="h"),
        ])
        transport = FakeTransport({"h_s1/actual1/deathlogs", "h_s3/Logs"})
        monitor = build_monitor(repository, transport)

        result = await monitor.run_cycle()

        assert result == {"checked": 4, "fixed": 2}
        assert not any("s2" in path for path in transport.calls)
        assert monitor.stats.total_checked == 4
        assert monitor.stats.total_fixed == 2
        assert monitor.stats.cycles_completed == 1
        assert monitor.stats.last_cycle["checked"] == 4
        assert repository.servers["g1"][0].deathlogs_path == "h_s1/actual1/deathlogs"

    @pytest.mark.asyncio
    async def test_skips_paths_already_validated_in_cache(self):
        repository = FakeRepository([
            make_server("s1", "g1", hostname="h", deathlogs_path="h_s1/actual1/deathlogs"),
        ])
        monitor = build_monitor(repository)
        monitor.resolver.cache.put("g1", "s1", PathCategory.KILL_LOG, "h_s1/actual1/deathlogs")

        result = await monitor.run_cycle()

        assert result["checked"] == 1
        assert monitor.stats.total_checked == 1

    @pytest.mark.asyncio
    async def test_second_cycle_only_rechecks_unresolved_paths(self):
        repository = FakeRepository([make_server("s1", "g1", hostname="h")])
        transport = FakeTransport({"h_s1/actual1/deathlogs", "h_s1/Logs"})
        monitor = build_monitor(repository, transport)

        first = await monitor.run_cycle()
        second = await monitor.run_cycle()

        assert first == {"checked": 2, "fixed": 2}
        assert second == {"checked": 0, "fixed": 0}

    @pytest.mark.asyncio
    async def test_isolation_released_even_when_guild_fails(self):
        repository = FakeRepository([
            make_server("s1", "bad", hostname="h"),
            make_server("s2", "good", hostname="h"),
        ])
        repository.broken_guilds.add("bad")
        isolation = MagicMock()
        monitor = build_monitor(repository, isolation=isolation)

        result = await monitor.run_cycle()

        assert result["checked"] == 2
        assert isolation.set_context.call_count == 2
        assert isolation.clear_context.call_count == 2
        isolation.set_context.assert_any_call("bad", None)
        isolation.set_context.assert_any_call("good", None)


class TestSchedule:

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_schedule(self):
        repository = FakeRepository([make_server("s1", "g1", hostname="h")])
        monitor = build_monitor(repository)

        assert monitor.start()
        task = monitor.health_check_task.get_task()
        assert not monitor.start()
        assert monitor.health_check_task.get_task() is task

        await asyncio.sleep(0.1)
        assert monitor.stats.cycles_completed == 1
        assert monitor.stats.total_checked == 2

        await monitor.stop()
        assert not monitor.is_running()

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_cycle(self):
        repository = BlockingRepository()
        repository.add(make_server("s1", "g1", hostname="h"))
        monitor = build_monitor(repository, stop_grace_period=5)
        monitor.start()
        await asyncio.wait_for(repository.entered.wait(), timeout=1)

        asyncio.get_running_loop().call_later(0.05, repository.release.set)
        await monitor.stop()

        assert monitor.stats.cycles_completed == 1
        assert not monitor.is_running()

    @pytest.mark.asyncio
    async def test_stop_cancels_cycle_after_grace_period(self):
        repository = BlockingRepository()
        monitor = build_monitor(repository, stop_grace_period=0.05)
        monitor.start()
        await asyncio.wait_for(repository.entered.wait(), timeout=1)

        await asyncio.wait_for(monitor.stop(), timeout=1)

        assert not monitor.is_running()
        assert monitor.stats.cycles_completed == 0

    @pytest.mark.asyncio
    async def test_stop_when_not_running_is_noop(self):
        monitor = build_monitor(FakeRepository())
        await monitor.stop()
        assert not monitor.is_running()

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        monitor = build_monitor(FakeRepository())
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()

        assert monitor.start()
        assert monitor.is_running()
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_sweep_errors_do_not_stop_schedule(self):
        repository = FakeRepository()
        failing = MagicMock(side_effect=RuntimeError("database down"))

        async def find_guild_ids():
            failing()

        repository.find_guild_ids = find_guild_ids
        monitor = build_monitor(repository)
        monitor.start()
        await asyncio.sleep(0.05)

        assert failing.called
        assert monitor.is_running()
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_waits_for_bot_ready(self):
        bot = MagicMock()
        ready = asyncio.Event()

        async def wait_until_ready():
            await ready.wait()

        bot.wait_until_ready = wait_until_ready
        monitor = build_monitor(FakeRepository([make_server()]), bot=bot)
        monitor.start()
        await asyncio.sleep(0.05)
        assert monitor.stats.cycles_completed == 0

        ready.set()
        await asyncio.sleep(0.05)
        assert monitor.stats.cycles_completed == 1
        await monitor.stop()
