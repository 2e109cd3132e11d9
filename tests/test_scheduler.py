import asyncio

from space_api.cache import TTLCache
from space_api.scheduler import CacheScheduler


def test_scheduler_runs_cleanup_and_refresh_until_stopped(clock):
    cache = TTLCache(default_ttl=60, clock=clock)
    calls = []

    async def producer():
        calls.append("refresh")
        return len(calls)

    cache.register_refresh_function("warm", producer)
    cache.set("expired", "x", ttl=1)
    clock.advance(5)

    async def _inner():
        scheduler = CacheScheduler(cache, cleanup_interval=0.01, refresh_interval=0.01)
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()
        assert not scheduler.running
        count = len(calls)
        await asyncio.sleep(0.05)
        return count

    count_at_stop = asyncio.run(_inner())

    assert count_at_stop >= 2
    assert len(calls) == count_at_stop
    assert cache.peek("expired") == {"exists": False}
    assert cache.has("warm")


def test_refresh_now_warms_cache_immediately(cache):
    async def producer():
        return "warm"

    cache.register_refresh_function("k", producer)

    async def _inner():
        scheduler = CacheScheduler(cache, cleanup_interval=3600, refresh_interval=3600)
        scheduler.start(refresh_now=True)
        await asyncio.sleep(0.01)
        await scheduler.stop()

    asyncio.run(_inner())
    assert cache.get("k") == "warm"


def test_failing_job_does_not_stop_the_loop(cache):
    attempts = []

    async def producer():
        attempts.append(1)
        raise RuntimeError("upstream down")

    cache.register_refresh_function("k", producer)

    sweep = cache.refresh_all

    async def failing_refresh_all():
        await sweep()
        raise RuntimeError("sweep bookkeeping failed")

    async def _inner():
        scheduler = CacheScheduler(cache, cleanup_interval=3600, refresh_interval=0.01)
        cache.refresh_all = failing_refresh_all
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(_inner())
    assert len(attempts) >= 2


def test_start_is_idempotent_and_stop_without_start(cache):
    async def _inner():
        scheduler = CacheScheduler(cache)
        await scheduler.stop()
        scheduler.start()
        tasks = list(scheduler._tasks)
        scheduler.start()
        assert scheduler._tasks == tasks
        await scheduler.stop()
        return all(task.cancelled() for task in tasks)

    assert asyncio.run(_inner())
