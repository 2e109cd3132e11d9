"""Background cleanup and refresh loops for the shared cache."""

import asyncio
import logging
from typing import Awaitable, Callable, List

from space_api.cache import TTLCache

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 30 * 60
REFRESH_INTERVAL_SECONDS = 15 * 60


class CacheScheduler:
    """
    Owns the two periodic jobs that keep the cache tidy and warm.

    Cleanup evicts expired entries; refresh re-runs every registered producer
    regardless of expiry. The jobs run as independent asyncio tasks and are
    started and stopped together with the application.
    """

    def __init__(self, cache: TTLCache,
                 cleanup_interval: float = CLEANUP_INTERVAL_SECONDS,
                 refresh_interval: float = REFRESH_INTERVAL_SECONDS):
        self.cache = cache
        self.cleanup_interval = cleanup_interval
        self.refresh_interval = refresh_interval
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self, refresh_now: bool = False) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(
                self._every(self.cleanup_interval, self._cleanup, "cleanup"),
                name="cache-cleanup",
            ),
            asyncio.create_task(
                self._every(self.refresh_interval, self.cache.refresh_all,
                            "refresh", run_first=refresh_now),
                name="cache-refresh",
            ),
        ]
        logger.info("Cache scheduler started (cleanup every %ss, refresh every %ss)",
                    self.cleanup_interval, self.refresh_interval)

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Cache scheduler stopped")

    async def _cleanup(self) -> None:
        removed = self.cache.cleanup()
        logger.info("Cleaning up expired cache: %d entries removed", removed)

    async def _every(self, interval: float, job: Callable[[], Awaitable[object]],
                     name: str, run_first: bool = False) -> None:
        if run_first:
            await self._run(job, name)
        while True:
            await asyncio.sleep(interval)
            await self._run(job, name)

    @staticmethod
    async def _run(job, name: str) -> None:
        try:
            await job()
        except Exception:
            logger.exception("Scheduled cache %s failed", name)
