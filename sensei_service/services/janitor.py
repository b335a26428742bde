import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class CacheJanitor:
    """Periodic sweep of expired conversation caches.

    stopped --start_auto_cleanup()--> running --stop_auto_cleanup()--> stopped

    The schedule is a single asyncio task: one sweep after
    ``initial_delay`` seconds, then one every ``interval`` seconds.
    ``sleep`` is injectable so tests can drive the schedule.
    """

    def __init__(self, cache_service, interval: float = 15 * 60,
                 initial_delay: float = 5, sleep=asyncio.sleep):
        self.cache_service = cache_service
        self.interval = interval
        self.initial_delay = initial_delay
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_auto_cleanup(self) -> asyncio.Task:
        if self.is_running:
            logger.info("Cache auto-cleanup already running")
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("Cache auto-cleanup started (every %ss)", self.interval)
        return self._task

    def stop_auto_cleanup(self):
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            logger.info("Cache auto-cleanup stopped")
        self._task = None

    async def run_cleanup(self) -> dict:
        """Delete expired entries. Never raises."""
        logger.info("Sweeping expired conversation caches...")
        started = time.monotonic()
        deleted = 0
        try:
            for agent_id, session_id in await self.cache_service.find_expired():
                if await self.cache_service.delete_if_expired(agent_id, session_id):
                    deleted += 1
        except Exception as e:
            logger.error("Cache cleanup failed after %d deletions: %s", deleted, e)
            return {"deleted": deleted, "duration_ms": _elapsed_ms(started), "error": str(e)}

        duration_ms = _elapsed_ms(started)
        logger.info("Cache cleanup removed %d expired entries (%dms)", deleted, duration_ms)
        return {"deleted": deleted, "duration_ms": duration_ms}

    async def shutdown(self) -> dict:
        """Stop the schedule and run one last sweep."""
        self.stop_auto_cleanup()
        result = await self.run_cleanup()
        logger.info("Cache janitor shut down")
        return result

    async def _loop(self):
        await self._sleep(self.initial_delay)
        while True:
            await self.run_cleanup()
            await self._sleep(self.interval)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
