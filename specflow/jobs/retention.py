import asyncio
import logging
from datetime import timedelta

from specflow.api.v1.metrics import JOBS_EVICTED
from specflow.domain.models import utcnow
from specflow.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)


class RetentionService:
    """Periodically evicts terminal jobs older than the retention window."""

    def __init__(self, registry: JobRegistry, retention_seconds: int = 3600, interval: int = 60):
        self.registry = registry
        self.retention = timedelta(seconds=retention_seconds)
        self.interval = interval
        self._running = False
        self._task = None

    async def start(self):
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Retention service started (retention=%s, interval=%ss).", self.retention, self.interval)

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Retention service stopped.")

    def sweep(self) -> int:
        evicted = self.registry.evict_terminal(older_than=utcnow() - self.retention)
        if evicted:
            JOBS_EVICTED.inc(evicted)
            logger.info("Evicted %d finished job(s)", evicted)
        return evicted

    async def _loop(self):
        while self._running:
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Error in retention sweep: {e}", exc_info=True)

            await asyncio.sleep(self.interval)
