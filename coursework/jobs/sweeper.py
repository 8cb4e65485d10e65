"""
Retention sweeper

Periodically removes completed and failed jobs whose completed_at is older
than the retention window, from both the index and the store. Pending and
processing jobs are never touched.
"""

from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coursework.jobs.models import utcnow
from coursework.jobs.queue import JobQueue
from coursework.utils.logging import get_logger

logger = get_logger("retention_sweeper")


class RetentionSweeper:
    """Runs JobQueue.purge_expired on a fixed interval."""

    def __init__(
        self,
        queue: JobQueue,
        interval_seconds: int = 3600,
        retention_hours: int = 24,
    ):
        self.queue = queue
        self.interval_seconds = interval_seconds
        self.retention = timedelta(hours=retention_hours)
        self.scheduler = AsyncIOScheduler()

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """One pass. Returns the number of jobs removed."""
        now = now or utcnow()
        cutoff = now - self.retention
        try:
            removed = await self.queue.purge_expired(cutoff)
        except Exception as e:
            # The next tick retries; a failed sweep must not stop the scheduler
            logger.error("Retention sweep failed", error=str(e))
            return 0

        if removed:
            logger.info("Purged expired jobs", removed=removed, cutoff=cutoff.isoformat())
        return removed

    def start(self):
        """Start the sweeper. Call during FastAPI startup."""
        self.scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="job_retention_sweeper",
            name="Purge expired jobs",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info(
            "Retention sweeper started",
            interval_seconds=self.interval_seconds,
            retention_hours=self.retention.total_seconds() / 3600
        )

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Retention sweeper stopped")
