"""
Job queue and scheduler.

Owns the in-memory index and the in-flight set for the process. Jobs are
admitted FIFO by created_at, up to max_concurrent at a time, and each one
runs as its own asyncio task.

Usage:
    queue = JobQueue(store, notifier, executor, max_concurrent=3)
    await queue.initialize()

    job_id = await queue.submit(JobInput(topic="Inflation in Uzbekistan"))
    job = queue.get(job_id)
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set, Tuple

from coursework.jobs.database import JobDatabase
from coursework.jobs.events import (
    JOB_CANCELLED,
    JOB_COMPLETED,
    JOB_CREATED,
    JOB_DELETED,
    JOB_FAILED,
    JOB_PROGRESS,
    JOB_STARTED,
    JobEventNotifier,
)
from coursework.jobs.index import JobIndex
from coursework.jobs.models import Job, JobInput, JobStatus, QueueStats
from coursework.utils.logging import job_logger as logger


ProgressCallback = Callable[[str, int], Awaitable[None]]


class JobExecutor(Protocol):
    """Runs one job to completion and returns its result payload."""

    async def run(self, job_input: JobInput, on_progress: ProgressCallback) -> Dict[str, Any]:
        ...


class JobQueue:
    """Bounded-concurrency FIFO queue of paper generation jobs."""

    def __init__(
        self,
        store: JobDatabase,
        notifier: JobEventNotifier,
        executor: JobExecutor,
        max_concurrent: int = 3
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.store = store
        self.notifier = notifier
        self.executor = executor
        self.max_concurrent = max_concurrent

        self.index = JobIndex()
        self._in_flight: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._closing = False

    async def initialize(self):
        """Load jobs from the store and resume scheduling."""
        await self.store.initialize()
        jobs = await self.store.list()

        recovered = 0
        for job in jobs:
            if job.status == JobStatus.PROCESSING:
                job.reset_for_recovery()
                await self.store.save(job)
                recovered += 1

        self.index.load(jobs)
        logger.info("Job queue initialized", jobs=len(jobs), recovered=recovered)
        self._advance()

    @property
    def current_concurrent(self) -> int:
        return len(self._in_flight)

    # ===== Scheduling =====

    def _advance(self):
        """
        Start pending jobs while there is capacity.

        Synchronous: no await between the admission check and the claim, so
        two callers can never both take the last slot.
        """
        if self._closing:
            return

        while len(self._in_flight) < self.max_concurrent:
            job = self.index.next_pending()
            if job is None:
                return

            job.mark_started()
            self._in_flight.add(job.id)
            task = asyncio.create_task(self._execute(job), name=f"job-{job.id}")
            self._tasks[job.id] = task

    async def _execute(self, job: Job):
        logger.info("Job started", job_id=job.id, topic=job.input.topic)

        async def report_progress(step: str, progress: int):
            job.update_progress(step, progress)
            await self.notifier.emit(JOB_PROGRESS, job)

        try:
            await self.notifier.emit(JOB_STARTED, job)
            result = await self.executor.run(job.input, report_progress)
            job.mark_completed(result)
            await self.notifier.emit(JOB_COMPLETED, job)
            logger.info("Job completed", job_id=job.id)

        except asyncio.CancelledError:
            # Process shutdown; the job is recovered as pending on restart
            raise

        except Exception as e:
            # completed_at stays as first stamped if the completion save failed
            job.mark_failed(str(e), now=job.completed_at)
            logger.error("Job failed", job_id=job.id, error=job.error)
            try:
                await self.notifier.emit(JOB_FAILED, job)
            except Exception as emit_error:
                logger.error(
                    "Could not record job failure",
                    job_id=job.id,
                    error=str(emit_error)
                )

        finally:
            self._in_flight.discard(job.id)
            self._tasks.pop(job.id, None)
            self._advance()

    # ===== Operations =====

    async def submit(self, job_input: JobInput) -> str:
        """Queue a new job and return its id. Input is not validated here."""
        job = Job(id=str(uuid.uuid4()), input=job_input)

        # Persisted before it becomes visible in the index
        await self.notifier.emit(JOB_CREATED, job)
        self.index.put(job)
        logger.info("Job queued", job_id=job.id, topic=job_input.topic)

        self._advance()
        return job.id

    def get(self, job_id: str) -> Optional[Job]:
        return self.index.get(job_id)

    def list(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Job], int]:
        """A page of jobs, newest first, plus the total matching count."""
        jobs = self.index.list(status)
        return jobs[offset:offset + limit], len(jobs)

    async def cancel(self, job_id: str) -> bool:
        """Cancel a pending job. Returns False for anything else."""
        job = self.index.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return False

        snapshot = job.snapshot()
        job.mark_cancelled()
        try:
            await self.notifier.emit(JOB_CANCELLED, job)
        except Exception:
            job.restore(snapshot)
            # A slot may have freed while the write was in flight
            self._advance()
            raise

        logger.info("Job cancelled", job_id=job_id)
        self._advance()
        return True

    async def delete(self, job_id: str) -> bool:
        """Delete a job that is not processing."""
        job = self.index.get(job_id)
        if job is None or job.status == JobStatus.PROCESSING:
            return False

        # Out of the index first so the scheduler cannot claim it meanwhile
        self.index.remove(job_id)
        try:
            await self.store.delete(job_id)
        except Exception:
            self.index.put(job)
            self._advance()
            raise

        await self.notifier.emit(JOB_DELETED, job)
        logger.info("Job deleted", job_id=job_id)
        return True

    async def purge_expired(self, cutoff: datetime) -> int:
        """Remove terminal jobs completed before `cutoff`."""
        expired = self.index.expired(cutoff)
        await self.store.purge_older_than(cutoff)
        for job in expired:
            self.index.remove(job.id)
        return len(expired)

    def stats(self) -> QueueStats:
        counts = self.index.count_by_status()
        return QueueStats(
            total=len(self.index),
            pending=counts[JobStatus.PENDING],
            processing=counts[JobStatus.PROCESSING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            max_concurrent=self.max_concurrent,
            current_concurrent=self.current_concurrent
        )

    async def wait_idle(self):
        """Wait until nothing is in flight. Used by tests and shutdown."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self):
        """Stop scheduling and cancel running executions."""
        self._closing = True
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Job queue stopped", cancelled=len(tasks))
