"""
Job lifecycle events.

Every event except job:deleted first saves the job's latest snapshot, then
fans out to listeners (API layer, webhook dispatcher). A failed save
propagates to whoever emitted the event; a failing listener is only logged.
"""

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union

from coursework.jobs.database import JobDatabase
from coursework.jobs.models import Job
from coursework.utils.logging import job_logger as logger


JOB_CREATED = "job:created"
JOB_STARTED = "job:started"
JOB_PROGRESS = "job:progress"
JOB_COMPLETED = "job:completed"
JOB_FAILED = "job:failed"
JOB_CANCELLED = "job:cancelled"
JOB_DELETED = "job:deleted"

JOB_EVENTS = (
    JOB_CREATED,
    JOB_STARTED,
    JOB_PROGRESS,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_CANCELLED,
    JOB_DELETED,
)

Listener = Callable[[str, Job], Union[None, Awaitable[None]]]


class JobEventNotifier:
    """Publishes job state transitions and persists each one."""

    def __init__(self, store: JobDatabase):
        self._store = store
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener):
        if event not in JOB_EVENTS:
            raise ValueError(f"Unknown job event: {event}")
        self._listeners[event].append(listener)

    async def emit(self, event: str, job: Job):
        if event not in JOB_EVENTS:
            raise ValueError(f"Unknown job event: {event}")

        # The deletion itself is the durable write for job:deleted
        if event != JOB_DELETED:
            await self._store.save(job)

        for listener in list(self._listeners.get(event, [])):
            try:
                outcome: Any = listener(event, job)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    "Job event listener failed",
                    event=event,
                    job_id=job.id,
                    error=str(e)
                )
