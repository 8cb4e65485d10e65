"""
Paper job queue system.

Components:
- JobDatabase: SQLite-backed durable job store
- JobIndex: in-memory mirror used for reads
- JobQueue: FIFO scheduler with bounded concurrency
- JobEventNotifier: lifecycle events, persisted before listeners run
- WebhookDispatcher: best-effort POST on completion/failure
- RetentionSweeper: purges old terminal jobs

Usage:
    from coursework.jobs import JobDatabase, JobEventNotifier, JobQueue

    store = JobDatabase(config.JOBS_DB_PATH)
    notifier = JobEventNotifier(store)
    queue = JobQueue(store, notifier, pipeline, max_concurrent=3)
    await queue.initialize()
"""

from coursework.jobs.models import (
    CANCELLED_ERROR,
    Job,
    JobInput,
    JobStatus,
    QueueStats,
)
from coursework.jobs.database import JobDatabase
from coursework.jobs.index import JobIndex
from coursework.jobs.events import JOB_EVENTS, JobEventNotifier
from coursework.jobs.queue import JobExecutor, JobQueue, ProgressCallback
from coursework.jobs.webhook import WebhookDispatcher
from coursework.jobs.sweeper import RetentionSweeper

__all__ = [
    # Models
    "CANCELLED_ERROR",
    "Job",
    "JobInput",
    "JobStatus",
    "QueueStats",

    # Storage
    "JobDatabase",
    "JobIndex",

    # Queue
    "JobQueue",
    "JobExecutor",
    "ProgressCallback",

    # Events
    "JOB_EVENTS",
    "JobEventNotifier",
    "WebhookDispatcher",
    "RetentionSweeper",
]
