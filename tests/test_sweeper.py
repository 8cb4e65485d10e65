"""Tests for the retention sweeper."""

from datetime import timedelta

import pytest

from coursework.jobs import Job, JobQueue, JobStatus, RetentionSweeper
from coursework.jobs.models import utcnow

from conftest import GatedExecutor, make_input


pytestmark = pytest.mark.anyio


async def test_sweep_removes_only_expired_terminal_jobs(store, notifier):
    now = utcnow()
    old = now - timedelta(hours=25)

    old_done = Job(id="old-done", input=make_input(), created_at=old - timedelta(hours=1))
    old_done.mark_completed({"name": "x"}, now=old)
    old_failed = Job(id="old-failed", input=make_input(), created_at=old - timedelta(hours=1))
    old_failed.mark_failed("boom", now=old)
    recent = Job(id="recent", input=make_input(), created_at=now - timedelta(hours=2))
    recent.mark_completed({"name": "y"}, now=now - timedelta(hours=1))
    ancient_pending = Job(id="ancient-pending", input=make_input("ancient"), created_at=old)
    for job in (old_done, old_failed, recent, ancient_pending):
        await store.save(job)

    executor = GatedExecutor()
    queue = JobQueue(store, notifier, executor, max_concurrent=1)
    await queue.initialize()
    sweeper = RetentionSweeper(queue, retention_hours=24)

    removed = await sweeper.sweep(now=now)

    assert removed == 2
    assert queue.get("old-done") is None
    assert queue.get("old-failed") is None
    assert queue.get("recent") is not None
    assert queue.get("ancient-pending").status == JobStatus.PROCESSING
    assert sorted(job.id for job in await store.list()) == ["ancient-pending", "recent"]

    await queue.shutdown()


async def test_sweep_errors_are_logged_not_raised():
    class BrokenQueue:
        async def purge_expired(self, cutoff):
            raise RuntimeError("database is locked")

    sweeper = RetentionSweeper(BrokenQueue())

    assert await sweeper.sweep() == 0


async def test_start_registers_interval_job(store, notifier):
    queue = JobQueue(store, notifier, GatedExecutor())
    await queue.initialize()
    sweeper = RetentionSweeper(queue, interval_seconds=60)

    sweeper.start()
    try:
        job = sweeper.scheduler.get_job("job_retention_sweeper")
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=60)
    finally:
        sweeper.shutdown()
