"""Tests for the SQLite job store."""

from datetime import timedelta

import pytest

from coursework.jobs import Job, JobDatabase, JobIndex, JobStatus
from coursework.jobs.models import utcnow

from conftest import make_input


pytestmark = pytest.mark.anyio


async def test_initialize_creates_directory_and_schema(db_path):
    database = JobDatabase(db_path)
    await database.initialize()
    try:
        assert database.is_connected
        assert await database.list() == []
    finally:
        await database.close()
    assert not database.is_connected


async def test_save_is_an_idempotent_upsert(store):
    job = Job(id="job-1", input=make_input(language="english", page_count=40, webhook_url="http://hook"))
    await store.save(job)
    await store.save(job)

    job.mark_started()
    job.update_progress("Planning content structure", 10)
    await store.save(job)

    jobs = await store.list()
    assert len(jobs) == 1

    loaded = await store.get("job-1")
    assert loaded.status == JobStatus.PROCESSING
    assert loaded.progress == 10
    assert loaded.current_step == "Planning content structure"
    assert loaded.input == job.input
    assert loaded.started_at == job.started_at


async def test_result_and_error_round_trip(store):
    done = Job(id="done", input=make_input())
    done.mark_started()
    done.mark_completed({"name": "X", "chapters": [{"chapterTitle": "I", "sections": []}]})
    failed = Job(id="failed", input=make_input())
    failed.mark_cancelled()
    await store.save(done)
    await store.save(failed)

    loaded_done = await store.get("done")
    loaded_failed = await store.get("failed")
    assert loaded_done.result["chapters"][0]["chapterTitle"] == "I"
    assert loaded_done.error is None
    assert loaded_failed.result is None
    assert loaded_failed.error == "Job cancelled by user"


async def test_list_is_newest_first(store):
    now = utcnow()
    for offset, job_id in enumerate(["old", "mid", "new"]):
        await store.save(Job(id=job_id, input=make_input(), created_at=now + timedelta(seconds=offset)))

    assert [job.id for job in await store.list()] == ["new", "mid", "old"]


async def test_equal_timestamps_keep_submission_order_across_updates(store):
    now = utcnow()
    first = Job(id="zz-first", input=make_input(), created_at=now)
    second = Job(id="aa-second", input=make_input(), created_at=now)
    await store.save(first)
    await store.save(second)

    # Updating the older row must not move it behind the newer one
    first.update_progress("Planning", 5)
    await store.save(first)

    assert [job.id for job in await store.list()] == ["aa-second", "zz-first"]

    index = JobIndex()
    index.load(await store.list())
    assert index.next_pending().id == "zz-first"


async def test_get_missing_and_delete(store):
    assert await store.get("nope") is None
    assert await store.delete("nope") is False

    await store.save(Job(id="job-1", input=make_input()))
    assert await store.delete("job-1") is True
    assert await store.get("job-1") is None


async def test_purge_only_removes_old_terminal_jobs(store):
    now = utcnow()
    old = now - timedelta(hours=30)

    old_completed = Job(id="old-completed", input=make_input())
    old_completed.mark_completed({"name": "x"}, now=old)
    old_failed = Job(id="old-failed", input=make_input())
    old_failed.mark_failed("boom", now=old)
    fresh = Job(id="fresh", input=make_input())
    fresh.mark_completed({"name": "y"}, now=now)
    pending = Job(id="pending", input=make_input(), created_at=old)

    for job in (old_completed, old_failed, fresh, pending):
        await store.save(job)

    purged = await store.purge_older_than(now - timedelta(hours=24))

    assert purged == 2
    assert sorted(job.id for job in await store.list()) == ["fresh", "pending"]


async def test_operations_require_initialize(db_path):
    database = JobDatabase(db_path)
    with pytest.raises(RuntimeError):
        await database.save(Job(id="x", input=make_input()))
