"""
In-memory mirror of the job table.

Reads (get, list, stats) are served from here; the JobQueue writes every
mutation through to the JobDatabase before or alongside updating the index.
"""

from datetime import datetime
from typing import Dict, List, Optional

from coursework.jobs.models import Job, JobStatus


class JobIndex:
    """Mapping of job id to Job, rebuilt from the store at startup."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def load(self, jobs: List[Job]):
        """Rebuild from `jobs` in JobDatabase.list order (newest first)."""
        # Insertion order breaks created_at ties in next_pending, so it must
        # be submission order
        ordered = sorted(reversed(jobs), key=lambda j: j.created_at)
        self._jobs = {job.id: job for job in ordered}

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def put(self, job: Job):
        self._jobs[job.id] = job

    def remove(self, job_id: str) -> Optional[Job]:
        return self._jobs.pop(job_id, None)

    def list(self, status: Optional[JobStatus] = None) -> List[Job]:
        """Jobs newest first, optionally filtered by status"""
        jobs = [
            job for job in self._jobs.values()
            if status is None or job.status == status
        ]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def next_pending(self) -> Optional[Job]:
        """Oldest pending job (FIFO by creation time)"""
        pending = [job for job in self._jobs.values() if job.status == JobStatus.PENDING]
        if not pending:
            return None
        return min(pending, key=lambda j: j.created_at)

    def count_by_status(self) -> Dict[JobStatus, int]:
        counts = {status: 0 for status in JobStatus}
        for job in self._jobs.values():
            counts[job.status] += 1
        return counts

    def expired(self, cutoff: datetime) -> List[Job]:
        """Terminal jobs whose completed_at is older than `cutoff`"""
        return [
            job for job in self._jobs.values()
            if job.is_terminal and job.completed_at is not None and job.completed_at < cutoff
        ]
