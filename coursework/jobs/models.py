"""
Job records for the course paper queue.

A Job is created `pending`, claimed by the scheduler (`processing`) and ends
either `completed` with a result or `failed` with an error.
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


CANCELLED_ERROR = "Job cancelled by user"


class JobStatus(str, Enum):
    """Status values for paper generation jobs"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    # Fixed width so stored timestamps compare correctly as text
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class JobInput:
    """Immutable request payload for one course paper."""
    topic: str
    language: str = "uzbek"
    page_count: int = 30
    university_name: Optional[str] = None
    faculty_name: Optional[str] = None
    department_name: Optional[str] = None
    student_name: Optional[str] = None
    student_course: Optional[int] = None
    subject_name: Optional[str] = None
    advisor_name: Optional[str] = None
    webhook_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobInput":
        known = cls.__dataclass_fields__.keys()
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class Job:
    """A single paper generation request and its lifecycle state."""
    id: str
    input: JobInput
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    current_step: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def snapshot(self) -> "Job":
        """Shallow copy used to roll back a failed write-through."""
        return replace(self)

    def restore(self, snapshot: "Job"):
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(snapshot, name))

    def mark_started(self, now: Optional[datetime] = None):
        if self.status != JobStatus.PENDING:
            raise ValueError(f"Job {self.id} is {self.status.value}, not pending")
        self.status = JobStatus.PROCESSING
        self.started_at = now or utcnow()
        self.progress = 0
        self.current_step = None

    def update_progress(self, step: str, progress: int):
        """Progress never moves backwards while a job is processing."""
        self.current_step = step
        self.progress = max(self.progress, min(100, int(progress)))

    def mark_completed(self, result: Dict[str, Any], now: Optional[datetime] = None):
        self.status = JobStatus.COMPLETED
        self.result = result
        self.error = None
        self.progress = 100
        self.completed_at = now or utcnow()

    def mark_failed(self, error: str, now: Optional[datetime] = None):
        self.status = JobStatus.FAILED
        self.result = None
        self.error = error or "Unknown error"
        self.completed_at = now or utcnow()

    def mark_cancelled(self, now: Optional[datetime] = None):
        self.mark_failed(CANCELLED_ERROR, now=now)

    def reset_for_recovery(self):
        """An execution cannot survive a restart, so it goes back in line."""
        self.status = JobStatus.PENDING
        self.progress = 0
        self.current_step = None
        self.started_at = None
        self.result = None
        self.error = None

    def to_view(self) -> Dict[str, Any]:
        """Full status view returned by the API."""
        return {
            "jobId": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "currentStep": self.current_step,
            "createdAt": format_timestamp(self.created_at),
            "startedAt": format_timestamp(self.started_at),
            "completedAt": format_timestamp(self.completed_at),
            "result": self.result,
            "error": self.error
        }

    def to_summary(self) -> Dict[str, Any]:
        """Compact view for job listings."""
        return {
            "jobId": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "currentStep": self.current_step,
            "createdAt": format_timestamp(self.created_at),
            "startedAt": format_timestamp(self.started_at),
            "completedAt": format_timestamp(self.completed_at),
            "topic": self.input.topic,
            "language": self.input.language
        }


@dataclass(frozen=True)
class QueueStats:
    """Derived counts of jobs by status plus the concurrency gate."""
    total: int
    pending: int
    processing: int
    completed: int
    failed: int
    max_concurrent: int
    current_concurrent: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "failed": self.failed,
            "maxConcurrent": self.max_concurrent,
            "currentConcurrent": self.current_concurrent
        }
