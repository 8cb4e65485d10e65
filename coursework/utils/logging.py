"""
Logging for the course paper service.

Every AppLogger call goes to the standard `logging` tree and to a bounded
in-memory ring that GET /health/logs serves. A `job_id` passed as metadata is
lifted onto the entry, so the log of one paper can be pulled out of the ring
while the job is still running.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Deque, Dict, List, Optional


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def stdlib_level(self) -> int:
        return logging.getLevelName(self.value.upper())


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    source: str
    job_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "source": self.source,
            "jobId": self.job_id,
            "message": self.message,
            "metadata": self.metadata
        }


class LogBuffer:
    """Most recent `capacity` entries. Safe to share between threads."""

    def __init__(self, capacity: int = 1000):
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._lock = Lock()
        # Running totals survive eviction from the ring
        self._totals: Counter = Counter()

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)
            self._totals[entry.level] += 1

    def recent(
        self,
        limit: int = 100,
        level: Optional[LogLevel] = None,
        source: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Newest first, after filtering."""
        with self._lock:
            entries = list(self._entries)

        selected = []
        for entry in reversed(entries):
            if level and entry.level != level:
                continue
            if source and entry.source != source:
                continue
            if job_id and entry.job_id != job_id:
                continue
            selected.append(entry.to_dict())
            if len(selected) >= limit:
                break
        return selected

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            buffered = Counter(entry.level.value for entry in self._entries)
            sources = Counter(entry.source for entry in self._entries)
            size = len(self._entries)
            errors = self._totals[LogLevel.ERROR] + self._totals[LogLevel.CRITICAL]
            warnings = self._totals[LogLevel.WARNING]

        return {
            "buffered": size,
            "capacity": self._entries.maxlen,
            "byLevel": dict(buffered),
            "bySource": dict(sources),
            "errorsSinceStart": errors,
            "warningsSinceStart": warnings
        }


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    return _log_buffer


class AppLogger:
    """
    Structured logger for one component.

        logger = get_logger("planner_agent")
        logger.info("Paper planned", job_id=job.id, chapters=3)

    Keyword arguments become entry metadata and are appended to the stdlib
    message as `key=value` pairs.
    """

    def __init__(self, source: str, buffer: Optional[LogBuffer] = None):
        self.source = source
        self._buffer = buffer or _log_buffer
        self._logger = logging.getLogger(f"coursework.{source}")

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any]):
        job_id = metadata.pop("job_id", None)
        self._buffer.add(LogEntry(
            level=level,
            message=message,
            source=self.source,
            job_id=job_id,
            metadata=metadata
        ))

        if not self._logger.isEnabledFor(level.stdlib_level):
            return
        fields = " ".join(f"{key}={value}" for key, value in metadata.items())
        prefix = f"[job {job_id}] " if job_id else ""
        self._logger.log(level.stdlib_level, f"{prefix}{message}" + (f" | {fields}" if fields else ""))

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, **metadata):
        self._log(LogLevel.ERROR, message, metadata)

    def critical(self, message: str, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata)


def get_logger(source: str) -> AppLogger:
    return AppLogger(source)


def configure_logging(level: str = "INFO"):
    """Configure the root handler once, at process start."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


job_logger = AppLogger("job_queue")
pipeline_logger = AppLogger("pipeline")
webhook_logger = AppLogger("webhook")
api_logger = AppLogger("api")
