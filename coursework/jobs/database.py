"""
Durable storage for paper generation jobs.
Uses aiosqlite for async SQLite operations.
"""

import aiosqlite
import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, List

from coursework.jobs.models import (
    Job,
    JobInput,
    JobStatus,
    TERMINAL_STATUSES,
    format_timestamp,
    parse_timestamp,
)
from coursework.utils.logging import job_logger as logger


class JobDatabase:
    """Handles job table operations. The store is the source of truth for job state."""

    def __init__(self, db_path: str = "./data/jobs.db"):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def initialize(self):
        """Connect to database and create tables if needed"""
        if self._conn is not None:
            return

        db_file = Path(self.db_path)
        db_dir = db_file.parent
        if db_dir and str(db_dir) != "." and not db_dir.exists():
            db_dir.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._create_tables()
        logger.info("Job database initialized", path=self.db_path)

    async def _create_tables(self):
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                status TEXT NOT NULL,

                -- Request payload (JSON)
                input TEXT NOT NULL,

                -- Timestamps (ISO 8601, UTC)
                created_at TEXT NOT NULL,
                started_at TEXT,
                completed_at TEXT,

                -- Progress tracking
                progress INTEGER DEFAULT 0,
                current_step TEXT,

                -- Outcome: result JSON on success, error text on failure
                result TEXT,
                error TEXT
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_jobs_status
            ON jobs(status, created_at)
        """)

        await self._conn.commit()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("JobDatabase is not initialized")
        return self._conn

    async def save(self, job: Job):
        """
        Insert a job row, or update it in place. The rowid is kept, so it
        records submission order.

        Errors are not caught here: a job whose state cannot be saved must
        not be reported as saved.
        """
        conn = self._require_conn()
        await conn.execute("""
            INSERT INTO jobs (
                id, status, input, created_at, started_at, completed_at,
                progress, current_step, result, error
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status = excluded.status,
                started_at = excluded.started_at,
                completed_at = excluded.completed_at,
                progress = excluded.progress,
                current_step = excluded.current_step,
                result = excluded.result,
                error = excluded.error
        """, (
            job.id,
            job.status.value,
            json.dumps(job.input.to_dict()),
            format_timestamp(job.created_at),
            format_timestamp(job.started_at),
            format_timestamp(job.completed_at),
            job.progress,
            job.current_step,
            json.dumps(job.result) if job.result is not None else None,
            job.error
        ))
        await conn.commit()

    async def get(self, job_id: str) -> Optional[Job]:
        """Get a job by id"""
        conn = self._require_conn()
        cursor = await conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
        row = await cursor.fetchone()
        await cursor.close()
        return self._row_to_job(row) if row else None

    async def list(self) -> List[Job]:
        """All jobs, newest first. Equal created_at falls back to insertion order."""
        conn = self._require_conn()
        cursor = await conn.execute("SELECT * FROM jobs ORDER BY created_at DESC, rowid DESC")
        rows = await cursor.fetchall()
        await cursor.close()
        return [self._row_to_job(row) for row in rows]

    async def delete(self, job_id: str) -> bool:
        conn = self._require_conn()
        cursor = await conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
        await conn.commit()
        deleted = cursor.rowcount > 0
        await cursor.close()
        return deleted

    async def purge_older_than(
        self,
        cutoff: datetime,
        statuses: Iterable[JobStatus] = TERMINAL_STATUSES
    ) -> int:
        """Remove jobs in `statuses` whose completed_at is before `cutoff`"""
        status_values = [JobStatus(s).value for s in statuses]
        if not status_values:
            return 0

        conn = self._require_conn()
        placeholders = ", ".join("?" for _ in status_values)
        cursor = await conn.execute(f"""
            DELETE FROM jobs
            WHERE status IN ({placeholders})
            AND completed_at IS NOT NULL
            AND completed_at < ?
        """, (*status_values, format_timestamp(cutoff)))
        await conn.commit()
        purged = cursor.rowcount
        await cursor.close()
        return purged

    def _row_to_job(self, row: aiosqlite.Row) -> Job:
        return Job(
            id=row["id"],
            status=JobStatus(row["status"]),
            input=JobInput.from_dict(json.loads(row["input"])),
            created_at=parse_timestamp(row["created_at"]),
            started_at=parse_timestamp(row["started_at"]),
            completed_at=parse_timestamp(row["completed_at"]),
            progress=row["progress"] or 0,
            current_step=row["current_step"],
            result=json.loads(row["result"]) if row["result"] else None,
            error=row["error"]
        )

    async def close(self):
        """Close database connection"""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Job database closed", path=self.db_path)
