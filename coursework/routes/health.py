"""
Health API Routes

Liveness, readiness and the in-memory log buffer. No authentication.
"""

import platform
import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from coursework.jobs.models import format_timestamp, utcnow
from coursework.utils.logging import LogLevel, get_log_buffer


router = APIRouter(prefix="/health", tags=["health"])

_started_at = time.monotonic()


@router.get("")
async def health_check():
    """Must stay fast and never fail."""
    return {
        "status": "healthy",
        "timestamp": format_timestamp(utcnow()),
        "uptime": round(time.monotonic() - _started_at, 1),
        "python": platform.python_version()
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Ready once the job store is open and the queue is running."""
    queue = getattr(request.app.state, "job_queue", None)
    ready = queue is not None and queue.store.is_connected

    body = {
        "status": "ready" if ready else "not ready",
        "timestamp": format_timestamp(utcnow())
    }
    if not ready:
        return JSONResponse(status_code=503, content=body)
    return body


@router.get("/live")
async def liveness_check():
    return {"status": "alive", "timestamp": format_timestamp(utcnow())}


@router.get("/logs")
async def get_logs(
    limit: int = Query(100, ge=1, le=500),
    level: Optional[str] = Query(None, description="Filter by level (debug, info, warning, error, critical)"),
    source: Optional[str] = Query(None, description="Filter by source"),
    job_id: Optional[str] = Query(None, alias="jobId", description="Only entries logged for this job")
):
    """Get recent log entries from the in-memory buffer."""
    log_buffer = get_log_buffer()

    level_filter = None
    if level:
        try:
            level_filter = LogLevel(level.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid log level: {level}")

    return {
        "logs": log_buffer.recent(limit=limit, level=level_filter, source=source, job_id=job_id),
        "stats": log_buffer.stats()
    }
