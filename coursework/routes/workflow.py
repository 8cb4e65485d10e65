"""
Workflow API Routes

Submit course paper jobs, poll their status, list, cancel, delete and
download the generated Word document.
"""

from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from coursework.jobs.models import JobInput, JobStatus, format_timestamp, utcnow
from coursework.jobs.queue import JobQueue
from coursework.security import require_auth
from coursework.utils.logging import api_logger as logger


router = APIRouter(prefix="/api/v1/workflow", tags=["workflow"], dependencies=[require_auth])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# =============================================================================
# Request Models
# =============================================================================

class CreateWorkflowRequest(BaseModel):
    """Request to generate a course paper."""
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(..., min_length=1)
    language: Literal["uzbek", "english", "russian"] = "uzbek"
    page_count: int = Field(default=30, ge=10, le=100, alias="pageCount")
    university_name: Optional[str] = Field(default=None, alias="universityName")
    faculty_name: Optional[str] = Field(default=None, alias="facultyName")
    department_name: Optional[str] = Field(default=None, alias="departmentName")
    student_name: Optional[str] = Field(default=None, alias="studentName")
    student_course: Optional[int] = Field(default=None, ge=1, le=7, alias="studentCourse")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")
    advisor_name: Optional[str] = Field(default=None, alias="advisorName")
    webhook_url: Optional[AnyHttpUrl] = Field(default=None, alias="webhookUrl")

    def to_job_input(self) -> JobInput:
        return JobInput(
            topic=self.topic,
            language=self.language,
            page_count=self.page_count,
            university_name=self.university_name,
            faculty_name=self.faculty_name,
            department_name=self.department_name,
            student_name=self.student_name,
            student_course=self.student_course,
            subject_name=self.subject_name,
            advisor_name=self.advisor_name,
            webhook_url=str(self.webhook_url) if self.webhook_url else None
        )


# =============================================================================
# Helpers
# =============================================================================

def get_job_queue(request: Request) -> JobQueue:
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        raise HTTPException(status_code=503, detail="Job queue is not ready")
    return queue


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body["timestamp"] = format_timestamp(utcnow())
    return body


# =============================================================================
# Routes
# =============================================================================

@router.post("", status_code=202)
async def create_workflow(payload: CreateWorkflowRequest, request: Request):
    """Queue a new paper. Returns immediately with the job id."""
    queue = get_job_queue(request)
    job_id = await queue.submit(payload.to_job_input())
    logger.info("Workflow job created", job_id=job_id, topic=payload.topic)

    return envelope({
        "jobId": job_id,
        "status": JobStatus.PENDING.value,
        "message": "Workflow job created successfully"
    })


@router.get("")
async def list_workflows(
    request: Request,
    status: Optional[JobStatus] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0)
):
    queue = get_job_queue(request)
    jobs, total = queue.list(status=status, limit=limit, offset=offset)

    return envelope({
        "jobs": [job.to_summary() for job in jobs],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total
        }
    })


@router.get("/queue/stats")
async def queue_stats(request: Request):
    queue = get_job_queue(request)
    return envelope(queue.stats().to_dict())


@router.get("/{job_id}")
async def get_workflow(job_id: str, request: Request):
    job = get_job_queue(request).get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job with ID {job_id} not found")
    return envelope(job.to_view())


@router.delete("/{job_id}")
async def delete_workflow(job_id: str, request: Request):
    deleted = await get_job_queue(request).delete(job_id)
    if not deleted:
        raise HTTPException(
            status_code=404,
            detail=f"Job with ID {job_id} not found or cannot be deleted (processing)"
        )
    return envelope(message="Job deleted successfully")


@router.post("/{job_id}/cancel")
async def cancel_workflow(job_id: str, request: Request):
    cancelled = await get_job_queue(request).cancel(job_id)
    if not cancelled:
        raise HTTPException(
            status_code=404,
            detail=f"Job with ID {job_id} not found or cannot be cancelled"
        )
    return envelope(message="Job cancelled successfully")


@router.get("/{job_id}/download")
async def download_workflow(job_id: str, request: Request):
    job = get_job_queue(request).get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job with ID {job_id} not found")

    if job.status != JobStatus.COMPLETED:
        raise HTTPException(
            status_code=400,
            detail=f"Job is not completed yet (status: {job.status.value})"
        )

    document_path = (job.result or {}).get("documentPath")
    if not document_path or not Path(document_path).is_file():
        raise HTTPException(status_code=404, detail="Document file not found")

    return FileResponse(
        document_path,
        media_type=DOCX_MEDIA_TYPE,
        filename=Path(document_path).name
    )
