"""
FastAPI application for the course paper generation API.

Wires the job store, event notifier, webhook dispatcher, paper pipeline,
job queue and retention sweeper together on startup and tears them down on
shutdown.
"""

from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursework import __version__
from coursework.config import config
from coursework.jobs import (
    JobDatabase,
    JobEventNotifier,
    JobExecutor,
    JobQueue,
    RetentionSweeper,
    WebhookDispatcher,
)
from coursework.jobs.models import format_timestamp, utcnow
from coursework.routes.health import router as health_router
from coursework.routes.workflow import router as workflow_router
from coursework.utils.logging import api_logger as logger, configure_logging


# Create FastAPI app
app = FastAPI(
    title="Academic Paper Generator API",
    description="Generates university course papers as Word documents",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(workflow_router)


# ===== Service Index =====

@app.get("/")
async def root():
    return {
        "name": "Academic Paper Generator API",
        "version": __version__,
        "endpoints": {
            "health": "/health",
            "workflow": "/api/v1/workflow",
            "queueStats": "/api/v1/workflow/queue/stats",
            "docs": "/docs"
        }
    }


# ===== Error Handlers =====

def _error_body(request: Request, error: str, message: str, **extra) -> dict:
    body = {
        "success": False,
        "error": error,
        "message": message,
        "timestamp": format_timestamp(utcnow()),
        "path": request.url.path
    }
    body.update(extra)
    return body


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    try:
        error = HTTPStatus(exc.status_code).phrase
    except ValueError:
        error = "Error"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, error, str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=_error_body(
            request,
            "Validation Error",
            "Invalid request data",
            details=jsonable_errors(exc)
        )
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error("Unhandled error", path=request.url.path, error=str(exc), type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content=_error_body(
            request,
            "Internal Server Error",
            str(exc) if config.DEBUG else "An error occurred"
        )
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# ===== Service Wiring =====

def build_pipeline() -> JobExecutor:
    """The production pipeline: Claude agents plus the python-docx renderer."""
    from coursework.agents import EvaluatorAgent, PaperAgentSuite
    from coursework.document import DocxRenderer
    from coursework.pipeline import PaperPipeline

    return PaperPipeline(
        agents=PaperAgentSuite(),
        evaluator=EvaluatorAgent(),
        renderer=DocxRenderer(config.DOCUMENTS_DIR),
        intro_max_attempts=config.INTRO_MAX_ATTEMPTS,
        section_max_attempts=config.SECTION_MAX_ATTEMPTS
    )


async def start_services(target: FastAPI, pipeline: Optional[JobExecutor] = None):
    store = JobDatabase(config.JOBS_DB_PATH)
    notifier = JobEventNotifier(store)

    webhooks = WebhookDispatcher(timeout_seconds=config.WEBHOOK_TIMEOUT_SECONDS)
    webhooks.attach(notifier)

    queue = JobQueue(
        store,
        notifier,
        pipeline or build_pipeline(),
        max_concurrent=config.MAX_CONCURRENT_JOBS
    )
    await queue.initialize()

    sweeper = RetentionSweeper(
        queue,
        interval_seconds=config.RETENTION_SWEEP_INTERVAL_SECONDS,
        retention_hours=config.JOB_RETENTION_HOURS
    )
    sweeper.start()

    target.state.job_queue = queue
    target.state.webhooks = webhooks
    target.state.sweeper = sweeper


async def stop_services(target: FastAPI):
    sweeper = getattr(target.state, "sweeper", None)
    if sweeper is not None:
        sweeper.shutdown()

    queue = getattr(target.state, "job_queue", None)
    if queue is not None:
        await queue.shutdown()

    webhooks = getattr(target.state, "webhooks", None)
    if webhooks is not None:
        await webhooks.aclose()

    if queue is not None:
        await queue.store.close()

    target.state.job_queue = None


# ===== Startup / Shutdown =====

@app.on_event("startup")
async def startup_event():
    configure_logging(config.LOG_LEVEL)
    logger.info(
        "Academic Paper Generator API starting",
        environment=config.ENVIRONMENT,
        max_concurrent_jobs=config.MAX_CONCURRENT_JOBS,
        llm_configured=config.llm_configured,
        auth_required=config.auth_required
    )
    if not config.llm_configured:
        logger.warning("ANTHROPIC_API_KEY is not set; jobs will fail at the planning stage")
    if "*" in config.allowed_origins_list:
        logger.warning("CORS: all origins allowed (configure ALLOWED_ORIGINS for production)")

    await start_services(app)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Academic Paper Generator API shutting down")
    await stop_services(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "coursework.api.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower()
    )
