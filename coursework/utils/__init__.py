"""Utility modules for the course paper service."""

from coursework.utils.logging import (
    get_logger,
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    AppLogger,
    job_logger,
    pipeline_logger,
    webhook_logger,
    api_logger,
)

__all__ = [
    "get_logger",
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "AppLogger",
    "job_logger",
    "pipeline_logger",
    "webhook_logger",
    "api_logger",
]
