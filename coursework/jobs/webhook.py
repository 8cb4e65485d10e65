"""
Webhook notifications for finished jobs.

Best effort: one POST per terminal event, never retried. The job already
reached its outcome before the notification, so delivery problems are only
logged.
"""

import asyncio
from typing import Any, Dict, Optional, Set

import httpx

from coursework.jobs.events import JOB_COMPLETED, JOB_FAILED, JobEventNotifier
from coursework.jobs.models import Job, format_timestamp, utcnow
from coursework.utils.logging import webhook_logger as logger


USER_AGENT = "Academic-Paper-Generator-API/1.0"


def build_webhook_payload(job: Job) -> Dict[str, Any]:
    return {
        "jobId": job.id,
        "status": job.status.value,
        "timestamp": format_timestamp(utcnow()),
        "result": job.result,
        "error": job.error
    }


class WebhookDispatcher:
    """Posts a JSON summary to the job's webhook_url on completion or failure."""

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._pending: Set[asyncio.Task] = set()

    def attach(self, notifier: JobEventNotifier):
        notifier.subscribe(JOB_COMPLETED, self.on_terminal_event)
        notifier.subscribe(JOB_FAILED, self.on_terminal_event)

    def on_terminal_event(self, event: str, job: Job):
        """Schedule delivery without holding up the queue."""
        if not job.input.webhook_url:
            return

        payload = build_webhook_payload(job)
        task = asyncio.create_task(self.send(job.input.webhook_url, job.id, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def send(self, url: str, job_id: str, payload: Dict[str, Any]) -> bool:
        """POST the payload; returns whether the receiver accepted it."""
        try:
            response = await self._get_client().post(
                url,
                json=payload,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout_seconds
            )
        except httpx.HTTPError as e:
            logger.error("Error sending webhook", job_id=job_id, url=url, error=str(e))
            return False

        if response.is_success:
            logger.info("Webhook sent", job_id=job_id, status_code=response.status_code)
            return True

        logger.error(
            "Webhook rejected",
            job_id=job_id,
            url=url,
            status_code=response.status_code,
            reason=response.reason_phrase
        )
        return False

    async def drain(self):
        """Wait for deliveries that are still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self):
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
