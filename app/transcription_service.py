"""
Transcription service orchestration for the Deepgram Callback Transcription API.

This module provides the TranscriptionService class which ties together the
provider client, the job lifecycle manager and the status query service:
uploads are dispatched to the provider and registered as jobs, provider
callbacks are applied to those jobs, and pollers read their state.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional

from app.callback_parser import CallbackParseError, parse_callback
from app.config import settings
from app.deepgram_client import DeepgramClient
from app.job_manager import JobManager, UnknownJobError
from app.logging_config import get_logger, log_with_context
from app.status_service import StatusQueryResult, StatusQueryService


class CallbackDisposition(Enum):
    """What happened to an inbound provider callback."""
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    UNKNOWN_JOB = "unknown_job"
    MISSING_REQUEST_ID = "missing_request_id"
    INVALID_PAYLOAD = "invalid_payload"


class TranscriptionService:
    """
    Orchestrates callback-based transcription jobs.

    This service handles:
    - Submission: dispatch audio to the provider, then register the job
    - Callbacks: correlate a provider callback to its job and apply it
    - Status queries for polling clients
    - Periodic cleanup of finished jobs

    Attributes:
        provider: DeepgramClient used to dispatch uploads
        job_manager: JobManager owning the job lifecycle
        status_service: StatusQueryService for pollers
        callback_url: URL handed to the provider with each upload
        retention_window: How long finished jobs stay queryable
    """

    def __init__(
        self,
        provider: Optional[DeepgramClient] = None,
        job_manager: Optional[JobManager] = None,
        callback_url: Optional[str] = None,
        retention_window: Optional[timedelta] = None
    ):
        """
        Initialize the TranscriptionService.

        Args:
            provider: DeepgramClient instance (built from settings if None)
            job_manager: JobManager instance (creates new if None)
            callback_url: Webhook URL (from settings if None)
            retention_window: Retention for finished jobs (from settings if None)
        """
        self.provider = provider or DeepgramClient(
            api_key=settings.deepgram_api_key,
            api_url=settings.deepgram_api_url,
            model=settings.deepgram_model,
            timeout=settings.deepgram_timeout_seconds
        )
        self.job_manager = job_manager or JobManager()
        self.status_service = StatusQueryService(self.job_manager.store)
        self.callback_url = callback_url or settings.get_callback_url()
        self.retention_window = retention_window or settings.get_retention_window()
        self.logger = get_logger(__name__)

    def is_provider_configured(self) -> bool:
        return self.provider.is_configured()

    async def submit(self, content: bytes, content_type: str, filename: str) -> str:
        """
        Dispatch an upload to the provider and start tracking it.

        Returns as soon as the provider has accepted the audio; the transcript
        arrives later through the callback.

        Workflow:
        1. Upload audio and callback URL to the provider
        2. Register a PROCESSING job under the returned request id
        3. Return the request id to the caller

        Args:
            content: Raw audio bytes
            content_type: MIME type of the audio
            filename: Original upload name

        Returns:
            The provider request id for polling

        Raises:
            ProviderNotConfiguredError: If the provider has no API key
            ProviderDispatchError: If the provider rejects the request; no
                job is registered
            DuplicateJobError: If the provider returns an id already tracked
        """
        request_id = await self.provider.submit(content, content_type, self.callback_url)
        self.job_manager.register(request_id, filename)

        log_with_context(
            self.logger,
            "info",
            "Started async transcription",
            request_id=request_id,
            filename=filename,
            file_size=len(content)
        )
        return request_id

    def handle_callback(self, payload: Any, dg_token: Optional[str] = None) -> CallbackDisposition:
        """
        Apply a provider callback to its job.

        Never raises for payload or correlation problems: the webhook must
        acknowledge every delivery, so every such case is logged and
        reported through the returned disposition instead.

        Args:
            payload: Decoded JSON body of the callback
            dg_token: Value of the ``dg-token`` header, if sent

        Returns:
            CallbackDisposition describing what happened
        """
        if not dg_token:
            self.logger.warning("Webhook received without dg-token header")

        try:
            request_id, outcome = parse_callback(payload)
        except CallbackParseError as e:
            log_with_context(
                self.logger,
                "warning",
                "Malformed webhook payload",
                error_type=type(e).__name__,
                error_message=str(e)
            )
            return CallbackDisposition.INVALID_PAYLOAD

        if request_id is None:
            self.logger.warning("Received webhook without valid request_id")
            return CallbackDisposition.MISSING_REQUEST_ID

        if not outcome.success:
            log_with_context(
                self.logger,
                "error",
                "Deepgram callback reported an error",
                request_id=request_id,
                provider_error=str(outcome.error)
            )

        try:
            job, applied = self.job_manager.apply_callback(request_id, outcome)
        except UnknownJobError:
            log_with_context(
                self.logger,
                "warning",
                "Received webhook for unknown request_id",
                request_id=request_id
            )
            return CallbackDisposition.UNKNOWN_JOB

        if not applied:
            return CallbackDisposition.DUPLICATE

        if job.result is not None:
            log_with_context(
                self.logger,
                "info",
                "Transcription completed",
                request_id=request_id,
                transcription_length=len(job.result.transcript),
                duration=job.result.duration
            )
        return CallbackDisposition.APPLIED

    def get_status(self, request_id: str) -> StatusQueryResult:
        """Get the poller-facing status of a job."""
        return self.status_service.query(request_id)

    def cleanup_expired_jobs(self) -> int:
        """
        Remove finished jobs older than the retention window.

        Returns:
            Number of jobs removed
        """
        return self.job_manager.reclaim(self.retention_window)

    def get_job_stats(self) -> Dict[str, int]:
        """Get live job counts per status plus a total."""
        counts = self.job_manager.store.count_by_status()
        counts["total"] = sum(counts.values())
        return counts

    async def shutdown(self) -> None:
        """Release the provider client's resources."""
        self.logger.info("Shutting down TranscriptionService")
        await self.provider.aclose()
        self.logger.info("TranscriptionService shutdown complete")
