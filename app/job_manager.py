"""
Job lifecycle management for provider-correlated transcription jobs.

This module provides the JobManager class which registers jobs once the
provider has accepted an upload, applies the provider's callbacks to them,
and reclaims finished jobs after the retention window.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from app.job_store import JobStore
from app.models import CallbackOutcome, Job, JobStatus, utcnow
from app.logging_config import get_logger, log_with_context


class DuplicateJobError(Exception):
    """Raised when registering a request id that is already tracked."""

    def __init__(self, request_id: str):
        super().__init__(f"Job with id {request_id} already exists")
        self.request_id = request_id


class UnknownJobError(KeyError):
    """Raised when a callback names a request id that is not tracked."""

    def __init__(self, request_id: str):
        super().__init__(f"Job with id {request_id} not found")
        self.request_id = request_id

    def __str__(self) -> str:
        return self.args[0]


class JobManager:
    """
    Manages the lifecycle of provider transcription jobs.

    Jobs move from PROCESSING to exactly one of COMPLETED or FAILED, and
    are then left untouched until the cleanup sweep removes them.

    Attributes:
        store: JobStore holding every live job
        _clock: Callable returning the current UTC time
    """

    def __init__(
        self,
        store: Optional[JobStore] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the JobManager.

        Args:
            store: JobStore instance (creates new if None)
            clock: Time source (defaults to the system UTC clock)
        """
        self.store = store if store is not None else JobStore()
        self._clock = clock or utcnow
        self.logger = get_logger(__name__)

    def register(self, request_id: str, filename: str) -> Job:
        """
        Start tracking a job the provider has accepted.

        Args:
            request_id: Identifier returned by the provider
            filename: Original upload name

        Returns:
            The newly stored Job in PROCESSING state

        Raises:
            DuplicateJobError: If request_id is already tracked; the existing
                record is left untouched
        """
        job = Job(
            request_id=request_id,
            filename=filename,
            status=JobStatus.PROCESSING,
            created_at=self._clock()
        )

        if not self.store.put_if_absent(request_id, job):
            log_with_context(
                self.logger,
                "error",
                "Duplicate request id rejected",
                request_id=request_id,
                filename=filename
            )
            raise DuplicateJobError(request_id)

        log_with_context(
            self.logger,
            "info",
            "Job registered",
            request_id=request_id,
            filename=filename
        )
        return job

    def apply_callback(self, request_id: str, outcome: CallbackOutcome) -> Tuple[Job, bool]:
        """
        Apply a provider callback to its job.

        A PROCESSING job becomes COMPLETED (success outcome) or FAILED
        (failure outcome) and gets its completed_at timestamp. A job that is
        already terminal is returned unchanged, so duplicate deliveries are
        harmless.

        Args:
            request_id: Identifier carried by the callback
            outcome: Parsed callback content

        Returns:
            Tuple of (job as stored after the call, whether this call
            performed the transition)

        Raises:
            UnknownJobError: If no job is tracked under request_id (never
                registered, or already reclaimed)
        """
        now = self._clock()
        previous = {}

        def transition(job: Job) -> Optional[Job]:
            previous["status"] = job.status
            if job.is_terminal:
                return None
            if outcome.success:
                return job.completed(outcome.result, now)
            return job.failed(outcome.error, now)

        job = self.store.replace_if(request_id, transition)

        if job is None:
            raise UnknownJobError(request_id)

        old_status = previous["status"]
        if old_status.is_terminal:
            log_with_context(
                self.logger,
                "info",
                "Duplicate callback ignored",
                request_id=request_id,
                status=old_status.value
            )
            return job, False

        log_context = {
            "old_status": old_status.value,
            "new_status": job.status.value,
        }
        if job.result is not None:
            log_context["transcription_length"] = len(job.result.transcript)
            log_context["duration"] = job.result.duration
        if job.error is not None:
            log_context["provider_error"] = str(job.error)

        log_with_context(
            self.logger,
            "info" if job.status == JobStatus.COMPLETED else "warning",
            "Job status updated",
            request_id=request_id,
            **log_context
        )
        return job, True

    def get_job(self, request_id: str) -> Optional[Job]:
        """Retrieve a job by id, or None if it is not tracked."""
        return self.store.get(request_id)

    def reclaim(
        self,
        retention_window: timedelta,
        now: Optional[datetime] = None
    ) -> int:
        """
        Remove finished jobs whose retention window has passed.

        Only COMPLETED and FAILED jobs whose completed_at is more than
        ``retention_window`` before ``now`` are removed. PROCESSING jobs are
        never removed, however old.

        Args:
            retention_window: How long finished jobs stay queryable
            now: Reference time (defaults to the manager's clock)

        Returns:
            The number of jobs removed
        """
        now = now or self._clock()
        expired = []

        def collect(request_id: str, job: Job) -> None:
            if job.is_terminal and job.completed_at is not None:
                if now - job.completed_at > retention_window:
                    expired.append(request_id)

        self.store.for_each(collect)

        removed_count = 0
        for request_id in expired:
            if self.store.delete_if(request_id, lambda job: job.is_terminal):
                removed_count += 1
                log_with_context(
                    self.logger,
                    "debug",
                    "Reclaimed job",
                    request_id=request_id
                )

        if removed_count > 0:
            log_with_context(
                self.logger,
                "info",
                "Cleaned up expired jobs",
                removed_count=removed_count,
                retention_seconds=retention_window.total_seconds()
            )

        return removed_count
