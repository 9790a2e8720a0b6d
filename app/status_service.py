"""
Read-only status lookups for polling clients.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from app.job_store import JobStore
from app.models import ErrorDetail, Job, JobStatus, TranscriptResult


class StatusKind(Enum):
    """Outcome of a status query, as seen by a poller."""
    UNKNOWN = "unknown"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        """True when the poller should stop polling."""
        return self is not StatusKind.PROCESSING


_KIND_BY_STATUS = {
    JobStatus.PROCESSING: StatusKind.PROCESSING,
    JobStatus.COMPLETED: StatusKind.COMPLETED,
    JobStatus.FAILED: StatusKind.FAILED,
}


class StatusQueryResult:
    """
    Snapshot of one job for a poller.

    ``result`` is set only for COMPLETED and ``error`` only for FAILED.
    UNKNOWN means the id was never registered or has been reclaimed; the two
    cases are deliberately indistinguishable.
    """

    def __init__(
        self,
        request_id: str,
        status: StatusKind,
        filename: Optional[str] = None,
        created_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        result: Optional[TranscriptResult] = None,
        error: Optional[ErrorDetail] = None
    ):
        self.request_id = request_id
        self.status = status
        self.filename = filename
        self.created_at = created_at
        self.completed_at = completed_at
        self.result = result
        self.error = error

    @classmethod
    def unknown(cls, request_id: str) -> "StatusQueryResult":
        return cls(request_id=request_id, status=StatusKind.UNKNOWN)

    @classmethod
    def from_job(cls, job: Job) -> "StatusQueryResult":
        kind = _KIND_BY_STATUS[job.status]
        return cls(
            request_id=job.request_id,
            status=kind,
            filename=job.filename,
            created_at=job.created_at,
            completed_at=job.completed_at,
            result=job.result if kind is StatusKind.COMPLETED else None,
            error=job.error if kind is StatusKind.FAILED else None,
        )

    def __repr__(self) -> str:
        return f"StatusQueryResult(request_id={self.request_id!r}, status={self.status.value!r})"


class StatusQueryService:
    """Translates job store lookups into poller-facing outcomes."""

    def __init__(self, store: JobStore):
        self.store = store

    def query(self, request_id: str) -> StatusQueryResult:
        """
        Look up the current state of a job.

        Reads a single stored record, which is replaced atomically on
        transition, so the returned snapshot is never a mix of states.

        Args:
            request_id: Provider-issued identifier

        Returns:
            StatusQueryResult with status UNKNOWN, PROCESSING, COMPLETED
            (with result) or FAILED (with error)
        """
        job = self.store.get(request_id)
        if job is None:
            return StatusQueryResult.unknown(request_id)
        return StatusQueryResult.from_job(job)
