"""
Data models for the Deepgram Callback Transcription API.

This module defines the core data structures used throughout the application,
including the job record tracked between provider dispatch and the provider's
asynchronous callback, and the outcome parsed from that callback.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


# Provider error bodies are kept verbatim: usually a string, sometimes an object
ErrorDetail = Union[str, Dict[str, Any]]


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class JobStatus(Enum):
    """
    Enumeration of possible job states.

    Attributes:
        PROCESSING: Provider accepted the audio; waiting for its callback
        COMPLETED: Callback delivered a transcript
        FAILED: Callback delivered an error body
    """
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True for states that accept no further transitions."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class TranscriptResult:
    """
    Transcript text and provider metadata delivered by a success callback.

    Attributes:
        transcript: Paragraph-formatted transcript text
        duration: Audio duration in seconds as reported by the provider
        channels: Number of audio channels
        created: Provider-side creation timestamp (ISO string)
    """

    def __init__(
        self,
        transcript: str = "",
        duration: Optional[float] = None,
        channels: Optional[int] = None,
        created: Optional[str] = None
    ):
        self.transcript = transcript
        self.duration = duration
        self.channels = channels
        self.created = created

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript,
            "duration": self.duration,
            "channels": self.channels,
            "created": self.created,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TranscriptResult):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"TranscriptResult(transcript_length={len(self.transcript)}, "
            f"duration={self.duration!r}, channels={self.channels!r})"
        )


class CallbackOutcome:
    """
    The parsed content of a provider callback.

    Exactly one of ``result`` and ``error`` is meaningful, selected by
    ``success``.
    """

    def __init__(
        self,
        success: bool,
        result: Optional[TranscriptResult] = None,
        error: Optional[ErrorDetail] = None
    ):
        self.success = success
        self.result = result
        self.error = error

    @classmethod
    def succeeded(cls, result: TranscriptResult) -> "CallbackOutcome":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error: ErrorDetail) -> "CallbackOutcome":
        return cls(success=False, error=error)

    def __repr__(self) -> str:
        if self.success:
            return f"CallbackOutcome(success=True, result={self.result!r})"
        return f"CallbackOutcome(success=False, error={self.error!r})"


class Job:
    """
    Represents one transcription request handed off to the provider.

    Job instances are treated as immutable once stored: a state transition
    builds a new instance (see ``completed`` and ``failed``) and the store
    swaps it in, so a concurrent reader sees either the old record or the new
    one in full.

    Attributes:
        request_id: Provider-issued identifier, primary key of the job store
        status: Current state (JobStatus enum)
        filename: Original upload name, informational only
        created_at: Timestamp when the job was registered
        completed_at: Timestamp of the terminal transition (None while processing)
        result: Transcript and metadata (only when completed)
        error: Provider error detail (only when failed)
    """

    def __init__(
        self,
        request_id: str,
        filename: str,
        status: JobStatus = JobStatus.PROCESSING,
        created_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        result: Optional[TranscriptResult] = None,
        error: Optional[ErrorDetail] = None
    ):
        """
        Initialize a Job instance.

        Args:
            request_id: Identifier returned by the provider on dispatch
            filename: Name of the uploaded file
            status: Initial status (defaults to PROCESSING)
            created_at: Creation timestamp (auto-set to now if not provided)
            completed_at: Completion timestamp (None for new jobs)
            result: Transcript result (None for new jobs)
            error: Error detail (None for new jobs)

        Raises:
            ValueError: If request_id is empty
        """
        if not request_id:
            raise ValueError("request_id must be a non-empty string")

        self.request_id = request_id
        self.filename = filename
        self.status = status
        self.created_at = created_at or utcnow()
        self.completed_at = completed_at
        self.result = result
        self.error = error

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def completed(self, result: TranscriptResult, at: datetime) -> "Job":
        """Return a COMPLETED copy of this job carrying ``result``."""
        return Job(
            request_id=self.request_id,
            filename=self.filename,
            status=JobStatus.COMPLETED,
            created_at=self.created_at,
            completed_at=at,
            result=result,
        )

    def failed(self, error: ErrorDetail, at: datetime) -> "Job":
        """Return a FAILED copy of this job carrying ``error``."""
        return Job(
            request_id=self.request_id,
            filename=self.filename,
            status=JobStatus.FAILED,
            created_at=self.created_at,
            completed_at=at,
            error=error,
        )

    def to_dict(self) -> dict:
        """
        Convert the Job instance to a dictionary representation.

        Returns:
            Dictionary containing all job attributes with serializable values
        """
        return {
            "request_id": self.request_id,
            "status": self.status.value,
            "filename": self.filename,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }

    def __repr__(self) -> str:
        """String representation of the Job for debugging."""
        return (
            f"Job(request_id={self.request_id!r}, status={self.status.value!r}, "
            f"filename={self.filename!r})"
        )
