"""
API request and response models for the Deepgram Callback Transcription API.

This module defines Pydantic models for response serialization, ensuring
consistent data structures across all endpoints.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.status_service import StatusQueryResult


class TranscribeResponse(BaseModel):
    """
    Response model for transcription job creation.

    Returned once the provider has accepted the uploaded audio.

    Attributes:
        request_id: Provider-issued identifier used for polling
        status: Always "processing" for a newly accepted job
        message: Human-readable hint for the client
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "request_id": "6b1a2e4c-3f0d-4c8e-9a51-0f2b7d9c1e11",
                "status": "processing",
                "message": "File processing started. Use the request_id to check status."
            }
        }
    )

    request_id: str = Field(..., description="Provider request identifier")
    status: Literal["processing"] = Field("processing", description="Initial job status")
    message: str = Field(
        "File processing started. Use the request_id to check status.",
        description="Hint for the client"
    )


class TranscriptResultModel(BaseModel):
    """Transcript text and provider metadata for a completed job."""

    transcript: str = Field(..., description="Paragraph-formatted transcript")
    duration: Optional[float] = Field(None, description="Audio duration in seconds")
    channels: Optional[int] = Field(None, description="Number of audio channels")
    created: Optional[str] = Field(None, description="Provider-side creation time")


class StatusResponse(BaseModel):
    """
    Response model for a job status query.

    Attributes:
        request_id: Provider request identifier
        status: processing, completed or failed
        filename: Original upload name
        created_at: When the job was registered
        completed_at: When the callback arrived (terminal jobs only)
        result: Transcript and metadata (only when completed)
        error: Provider error detail (only when failed)
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "request_id": "6b1a2e4c-3f0d-4c8e-9a51-0f2b7d9c1e11",
                "status": "completed",
                "filename": "meeting.wav",
                "created_at": "2026-10-19T09:00:00+00:00",
                "completed_at": "2026-10-19T09:00:41+00:00",
                "result": {
                    "transcript": "Hello world.",
                    "duration": 12.3,
                    "channels": 1,
                    "created": "2026-10-19T09:00:01.000Z"
                },
                "error": None
            }
        }
    )

    request_id: str = Field(..., description="Provider request identifier")
    status: Literal["processing", "completed", "failed"] = Field(..., description="Current job status")
    filename: Optional[str] = Field(None, description="Original upload name")
    created_at: Optional[datetime] = Field(None, description="Registration time")
    completed_at: Optional[datetime] = Field(None, description="Completion time")
    result: Optional[TranscriptResultModel] = Field(None, description="Transcript (when completed)")
    error: Optional[Any] = Field(None, description="Provider error detail (when failed)")

    @classmethod
    def from_query(cls, query: StatusQueryResult) -> "StatusResponse":
        """Build a response from a known (non-UNKNOWN) query result."""
        result = None
        if query.result is not None:
            result = TranscriptResultModel(**query.result.to_dict())
        return cls(
            request_id=query.request_id,
            status=query.status.value,
            filename=query.filename,
            created_at=query.created_at,
            completed_at=query.completed_at,
            result=result,
            error=query.error,
        )


class WebhookAck(BaseModel):
    """Acknowledgement returned to the provider for every callback."""

    received: bool = Field(True, description="Always true")


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Overall service health status
        provider_configured: Whether a Deepgram API key is set
        callback_url: Webhook URL sent to the provider
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "provider_configured": True,
                "callback_url": "https://transcribe.example.com/api/v1/webhook"
            }
        }
    )

    status: str = Field(..., description="Service health status")
    provider_configured: bool = Field(..., description="Whether the provider API key is set")
    callback_url: Optional[str] = Field(None, description="Webhook URL sent to the provider")


class JobStatsResponse(BaseModel):
    """Live job counts per status."""

    processing: int = Field(0, description="Jobs waiting for a callback")
    completed: int = Field(0, description="Completed jobs not yet cleaned up")
    failed: int = Field(0, description="Failed jobs not yet cleaned up")
    total: int = Field(0, description="All live jobs")


class ErrorResponse(BaseModel):
    """
    Standard error response model.

    All API errors return this consistent structure.
    """

    class ErrorDetail(BaseModel):
        """Error detail structure."""
        code: str = Field(..., description="Error code")
        message: str = Field(..., description="Human-readable error message")
        details: Optional[Any] = Field(None, description="Additional error context")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "JOB_NOT_FOUND",
                    "message": "Request ID 6b1a2e4c-3f0d-4c8e-9a51-0f2b7d9c1e11 not found",
                    "details": None
                }
            }
        }
    )

    error: ErrorDetail = Field(..., description="Error information")
