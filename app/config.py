"""
Configuration management for the Deepgram Callback Transcription API.

This module provides configuration settings for the service: provider
credentials and endpoint, the public callback address, upload limits, and the
job retention policy.

Uses Pydantic Settings for environment variable management with
validation and type safety.
"""

from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WEBHOOK_PATH = "/api/v1/webhook"


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """
    Configuration settings for the transcription service.

    All settings can be overridden using environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Provider configuration
    deepgram_api_key: Optional[str] = Field(
        default=None,
        description="Deepgram API key; transcription is disabled when unset",
        alias="DEEPGRAM_API_KEY"
    )

    deepgram_api_url: str = Field(
        default="https://api.deepgram.com/v1/listen",
        description="Deepgram pre-recorded transcription endpoint",
        alias="DEEPGRAM_API_URL"
    )

    deepgram_model: str = Field(
        default="nova-3",
        description="Deepgram model used for transcription",
        alias="DEEPGRAM_MODEL"
    )

    deepgram_timeout_seconds: float = Field(
        default=300.0,
        ge=1,
        le=3600,
        description="Timeout for uploading audio to the provider (in seconds)",
        alias="DEEPGRAM_TIMEOUT_SECONDS"
    )

    # Address the provider calls back; defaults to http://localhost:{API_PORT}
    public_url: Optional[str] = Field(
        default=None,
        description="Publicly reachable base URL of this service",
        alias="PUBLIC_URL"
    )

    # API configuration
    api_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port to expose the API",
        alias="API_PORT"
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
        alias="API_HOST"
    )

    # File upload limits
    max_file_size_mb: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Maximum audio file size in megabytes",
        alias="MAX_FILE_SIZE_MB"
    )

    # Logging configuration
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
        alias="LOG_LEVEL"
    )

    # Job retention configuration
    job_retention_seconds: int = Field(
        default=3600,
        ge=1,
        le=30 * 24 * 3600,
        description="How long finished jobs stay queryable after completion (in seconds)",
        alias="JOB_RETENTION_SECONDS"
    )

    job_cleanup_interval_seconds: int = Field(
        default=3600,
        ge=1,
        le=24 * 3600,
        description="Period of the expired-job sweep (in seconds)",
        alias="JOB_CLEANUP_INTERVAL_SECONDS"
    )

    @field_validator("public_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the public URL so paths can be appended directly."""
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    def get_max_file_size_bytes(self) -> int:
        """Get maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    def get_callback_url(self) -> str:
        """Get the webhook URL handed to the provider with each upload."""
        base = self.public_url or f"http://localhost:{self.api_port}"
        return f"{base}{WEBHOOK_PATH}"

    def get_retention_window(self) -> timedelta:
        """Get the job retention window as a timedelta."""
        return timedelta(seconds=self.job_retention_seconds)

    def is_provider_configured(self) -> bool:
        return bool(self.deepgram_api_key)

    def display(self) -> str:
        """
        Get a formatted string of all configuration settings.

        The API key itself is never included.

        Returns:
            Formatted configuration string
        """
        return f"""
Deepgram Callback Transcription API Configuration:
==================================================
Deepgram API Key Configured: {self.is_provider_configured()}
Deepgram API URL: {self.deepgram_api_url}
Deepgram Model: {self.deepgram_model}
Callback URL: {self.get_callback_url()}
API Host: {self.api_host}
API Port: {self.api_port}
Max File Size: {self.max_file_size_mb} MB
Log Level: {self.log_level.value}
Job Retention: {self.job_retention_seconds} seconds
Job Cleanup Interval: {self.job_cleanup_interval_seconds} seconds
"""


# Global settings instance used throughout the application
settings = Settings()
