"""
Shared fixtures for the test suite.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from app.deepgram_client import DeepgramClient
from app.job_manager import JobManager
from app.transcription_service import TranscriptionService


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(clock):
    return JobManager(clock=clock)


@pytest.fixture
def provider():
    """DeepgramClient stand-in that accepts every upload as "abc123"."""
    mock_provider = Mock(spec=DeepgramClient)
    mock_provider.is_configured.return_value = True
    mock_provider.submit = AsyncMock(return_value="abc123")
    mock_provider.aclose = AsyncMock()
    return mock_provider


@pytest.fixture
def service(provider, manager):
    return TranscriptionService(
        provider=provider,
        job_manager=manager,
        callback_url="https://transcribe.example.com/api/v1/webhook",
        retention_window=timedelta(hours=1)
    )
