"""
End-to-end scenarios through the service layer: register, callback, poll,
expire.
"""

import pytest

from app.status_service import StatusKind
from app.transcription_service import CallbackDisposition
from payloads import error_payload, success_payload


class TestJobLifecycleScenarios:
    """Full job lifecycles driven by a manually advanced clock."""

    @pytest.mark.asyncio
    async def test_success_then_expiry(self, service, clock):
        request_id = await service.submit(b"audio", "audio/wav", "a.wav")
        assert request_id == "abc123"

        assert service.get_status("abc123").status is StatusKind.PROCESSING

        clock.advance(seconds=45)
        service.handle_callback(success_payload(transcript="hello world", duration=12.3))

        status = service.get_status("abc123")
        assert status.status is StatusKind.COMPLETED
        assert status.result.transcript == "hello world"
        assert status.result.duration == 12.3

        clock.advance(minutes=59)
        service.cleanup_expired_jobs()
        assert service.get_status("abc123").status is StatusKind.COMPLETED

        clock.advance(minutes=2)
        service.cleanup_expired_jobs()
        assert service.get_status("abc123").status is StatusKind.UNKNOWN

    def test_failure_then_duplicate_error(self, service, clock):
        service.job_manager.register("xyz", "x.wav")

        service.handle_callback(error_payload(request_id="xyz", error="first error"))
        first = service.get_status("xyz")
        assert first.status is StatusKind.FAILED
        assert first.error == "first error"

        clock.advance(minutes=1)
        disposition = service.handle_callback(error_payload(request_id="xyz", error="second error"))

        second = service.get_status("xyz")
        assert disposition is CallbackDisposition.DUPLICATE
        assert second.error == "first error"
        assert second.completed_at == first.completed_at

    def test_callback_after_expiry_is_unknown(self, service, clock):
        service.job_manager.register("abc123", "a.wav")
        service.handle_callback(success_payload())
        clock.advance(hours=2)
        service.cleanup_expired_jobs()

        disposition = service.handle_callback(success_payload())

        assert disposition is CallbackDisposition.UNKNOWN_JOB
        assert service.get_status("abc123").status is StatusKind.UNKNOWN
