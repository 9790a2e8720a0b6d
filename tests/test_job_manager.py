"""
Unit tests for the JobManager class.

Tests cover registration, callback application, idempotency, and cleanup of
finished jobs.
"""

from datetime import timedelta
from threading import Thread

import pytest

from app.job_manager import DuplicateJobError, JobManager, UnknownJobError
from app.models import CallbackOutcome, JobStatus, TranscriptResult


def success(transcript: str = "hello world", duration: float = 12.3) -> CallbackOutcome:
    return CallbackOutcome.succeeded(TranscriptResult(transcript=transcript, duration=duration))


class TestRegister:
    """Tests for JobManager.register."""

    def test_register_creates_processing_job(self, manager, clock):
        """Test that a registered job starts in PROCESSING."""
        job = manager.register("abc123", "a.wav")

        assert job.status == JobStatus.PROCESSING
        assert job.filename == "a.wav"
        assert job.created_at == clock.now
        assert job.completed_at is None
        assert manager.get_job("abc123") is job

    def test_register_duplicate_raises_and_keeps_first(self, manager):
        """Test that a second register with the same id does not overwrite."""
        first = manager.register("abc123", "a.wav")

        with pytest.raises(DuplicateJobError, match="abc123"):
            manager.register("abc123", "b.wav")

        assert manager.get_job("abc123") is first
        assert manager.get_job("abc123").filename == "a.wav"

    def test_register_duplicate_after_completion_keeps_result(self, manager):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())

        with pytest.raises(DuplicateJobError):
            manager.register("abc123", "a.wav")

        assert manager.get_job("abc123").status == JobStatus.COMPLETED

    def test_default_manager_uses_system_clock(self):
        manager = JobManager()
        job = manager.register("abc123", "a.wav")

        assert job.created_at.tzinfo is not None


class TestApplyCallback:
    """Tests for JobManager.apply_callback."""

    def test_success_callback_completes_job(self, manager, clock):
        manager.register("abc123", "a.wav")
        clock.advance(seconds=40)

        job, applied = manager.apply_callback("abc123", success())

        assert applied is True
        assert job.status == JobStatus.COMPLETED
        assert job.result.transcript == "hello world"
        assert job.result.duration == 12.3
        assert job.completed_at == clock.now
        assert job.error is None
        assert manager.get_job("abc123") is job

    def test_failure_callback_fails_job(self, manager, clock):
        manager.register("xyz", "b.wav")

        job, applied = manager.apply_callback("xyz", CallbackOutcome.failed("Bad audio"))

        assert applied is True
        assert job.status == JobStatus.FAILED
        assert job.error == "Bad audio"
        assert job.result is None
        assert job.completed_at == clock.now

    def test_second_callback_is_noop(self, manager, clock):
        """Test that a repeated callback changes neither result nor completed_at."""
        manager.register("abc123", "a.wav")
        first, _ = manager.apply_callback("abc123", success())
        clock.advance(minutes=5)

        second, applied = manager.apply_callback("abc123", success(transcript="different"))

        assert applied is False
        assert second is first
        assert second.result.transcript == "hello world"
        assert second.completed_at == first.completed_at

    def test_failure_after_completion_is_noop(self, manager):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())

        job, applied = manager.apply_callback("abc123", CallbackOutcome.failed("late error"))

        assert applied is False
        assert job.status == JobStatus.COMPLETED
        assert job.error is None

    def test_unknown_job_raises_and_leaves_store_unchanged(self, manager):
        manager.register("abc123", "a.wav")

        with pytest.raises(UnknownJobError, match="nope"):
            manager.apply_callback("nope", success())

        assert len(manager.store) == 1
        assert manager.get_job("nope") is None
        assert manager.get_job("abc123").status == JobStatus.PROCESSING

    def test_concurrent_callbacks_apply_exactly_once(self, manager):
        """Test that racing deliveries produce exactly one transition."""
        manager.register("abc123", "a.wav")
        applied_flags = []

        def deliver(i):
            _, applied = manager.apply_callback("abc123", success(transcript=f"t{i}"))
            applied_flags.append(applied)

        threads = [Thread(target=deliver, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert applied_flags.count(True) == 1
        assert manager.get_job("abc123").status == JobStatus.COMPLETED


class TestReclaim:
    """Tests for JobManager.reclaim."""

    def test_reclaim_removes_expired_completed_jobs(self, manager, clock):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())
        clock.advance(hours=1, seconds=1)

        removed_count = manager.reclaim(timedelta(hours=1))

        assert removed_count == 1
        assert manager.get_job("abc123") is None

    def test_reclaim_removes_expired_failed_jobs(self, manager, clock):
        manager.register("xyz", "b.wav")
        manager.apply_callback("xyz", CallbackOutcome.failed("error"))
        clock.advance(hours=2)

        assert manager.reclaim(timedelta(hours=1)) == 1
        assert manager.get_job("xyz") is None

    def test_reclaim_keeps_recent_jobs(self, manager, clock):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())
        clock.advance(minutes=59)

        assert manager.reclaim(timedelta(hours=1)) == 0
        assert manager.get_job("abc123") is not None

    def test_reclaim_keeps_job_exactly_at_window(self, manager, clock):
        """Test that a job is kept until its age strictly exceeds the window."""
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())
        clock.advance(hours=1)

        assert manager.reclaim(timedelta(hours=1)) == 0

    def test_reclaim_never_removes_processing_jobs(self, manager, clock):
        manager.register("stuck", "a.wav")
        clock.advance(days=30)

        assert manager.reclaim(timedelta(hours=1)) == 0
        assert manager.get_job("stuck").status == JobStatus.PROCESSING

    def test_reclaim_accepts_explicit_now(self, manager, clock):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())

        assert manager.reclaim(timedelta(hours=1), now=clock.now + timedelta(hours=3)) == 1

    def test_reclaim_with_mixed_jobs(self, manager, clock):
        """Test cleanup with a mix of old, recent and pending jobs."""
        manager.register("old", "old.wav")
        manager.apply_callback("old", success())
        clock.advance(hours=2)

        manager.register("recent", "recent.wav")
        manager.apply_callback("recent", success())
        manager.register("pending", "pending.wav")

        removed_count = manager.reclaim(timedelta(hours=1))

        assert removed_count == 1
        assert manager.get_job("old") is None
        assert manager.get_job("recent") is not None
        assert manager.get_job("pending") is not None

    def test_reclaim_returns_zero_when_empty(self, manager):
        assert manager.reclaim(timedelta(hours=1)) == 0

    def test_reclaimed_id_is_unknown_to_callbacks(self, manager, clock):
        manager.register("abc123", "a.wav")
        manager.apply_callback("abc123", success())
        clock.advance(hours=2)
        manager.reclaim(timedelta(hours=1))

        with pytest.raises(UnknownJobError):
            manager.apply_callback("abc123", success())
