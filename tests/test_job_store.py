"""
Unit tests for the JobStore class.
"""

from threading import Thread

from app.job_store import JobStore
from app.models import Job, JobStatus, TranscriptResult


def make_job(request_id: str = "abc123") -> Job:
    return Job(request_id=request_id, filename="a.wav")


class TestJobStore:
    """Test suite for JobStore operations."""

    def test_get_returns_none_for_missing_id(self):
        store = JobStore()
        assert store.get("missing") is None

    def test_put_and_get(self):
        store = JobStore()
        job = make_job()

        store.put("abc123", job)

        assert store.get("abc123") is job
        assert "abc123" in store
        assert len(store) == 1

    def test_put_overwrites(self):
        """Test that put replaces an existing record."""
        store = JobStore()
        store.put("abc123", make_job())
        replacement = make_job()

        store.put("abc123", replacement)

        assert store.get("abc123") is replacement
        assert len(store) == 1

    def test_put_if_absent_rejects_existing_id(self):
        """Test that put_if_absent never overwrites."""
        store = JobStore()
        first = make_job()

        assert store.put_if_absent("abc123", first) is True
        assert store.put_if_absent("abc123", make_job()) is False
        assert store.get("abc123") is first

    def test_delete(self):
        store = JobStore()
        store.put("abc123", make_job())

        assert store.delete("abc123") is True
        assert store.get("abc123") is None
        assert store.delete("abc123") is False

    def test_delete_if_respects_predicate(self):
        store = JobStore()
        store.put("abc123", make_job())

        assert store.delete_if("abc123", lambda job: job.is_terminal) is False
        assert store.get("abc123") is not None
        assert store.delete_if("abc123", lambda job: not job.is_terminal) is True
        assert store.get("abc123") is None

    def test_replace_if_swaps_record(self):
        """Test that replace_if stores the replacement returned by the update."""
        store = JobStore()
        original = make_job()
        store.put("abc123", original)

        result = store.replace_if(
            "abc123",
            lambda job: job.completed(TranscriptResult(transcript="hi"), job.created_at)
        )

        assert result is not original
        assert result.status == JobStatus.COMPLETED
        assert store.get("abc123") is result
        # The original instance is never mutated
        assert original.status == JobStatus.PROCESSING

    def test_replace_if_keeps_record_when_update_returns_none(self):
        store = JobStore()
        original = make_job()
        store.put("abc123", original)

        result = store.replace_if("abc123", lambda job: None)

        assert result is original
        assert store.get("abc123") is original

    def test_replace_if_missing_id_returns_none(self):
        store = JobStore()
        calls = []

        result = store.replace_if("missing", lambda job: calls.append(job))

        assert result is None
        assert calls == []

    def test_for_each_visits_snapshot_and_allows_deletes(self):
        """Test that for_each can delete from the store while visiting."""
        store = JobStore()
        for i in range(5):
            store.put(f"job-{i}", make_job(f"job-{i}"))

        visited = []

        def visit(request_id, job):
            visited.append(request_id)
            store.delete(request_id)

        store.for_each(visit)

        assert sorted(visited) == [f"job-{i}" for i in range(5)]
        assert len(store) == 0

    def test_count_by_status(self):
        store = JobStore()
        store.put("a", make_job("a"))
        store.put("b", make_job("b").failed("err", make_job().created_at))

        counts = store.count_by_status()

        assert counts == {"processing": 1, "completed": 0, "failed": 1}

    def test_clear(self):
        store = JobStore()
        store.put("a", make_job("a"))
        store.put("b", make_job("b"))

        store.clear()

        assert len(store) == 0

    def test_concurrent_put_if_absent_admits_one_writer(self):
        """Test that exactly one of many concurrent inserts wins."""
        store = JobStore()
        results = []

        def insert():
            results.append(store.put_if_absent("abc123", make_job()))

        threads = [Thread(target=insert) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert results.count(False) == 19
