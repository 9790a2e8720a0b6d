"""
In-memory job store for provider-correlated transcription jobs.

This module provides the JobStore class, the single owner of every Job
record. It is shared by the webhook handler, any number of status pollers and
the periodic cleanup task, so every operation runs under one lock and keeps
its critical section short.
"""

from threading import Lock
from typing import Callable, Dict, List, Optional

from app.models import Job, JobStatus


class JobStore:
    """
    Thread-safe mapping from provider request id to Job.

    Records are never mutated in place: writers swap whole Job instances,
    so a reader always sees a complete record.

    Attributes:
        _jobs: Dictionary mapping request_id to Job instances
        _lock: Lock serializing all access to _jobs
    """

    def __init__(self):
        """Initialize an empty store."""
        self._jobs: Dict[str, Job] = {}
        self._lock = Lock()

    def put(self, request_id: str, job: Job) -> None:
        """
        Insert a job, overwriting any record under the same id.

        Args:
            request_id: Key to store the job under
            job: The job record
        """
        with self._lock:
            self._jobs[request_id] = job

    def put_if_absent(self, request_id: str, job: Job) -> bool:
        """
        Insert a job only if no record exists under ``request_id``.

        Returns:
            True if the job was inserted, False if the id was already taken
        """
        with self._lock:
            if request_id in self._jobs:
                return False
            self._jobs[request_id] = job
            return True

    def get(self, request_id: str) -> Optional[Job]:
        """
        Retrieve a job by id.

        Returns:
            The Job instance if found, None otherwise
        """
        with self._lock:
            return self._jobs.get(request_id)

    def replace_if(
        self,
        request_id: str,
        update: Callable[[Job], Optional[Job]]
    ) -> Optional[Job]:
        """
        Atomically replace a record with the result of ``update``.

        ``update`` is called under the store lock with the current record and
        returns either a replacement Job or None to leave the record as is.
        It must be fast and must not call back into the store.

        Args:
            request_id: Id of the record to update
            update: Function computing the replacement

        Returns:
            The record held after the call (replacement or unchanged), or
            None if no record exists under ``request_id``
        """
        with self._lock:
            current = self._jobs.get(request_id)
            if current is None:
                return None
            replacement = update(current)
            if replacement is None:
                return current
            self._jobs[request_id] = replacement
            return replacement

    def delete(self, request_id: str) -> bool:
        """
        Remove a job.

        Returns:
            True if a record was removed, False if none existed
        """
        with self._lock:
            return self._jobs.pop(request_id, None) is not None

    def delete_if(self, request_id: str, predicate: Callable[[Job], bool]) -> bool:
        """Remove a job only if ``predicate`` holds for its current record."""
        with self._lock:
            current = self._jobs.get(request_id)
            if current is None or not predicate(current):
                return False
            del self._jobs[request_id]
            return True

    def for_each(self, visit: Callable[[str, Job], None]) -> None:
        """
        Call ``visit`` for every record in a point-in-time snapshot.

        The lock is released before visiting, so ``visit`` may call back
        into the store (the cleanup sweep deletes from inside it).
        """
        for request_id, job in self.snapshot():
            visit(request_id, job)

    def snapshot(self) -> List[tuple]:
        """Get a list of (request_id, job) pairs as of now."""
        with self._lock:
            return list(self._jobs.items())

    def count_by_status(self) -> Dict[str, int]:
        """Count live jobs per status value."""
        counts = {status.value: 0 for status in JobStatus}
        with self._lock:
            for job in self._jobs.values():
                counts[job.status.value] += 1
        return counts

    def clear(self) -> None:
        """
        Remove all jobs from the store.

        Primarily useful for testing.
        """
        with self._lock:
            self._jobs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._jobs
