"""
Periodic cleanup of finished transcription jobs.

Runs TranscriptionService.cleanup_expired_jobs on a fixed interval with
APScheduler, independently of request traffic.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.logging_config import get_logger, log_with_context
from app.transcription_service import TranscriptionService

logger = get_logger(__name__)

JOB_ID = "reclaim-expired-jobs"


class JobReclaimer:
    """
    Schedules the expired-job sweep.

    Attributes:
        service: TranscriptionService whose jobs are swept
        interval_seconds: Sweep period
    """

    def __init__(self, service: TranscriptionService, interval_seconds: int):
        self.service = service
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> int:
        """
        Sweep expired jobs now.

        Errors are logged and swallowed so a bad sweep never stops the
        schedule; the next run retries.

        Returns:
            Number of jobs removed (0 if the sweep failed)
        """
        try:
            return self.service.cleanup_expired_jobs()
        except Exception as e:
            log_with_context(logger, "error", "Job cleanup sweep failed", error=e)
            return 0

    def start(self) -> None:
        """Start the periodic sweep. Must be called from a running event loop."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_once,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        log_with_context(
            logger,
            "info",
            "Job cleanup scheduler started",
            interval_seconds=self.interval_seconds
        )

    def shutdown(self) -> None:
        """Stop the periodic sweep."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Job cleanup scheduler stopped")
