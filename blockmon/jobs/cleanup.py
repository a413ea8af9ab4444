"""Scheduled cleanup jobs."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from blockmon.lifecycle import PendingMessageCache
from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

PURGE_PENDING_JOB_ID = "purge_pending_messages"


class CleanupService:
    """Periodic eviction of pending-message records that never got a follow-up."""

    def __init__(
        self,
        cache: PendingMessageCache,
        scheduler: AsyncIOScheduler,
        interval_minutes: int = 5,
    ) -> None:
        self.cache = cache
        self.scheduler = scheduler
        self.interval_minutes = interval_minutes

    def start(self) -> None:
        """Register cleanup jobs with the scheduler."""
        self.scheduler.add_job(
            self._purge_pending_messages,
            trigger="interval",
            minutes=self.interval_minutes,
            id=PURGE_PENDING_JOB_ID,
            replace_existing=True,
        )
        logger.info("cleanup_jobs_started", jobs=[PURGE_PENDING_JOB_ID])

    async def _purge_pending_messages(self) -> None:
        try:
            removed = self.cache.purge_expired()
        except Exception as exc:
            logger.error("purge_pending_messages_failed", error=str(exc))
            return
        if removed:
            logger.info("purge_pending_messages_success", removed=removed)
