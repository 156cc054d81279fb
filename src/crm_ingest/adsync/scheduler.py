"""Interval scheduler for the ad-spend sync orchestrator.

Wraps an APScheduler AsyncIOScheduler with one interval job that calls
``SyncOrchestrator.run()``. Only started when ``ADS_SYNC_INTERVAL_MINUTES``
is positive; otherwise the trigger endpoint is the sole entry point.

Exports:
    AdsSyncScheduler: Periodic runner for the orchestrator.
"""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import structlog

from src.crm_ingest.adsync.orchestrator import SyncOrchestrator

logger = structlog.get_logger(__name__)

JOB_ID = "ads_sync_orchestrator"


class AdsSyncScheduler:
    """Runs the orchestrator every ``interval_minutes``.

    Args:
        orchestrator: The orchestrator to invoke.
        interval_minutes: Cadence in minutes. Zero or negative disables it.
    """

    def __init__(self, orchestrator: SyncOrchestrator, interval_minutes: int) -> None:
        self._orchestrator = orchestrator
        self._interval_minutes = interval_minutes
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> bool:
        """Start the scheduler. Returns False when the interval is disabled."""
        if self._interval_minutes <= 0:
            logger.info("adsync.scheduler_disabled", interval_minutes=self._interval_minutes)
            return False

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id=JOB_ID,
            name="Sync Meta and Google ad spend",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        self._scheduler.start()
        self._started = True
        logger.info("adsync.scheduler_started", interval_minutes=self._interval_minutes)
        return True

    async def _run(self) -> None:
        try:
            result = await self._orchestrator.run()
        except Exception as exc:
            logger.error("adsync.scheduled_run_failed", error=str(exc), exc_info=True)
            return
        logger.info("adsync.scheduled_run_complete", status=result.status.value)

    def stop(self) -> None:
        """Shut down the scheduler."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("adsync.scheduler_stopped")


__all__ = ["AdsSyncScheduler"]
