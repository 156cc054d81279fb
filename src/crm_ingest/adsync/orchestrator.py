"""Ad-spend sync orchestrator.

Fans out to every configured platform job concurrently. A failing job
never affects its siblings: its exception becomes an error outcome, each
job writes its own ``sync_log`` row as soon as it settles, and the run's
composite status is ``success`` only when every job succeeded.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import structlog

from src.crm_ingest.adsync.exceptions import UpstreamJobError
from src.crm_ingest.adsync.schemas import (
    CompositeStatus,
    JobOutcome,
    JobStatus,
    OrchestratorResult,
    SyncJob,
    SyncLogCreate,
)
from src.crm_ingest.core.monitoring import track_sync_job

logger = structlog.get_logger(__name__)


class JobRunner(Protocol):
    async def run_job(self, job: SyncJob) -> dict[str, Any]: ...


class SyncLogWriter(Protocol):
    async def record(self, entry: SyncLogCreate) -> str: ...


def default_jobs(meta_path: str = "/sync-meta-ads", google_path: str = "/sync-google-ads") -> list[SyncJob]:
    return [
        SyncJob(platform="meta", path=meta_path),
        SyncJob(platform="google", path=google_path),
    ]


class SyncOrchestrator:
    """Runs the platform sync jobs and aggregates their outcomes.

    Args:
        client: Invokes a single job (``SyncJobClient`` in production).
        sync_log: Append-only audit writer (``SyncLogRepository``).
        jobs: Jobs to run on every invocation, in result order.
    """

    def __init__(
        self,
        client: JobRunner,
        sync_log: SyncLogWriter,
        jobs: list[SyncJob] | None = None,
    ) -> None:
        self._client = client
        self._sync_log = sync_log
        self._jobs = list(jobs) if jobs is not None else default_jobs()

    @property
    def jobs(self) -> list[SyncJob]:
        return list(self._jobs)

    async def run(self) -> OrchestratorResult:
        """Run every job once and return the composite result."""
        logger.info("adsync.run_started", platforms=[job.platform for job in self._jobs])

        outcomes = await asyncio.gather(*(self._run_one(job) for job in self._jobs))

        status = (
            CompositeStatus.SUCCESS
            if all(outcome.succeeded for outcome in outcomes)
            else CompositeStatus.PARTIAL
        )
        logger.info(
            "adsync.run_complete",
            status=status.value,
            succeeded=sum(1 for o in outcomes if o.succeeded),
            failed=sum(1 for o in outcomes if not o.succeeded),
        )
        return OrchestratorResult(
            status=status,
            results=[outcome.to_result() for outcome in outcomes],
        )

    async def _run_one(self, job: SyncJob) -> JobOutcome:
        async with track_sync_job(job.platform) as tracker:
            try:
                body = await self._client.run_job(job)
                outcome = JobOutcome(
                    platform=job.platform,
                    status=JobStatus.SUCCESS,
                    rows_synced=_as_int(body.get("rows_synced")),
                    date_range_start=_as_text(body.get("date_range_start")),
                    date_range_end=_as_text(body.get("date_range_end")),
                    payload=body,
                )
            except Exception as exc:
                # Covers malformed 2xx bodies too: every job ends with an outcome.
                outcome = JobOutcome(
                    platform=job.platform,
                    status=JobStatus.ERROR,
                    error=_error_message(exc),
                )
                logger.warning(
                    "adsync.job_failed",
                    platform=job.platform,
                    error=outcome.error,
                    error_type=type(exc).__name__,
                )
            tracker["status"] = outcome.status.value

        await self._write_log(outcome)
        return outcome

    async def _write_log(self, outcome: JobOutcome) -> None:
        entry = SyncLogCreate(
            platform=outcome.platform,
            status=outcome.status,
            rows_synced=outcome.rows_synced,
            date_range_start=outcome.date_range_start,
            date_range_end=outcome.date_range_end,
            error_message=outcome.error,
        )
        try:
            await self._sync_log.record(entry)
        except Exception:
            # The job already ran; losing its audit row must not change its outcome.
            logger.error(
                "adsync.sync_log_write_failed",
                platform=outcome.platform,
                status=outcome.status.value,
                exc_info=True,
            )


def _error_message(exc: Exception) -> str:
    if isinstance(exc, UpstreamJobError):
        return exc.message
    return str(exc) or type(exc).__name__


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
