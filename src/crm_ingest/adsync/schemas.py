"""Pydantic schemas for the ad-spend sync orchestrator."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Outcome of a single platform sync job."""

    SUCCESS = "success"
    ERROR = "error"


class CompositeStatus(str, Enum):
    """Outcome of an orchestrator run.

    There is no distinct "all failed" status: PARTIAL covers one or more
    failed jobs.
    """

    SUCCESS = "success"
    PARTIAL = "partial"


class SyncJob(BaseModel):
    """A platform-specific sync job reachable over HTTP."""

    platform: str
    path: str


class JobOutcome(BaseModel):
    """Result of one job attempt (success payload or error message)."""

    platform: str
    status: JobStatus
    rows_synced: int = 0
    date_range_start: str | None = None
    date_range_end: str | None = None
    error: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCESS

    def to_result(self) -> dict[str, Any]:
        """Entry for the ``results`` list of the orchestrator response."""
        if self.succeeded:
            return {**self.payload, "platform": self.platform, "status": self.status.value}
        return {"platform": self.platform, "status": self.status.value, "error": self.error}


class SyncLogCreate(BaseModel):
    """Audit row written once per job per run."""

    platform: str
    status: JobStatus
    rows_synced: int = 0
    date_range_start: str | None = None
    date_range_end: str | None = None
    error_message: str | None = None


class OrchestratorResult(BaseModel):
    """Response body of the orchestrator trigger."""

    status: CompositeStatus
    results: list[dict[str, Any]] = Field(default_factory=list)
