"""Errors raised by the ad-spend sync jobs."""

from __future__ import annotations


class UpstreamJobError(Exception):
    """A platform sync job failed or answered with a non-2xx status.

    Isolated to that job: the orchestrator records it and carries on.
    """

    def __init__(self, platform: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.platform = platform
        self.message = message
        self.status_code = status_code
