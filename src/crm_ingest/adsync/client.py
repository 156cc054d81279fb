"""Async HTTP client for the platform ad-spend sync jobs.

Each job is a single POST with a bearer token and no body. There is no
retry: a failed call is recorded by the orchestrator and picked up again
on the next scheduled run.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.crm_ingest.adsync.exceptions import UpstreamJobError
from src.crm_ingest.adsync.schemas import SyncJob

logger = structlog.get_logger(__name__)


class SyncJobClient:
    """Invokes ``POST {base_url}{job.path}`` for a sync job.

    Args:
        base_url: Root URL the job paths are appended to.
        token: Bearer token sent as ``Authorization``.
        timeout: Per-call timeout in seconds. Platform jobs can run long.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def run_job(self, job: SyncJob) -> dict[str, Any]:
        """Run one platform sync job and return its JSON body.

        Raises:
            UpstreamJobError: On a non-2xx status. The message is the body's
                ``error`` field when present, otherwise
                ``"<Platform> sync failed with <status>"``.
            httpx.HTTPError: On transport failures, including timeouts.
        """
        url = f"{self._base_url}/{job.path.lstrip('/')}"
        async with self._client() as client:
            response = await client.post(url)

        body = _json_body(response)
        if not response.is_success:
            message = body.get("error") or (
                f"{job.platform.capitalize()} sync failed with {response.status_code}"
            )
            raise UpstreamJobError(job.platform, str(message), response.status_code)

        logger.info(
            "adsync.job_completed",
            platform=job.platform,
            status_code=response.status_code,
            rows_synced=body.get("rows_synced"),
        )
        return body


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a JSON object body, treating anything else as empty."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
