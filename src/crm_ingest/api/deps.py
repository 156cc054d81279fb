"""FastAPI dependencies for webhook authentication and app.state services.

Services are built once in the application lifespan and stored on
``app.state``; endpoints fetch them here and get a 503 when startup did not
initialize them.
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import HTTPException, Request, status

from src.crm_ingest.config import get_settings
from src.crm_ingest.ingestion.exceptions import AuthenticationError

WEBHOOK_SECRET_HEADER = "x-webhook-secret"


def _matches(supplied: str | None, expected: str) -> bool:
    if not expected or supplied is None:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def verify_webhook_secret(request: Request) -> None:
    """Reject requests whose shared-secret header does not match.

    An unset ``DYNAMICS_WEBHOOK_SECRET`` rejects every request.

    Raises:
        AuthenticationError: Header missing or wrong.
    """
    settings = get_settings()
    if not _matches(request.headers.get(WEBHOOK_SECRET_HEADER), settings.DYNAMICS_WEBHOOK_SECRET):
        raise AuthenticationError()


async def verify_sync_trigger(request: Request) -> None:
    """Require ``Authorization: Bearer <SYNC_TRIGGER_TOKEN>`` when one is configured."""
    expected = get_settings().SYNC_TRIGGER_TOKEN
    if not expected:
        return

    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else None
    if not _matches(token, expected):
        raise AuthenticationError()


def _get_state_service(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


def get_lead_batch(request: Request) -> Any:
    """Retrieve the lead BatchProcessor from app.state, 503 if not available."""
    return _get_state_service(request, "lead_batch", "Lead ingestion")


def get_opportunity_batch(request: Request) -> Any:
    """Retrieve the opportunity BatchProcessor from app.state, 503 if not available."""
    return _get_state_service(request, "opportunity_batch", "Opportunity ingestion")


def get_sync_orchestrator(request: Request) -> Any:
    """Retrieve the SyncOrchestrator from app.state, 503 if not available."""
    return _get_state_service(request, "sync_orchestrator", "Ad sync orchestrator")
