"""Dynamics CRM webhook endpoints.

One endpoint per entity kind. Each accepts ``{"data": record | [records]}``
authenticated by the ``x-webhook-secret`` header and returns a batch
summary. A 200 means the batch was processed: callers must inspect
``succeeded``/``failed`` to learn whether every record was stored.

Endpoints:
- POST /webhooks/dynamics/leads
- POST /webhooks/dynamics/opportunities
- OPTIONS/HEAD on both -> permissive preflight
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from src.crm_ingest.api.deps import (
    get_lead_batch,
    get_opportunity_batch,
    verify_webhook_secret,
)
from src.crm_ingest.ingestion.batch import BatchProcessor
from src.crm_ingest.ingestion.exceptions import (
    EmptyBatchError,
    MalformedRequestError,
    MethodNotSupported,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks/dynamics", tags=["webhooks"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, content-type, x-webhook-secret",
    "Access-Control-Allow-Methods": "POST, HEAD, OPTIONS",
}

_REJECTED_METHODS = ["GET", "PUT", "PATCH", "DELETE"]


# ── Request Helpers ─────────────────────────────────────────────────────────


async def parse_records(request: Request) -> list[Any]:
    """Extract the record list from ``{"data": record | [records]}``.

    Raises:
        MalformedRequestError: Body is not a JSON object.
        EmptyBatchError: ``data`` is missing, empty, or an empty list.
    """
    try:
        body = await request.json()
    except ValueError:
        raise MalformedRequestError() from None
    if not isinstance(body, dict):
        raise MalformedRequestError()

    data = body.get("data")
    if isinstance(data, list):
        records = data
    elif data:
        records = [data]
    else:
        records = []

    if not records:
        raise EmptyBatchError()
    return records


async def _ingest(request: Request, batch: BatchProcessor) -> JSONResponse:
    records = await parse_records(request)
    try:
        summary = await batch.process(records)
    except Exception:
        logger.exception("webhook.unhandled_error", entity=batch.entity)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
            headers=CORS_HEADERS,
        )
    return JSONResponse(content=summary.to_response(), headers=CORS_HEADERS)


def _preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


def _reject_method(request: Request) -> None:
    raise MethodNotSupported()


# ── Leads ───────────────────────────────────────────────────────────────────


@router.post("/leads", dependencies=[Depends(verify_webhook_secret)])
async def ingest_leads(
    request: Request,
    batch: BatchProcessor = Depends(get_lead_batch),
) -> JSONResponse:
    """Map and upsert one or more Dynamics lead records."""
    return await _ingest(request, batch)


@router.api_route("/leads", methods=["OPTIONS", "HEAD"], include_in_schema=False)
async def leads_preflight() -> Response:
    return _preflight()


@router.api_route("/leads", methods=_REJECTED_METHODS, include_in_schema=False)
async def leads_method_not_allowed(request: Request) -> None:
    _reject_method(request)


# ── Opportunities ───────────────────────────────────────────────────────────


@router.post("/opportunities", dependencies=[Depends(verify_webhook_secret)])
async def ingest_opportunities(
    request: Request,
    batch: BatchProcessor = Depends(get_opportunity_batch),
) -> JSONResponse:
    """Map, reconcile against stored leads, and upsert opportunity records."""
    return await _ingest(request, batch)


@router.api_route("/opportunities", methods=["OPTIONS", "HEAD"], include_in_schema=False)
async def opportunities_preflight() -> Response:
    return _preflight()


@router.api_route("/opportunities", methods=_REJECTED_METHODS, include_in_schema=False)
async def opportunities_method_not_allowed(request: Request) -> None:
    _reject_method(request)
