"""Ad-spend sync trigger endpoint.

POST /sync/ads runs the Meta and Google sync jobs concurrently and returns
``{"status": "success" | "partial", "results": [...]}``. Individual job
failures are reported in ``results`` and never fail the request.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.crm_ingest.adsync.orchestrator import SyncOrchestrator
from src.crm_ingest.adsync.schemas import OrchestratorResult
from src.crm_ingest.api.deps import get_sync_orchestrator, verify_sync_trigger

router = APIRouter(prefix="/sync", tags=["sync"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


@router.post(
    "/ads",
    response_model=OrchestratorResult,
    dependencies=[Depends(verify_sync_trigger)],
)
async def trigger_ads_sync(
    response: Response,
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> OrchestratorResult:
    """Run every platform sync job once."""
    response.headers.update(CORS_HEADERS)
    return await orchestrator.run()


@router.options("/ads", include_in_schema=False)
async def ads_sync_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
