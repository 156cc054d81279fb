"""Exception handlers translating request-level errors to ``{"error": ...}`` JSON."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.crm_ingest.ingestion.exceptions import IngestionError

logger = structlog.get_logger(__name__)


async def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    logger.warning(
        "api.request_rejected",
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IngestionError, ingestion_error_handler)  # type: ignore[arg-type]
