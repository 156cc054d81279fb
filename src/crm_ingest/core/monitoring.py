"""Prometheus metrics and Sentry integration.

Provides:
- MetricsMiddleware: HTTP request count/duration keyed by route template
- webhook_records_total / webhook_batch_size: Dynamics webhook throughput
- track_sync_job(): Context manager for ad-sync job count and duration
- init_sentry(): Sentry init that tags events with the current request_id
- get_metrics_response(): Prometheus exposition for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
import structlog
from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "HTTP requests by route",
    ["method", "route", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency by route",
    ["method", "route"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Webhook Metrics ──────────────────────────────────────────────────────────

webhook_records_total = Counter(
    "webhook_records_total",
    "Dynamics webhook records processed",
    ["entity", "outcome"],
)

webhook_batch_size = Histogram(
    "webhook_batch_size",
    "Records per Dynamics webhook delivery",
    ["entity"],
    buckets=(1, 2, 5, 10, 25, 50, 100, 250),
)

# ── Ad Sync Metrics ──────────────────────────────────────────────────────────

ads_sync_jobs_total = Counter(
    "ads_sync_jobs_total",
    "Ad-spend sync job runs",
    ["platform", "status"],
)

ads_sync_job_duration_seconds = Histogram(
    "ads_sync_job_duration_seconds",
    "Wall time of one ad-spend sync job call",
    ["platform"],
    buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0),
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and latency.

    The label is the matched route template rather than the raw path, so
    unknown paths collapse into a single ``unmatched`` series.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        route = getattr(request.scope.get("route"), "path", "unmatched")
        http_requests_total.labels(
            method=request.method,
            route=route,
            status_code=str(response.status_code),
        ).inc()
        http_request_duration_seconds.labels(method=request.method, route=route).observe(elapsed)

        return response


@asynccontextmanager
async def track_sync_job(platform: str) -> AsyncGenerator[dict[str, Any], None]:
    """Record one sync job call.

    Usage:
        async with track_sync_job("meta") as tracker:
            outcome = await run(...)
            tracker["status"] = outcome.status.value

    ``status`` defaults to "success" and becomes "error" if the block raises.
    """
    tracker: dict[str, Any] = {"status": "success"}
    started = time.perf_counter()

    try:
        yield tracker
    except Exception:
        tracker["status"] = "error"
        raise
    finally:
        ads_sync_job_duration_seconds.labels(platform=platform).observe(
            time.perf_counter() - started
        )
        ads_sync_jobs_total.labels(platform=platform, status=tracker["status"]).inc()


def _tag_request_id(event: dict, hint: dict) -> dict:
    request_id = structlog.contextvars.get_contextvars().get("request_id")
    if request_id:
        event.setdefault("tags", {})["request_id"] = request_id
    return event


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1 if environment == "production" else 1.0,
        integrations=[StarletteIntegration(), FastApiIntegration()],
        before_send=_tag_request_id,
    )


def get_metrics_response() -> Response:
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
