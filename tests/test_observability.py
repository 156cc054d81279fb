"""Tests for request-id logging middleware and sync job metrics."""

from __future__ import annotations

import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from src.crm_ingest.api.middleware import LoggingMiddleware
from src.crm_ingest.core.monitoring import track_sync_job


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRequestId:
    async def test_generated_when_absent(self):
        async with AsyncClient(transport=ASGITransport(app=_make_app()), base_url="http://test") as ac:
            response = await ac.get("/ping")

        assert response.status_code == 200
        uuid.UUID(response.headers["x-request-id"])

    async def test_caller_supplied_id_is_reused(self):
        async with AsyncClient(transport=ASGITransport(app=_make_app()), base_url="http://test") as ac:
            response = await ac.get("/ping", headers={"X-Request-ID": "dyn-plugin:42"})

        assert response.headers["x-request-id"] == "dyn-plugin:42"

    async def test_malformed_id_is_replaced(self):
        async with AsyncClient(transport=ASGITransport(app=_make_app()), base_url="http://test") as ac:
            response = await ac.get("/ping", headers={"X-Request-ID": "not ok; drop table"})

        assert response.headers["x-request-id"] != "not ok; drop table"
        uuid.UUID(response.headers["x-request-id"])


class TestTrackSyncJob:
    async def test_records_reported_status(self):
        labels = {"platform": "obs-test", "status": "error"}
        before = _sample("ads_sync_jobs_total", labels)

        async with track_sync_job("obs-test") as tracker:
            tracker["status"] = "error"

        assert _sample("ads_sync_jobs_total", labels) == before + 1
        assert _sample("ads_sync_job_duration_seconds_count", {"platform": "obs-test"}) >= 1

    async def test_exception_marks_error_and_propagates(self):
        labels = {"platform": "obs-crash", "status": "error"}
        before = _sample("ads_sync_jobs_total", labels)

        with pytest.raises(RuntimeError):
            async with track_sync_job("obs-crash"):
                raise RuntimeError("boom")

        assert _sample("ads_sync_jobs_total", labels) == before + 1
