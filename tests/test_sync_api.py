"""API tests for the ad-sync trigger endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.crm_ingest.adsync.exceptions import UpstreamJobError
from src.crm_ingest.adsync.orchestrator import SyncOrchestrator
from src.crm_ingest.config import get_settings

SYNC_URL = "/api/v1/sync/ads"


def _make_app(orchestrator=None):
    """Create a minimal FastAPI app with the v1 router and error handlers."""
    from fastapi import FastAPI

    from src.crm_ingest.api.errors import install_exception_handlers
    from src.crm_ingest.api.v1.router import router

    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(router)
    app.state.sync_orchestrator = orchestrator
    return app


def _job_client(meta, google):
    async def run_job(job):
        outcome = {"meta": meta, "google": google}[job.platform]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = AsyncMock()
    client.run_job.side_effect = run_job
    return client


@pytest.fixture(autouse=True)
def trigger_token(monkeypatch):
    monkeypatch.setenv("SYNC_TRIGGER_TOKEN", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def make_client(sync_log):
    clients = []

    async def factory(meta, google):
        orchestrator = SyncOrchestrator(_job_client(meta, google), sync_log)
        ac = AsyncClient(transport=ASGITransport(app=_make_app(orchestrator)), base_url="http://test")
        clients.append(ac)
        return ac

    yield factory
    for ac in clients:
        await ac.aclose()


class TestTrigger:
    async def test_success(self, make_client, sync_log):
        client = await make_client({"rows_synced": 10}, {"rows_synced": 120})

        response = await client.post(SYNC_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert [r["platform"] for r in data["results"]] == ["meta", "google"]
        assert len(sync_log.entries) == 2

    async def test_partial_is_still_200(self, make_client):
        client = await make_client(
            UpstreamJobError("meta", "Meta sync failed with 500", 500),
            {"rows_synced": 120},
        )

        response = await client.post(SYNC_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "partial"
        assert data["results"][0] == {
            "platform": "meta",
            "status": "error",
            "error": "Meta sync failed with 500",
        }
        assert data["results"][1]["rows_synced"] == 120

    async def test_options(self, make_client):
        client = await make_client({}, {})

        response = await client.options(SYNC_URL)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_uninitialized_orchestrator_returns_503(self):
        app = _make_app(None)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post(SYNC_URL)
        assert response.status_code == 503


class TestTriggerToken:
    @pytest.fixture(autouse=True)
    def configured_token(self, monkeypatch, trigger_token):
        monkeypatch.setenv("SYNC_TRIGGER_TOKEN", "cron-token")
        get_settings.cache_clear()

    async def test_missing_token(self, make_client, sync_log):
        client = await make_client({}, {})

        response = await client.post(SYNC_URL)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert sync_log.entries == []

    async def test_wrong_token(self, make_client):
        client = await make_client({}, {})
        response = await client.post(SYNC_URL, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    async def test_valid_token(self, make_client):
        client = await make_client({}, {})
        response = await client.post(SYNC_URL, headers={"Authorization": "Bearer cron-token"})
        assert response.status_code == 200
