"""API tests for the Dynamics webhook endpoints.

Uses a minimal FastAPI app with the v1 router, the IngestionError handlers
and BatchProcessors over an in-memory repository on app.state.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.crm_ingest.config import get_settings
from src.crm_ingest.ingestion.batch import BatchProcessor
from src.crm_ingest.ingestion.schemas import EntityKind

SECRET = "s3cret-webhook"
LEADS_URL = "/api/v1/webhooks/dynamics/leads"
OPPORTUNITIES_URL = "/api/v1/webhooks/dynamics/opportunities"
AUTH = {"x-webhook-secret": SECRET}


def _make_app(lead_batch=None, opportunity_batch=None):
    """Create a minimal FastAPI app with the v1 router and error handlers."""
    from fastapi import FastAPI

    from src.crm_ingest.api.errors import install_exception_handlers
    from src.crm_ingest.api.v1.router import router

    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(router)
    app.state.lead_batch = lead_batch
    app.state.opportunity_batch = opportunity_batch
    return app


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setenv("DYNAMICS_WEBHOOK_SECRET", SECRET)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client(lead_batch, opportunity_batch):
    app = _make_app(lead_batch, opportunity_batch)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Successful Ingestion ───────────────────────────────────────────────────


class TestIngest:
    async def test_single_record(self, client, repo):
        response = await client.post(
            LEADS_URL,
            json={"data": {"leadid": "L1", "fullname": "Ann Smith", "gd_utmcampaign": "gh17"}},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "entity": "lead",
            "total": 1,
            "succeeded": 1,
            "failed": 0,
        }
        assert repo.leads["L1"][1].gh_code == "GH17"

    async def test_record_array(self, client, repo):
        response = await client.post(
            LEADS_URL,
            json={"data": [{"leadid": "L1"}, {"leadid": "L2"}]},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["succeeded"] == 2
        assert set(repo.leads) == {"L1", "L2"}

    async def test_partial_failure_still_200(self, client):
        response = await client.post(
            LEADS_URL,
            json={"data": [{"leadid": "L1"}, {"fullname": "No Id"}]},
            headers=AUTH,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["errors"] == [{"success": False, "dynamics_id": None, "error": "No leadid found"}]

    async def test_opportunity_links_to_lead(self, client, repo):
        await client.post(
            LEADS_URL,
            json={"data": {"leadid": "L1", "fullname": "Ann Smith", "gd_utmcampaign": "gh17"}},
            headers=AUTH,
        )

        response = await client.post(
            OPPORTUNITIES_URL,
            json={"data": {"opportunityid": "O1", "_parentcontactid_value": "L1"}},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["entity"] == "opportunity"
        opp = repo.opportunity("O1")
        assert opp.lead_id == repo.lead_row_id("L1")
        assert opp.gh_code == "GH17"

    async def test_response_carries_cors_header(self, client):
        response = await client.post(LEADS_URL, json={"data": {"leadid": "L1"}}, headers=AUTH)
        assert response.headers["access-control-allow-origin"] == "*"


# ── Request-Level Rejections ───────────────────────────────────────────────


class TestRejections:
    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    async def test_other_methods_not_allowed(self, client, method):
        response = await client.request(method, LEADS_URL)

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    async def test_missing_secret(self, client, repo):
        response = await client.post(LEADS_URL, json={"data": {"leadid": "L1"}})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert repo.leads == {}

    async def test_wrong_secret(self, client):
        response = await client.post(
            OPPORTUNITIES_URL,
            json={"data": {"opportunityid": "O1"}},
            headers={"x-webhook-secret": "wrong"},
        )
        assert response.status_code == 401

    async def test_unset_secret_rejects_everything(self, client, monkeypatch):
        monkeypatch.setenv("DYNAMICS_WEBHOOK_SECRET", "")
        get_settings.cache_clear()

        response = await client.post(
            LEADS_URL, json={"data": {"leadid": "L1"}}, headers={"x-webhook-secret": ""}
        )

        assert response.status_code == 401

    @pytest.mark.parametrize("body", [{"data": []}, {"data": None}, {"data": {}}, {}])
    async def test_empty_batch(self, client, body):
        response = await client.post(LEADS_URL, json=body, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "No records in data"}

    async def test_invalid_json(self, client):
        response = await client.post(
            LEADS_URL,
            content=b"{not json",
            headers={**AUTH, "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    async def test_body_must_be_object(self, client):
        response = await client.post(LEADS_URL, json=[{"leadid": "L1"}], headers=AUTH)
        assert response.status_code == 400

    async def test_unhandled_error_returns_500(self):
        pipeline = MagicMock()
        pipeline.entity = EntityKind.LEAD
        pipeline.ingest = AsyncMock(side_effect=RuntimeError("boom"))
        app = _make_app(lead_batch=BatchProcessor(pipeline))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post(LEADS_URL, json={"data": {"leadid": "L1"}}, headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    async def test_uninitialized_service_returns_503(self):
        app = _make_app()

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post(LEADS_URL, json={"data": {"leadid": "L1"}}, headers=AUTH)

        assert response.status_code == 503


# ── Preflight ──────────────────────────────────────────────────────────────


class TestPreflight:
    @pytest.mark.parametrize("url", [LEADS_URL, OPPORTUNITIES_URL])
    async def test_options(self, client, url):
        response = await client.options(url)

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "x-webhook-secret" in response.headers["access-control-allow-headers"]
        assert response.headers["access-control-allow-methods"] == "POST, HEAD, OPTIONS"

    async def test_head_needs_no_secret(self, client):
        response = await client.head(LEADS_URL)
        assert response.status_code == 200


class TestBrowserPreflight:
    """Preflights through the full application stack, middleware included."""

    BROWSER_HEADERS = {
        "Origin": "https://dashboard.example.com",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "content-type, x-client-info",
    }

    @pytest.mark.parametrize("url", [LEADS_URL, OPPORTUNITIES_URL, "/api/v1/sync/ads"])
    async def test_any_origin_and_headers_get_200(self, url):
        from src.crm_ingest.main import create_app

        async with AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as ac:
            response = await ac.options(url, headers=self.BROWSER_HEADERS)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestHealth:
    async def test_liveness(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
