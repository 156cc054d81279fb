"""Unit tests for IngestionRepository and SyncLogRepository.

The repositories are driven through a session-factory double that records
the executed statements; statements are compiled with the PostgreSQL
dialect to check the upsert shape without a database.
"""

from __future__ import annotations

import re
import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from src.crm_ingest.adsync.models import SyncLogModel
from src.crm_ingest.adsync.repository import SyncLogRepository
from src.crm_ingest.adsync.schemas import JobStatus, SyncLogCreate
from src.crm_ingest.ingestion.exceptions import PersistenceError
from src.crm_ingest.ingestion.models import LeadModel, OpportunityModel
from src.crm_ingest.ingestion.repository import IngestionRepository
from src.crm_ingest.ingestion.schemas import CanonicalLead, CanonicalOpportunity

DIALECT = postgresql.dialect()


# ── Helpers ────────────────────────────────────────────────────────────────


class RecordingSession:
    """AsyncSession stand-in: records statements, returns a canned result."""

    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result if result is not None else MagicMock()
        self.error = error
        self.statements: list = []
        self.added: list = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt):
        self.statements.append(stmt)
        if self.error is not None:
            raise self.error
        return self.result

    def add(self, model) -> None:
        self.added.append(model)

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, model) -> None:
        model.id = uuid.UUID("00000000-0000-0000-0000-0000000000aa")


def _factory(session: RecordingSession):
    async def session_factory():
        yield session

    return session_factory


def _upsert_result(row_id: uuid.UUID) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = row_id
    return result


def _compiled(stmt):
    return stmt.compile(dialect=DIALECT)


def _q(name: str) -> str:
    return DIALECT.identifier_preparer.quote(name)


def _store_error(message: str) -> OperationalError:
    return OperationalError("INSERT ...", {}, Exception(message))


# ── Upserts ────────────────────────────────────────────────────────────────


class TestUpsertLead:
    async def test_returns_row_id_and_commits(self):
        row_id = uuid.uuid4()
        session = RecordingSession(result=_upsert_result(row_id))
        repo = IngestionRepository(_factory(session))

        assert await repo.upsert_lead(CanonicalLead(dynamics_id="L1")) == str(row_id)
        assert session.commits == 1

    async def test_conflicts_on_dynamics_id_and_replaces_every_column(self):
        session = RecordingSession(result=_upsert_result(uuid.uuid4()))
        repo = IngestionRepository(_factory(session))

        await repo.upsert_lead(CanonicalLead(dynamics_id="L1", full_name="Ann Smith"))

        sql = str(_compiled(session.statements[0]))
        assert "ON CONFLICT (dynamics_id) DO UPDATE SET" in sql
        update_clause = sql.split("DO UPDATE SET", 1)[1]
        for name in CanonicalLead.model_fields:
            if name == "dynamics_id":
                continue
            assert f"{_q(name)} = excluded.{_q(name)}" in update_clause, name
        assert not re.search(r"\bdynamics_id = excluded", update_clause)
        assert "synced_at = now()" in update_clause
        assert "RETURNING leads.id" in sql

    async def test_store_error_becomes_persistence_error(self):
        session = RecordingSession(error=_store_error("value too long for type"))
        repo = IngestionRepository(_factory(session))

        with pytest.raises(PersistenceError) as exc_info:
            await repo.upsert_lead(CanonicalLead(dynamics_id="L1"))

        assert exc_info.value.message == "value too long for type"
        assert exc_info.value.dynamics_id == "L1"
        assert session.rollbacks == 1
        assert session.commits == 0


class TestUpsertOpportunity:
    async def test_lead_id_is_bound_as_uuid(self):
        lead_id = uuid.uuid4()
        session = RecordingSession(result=_upsert_result(uuid.uuid4()))
        repo = IngestionRepository(_factory(session))

        await repo.upsert_opportunity(CanonicalOpportunity(dynamics_id="O1", lead_id=str(lead_id)))

        params = _compiled(session.statements[0]).params
        assert params["lead_id"] == lead_id

    async def test_missing_lead_id_is_null(self):
        session = RecordingSession(result=_upsert_result(uuid.uuid4()))
        repo = IngestionRepository(_factory(session))

        await repo.upsert_opportunity(CanonicalOpportunity(dynamics_id="O1"))

        assert _compiled(session.statements[0]).params["lead_id"] is None

    async def test_conflict_target_and_returning(self):
        session = RecordingSession(result=_upsert_result(uuid.uuid4()))
        repo = IngestionRepository(_factory(session))

        await repo.upsert_opportunity(CanonicalOpportunity(dynamics_id="O1"))

        sql = str(_compiled(session.statements[0]))
        assert "ON CONFLICT (dynamics_id) DO UPDATE SET" in sql
        assert f"{_q('lead_id')} = excluded.{_q('lead_id')}" in sql
        assert "RETURNING opportunities.id" in sql


# ── Lookups ────────────────────────────────────────────────────────────────


def _lookup_result(*models) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(models)
    return result


class TestLeadLookups:
    async def test_by_name_is_case_insensitive_and_newest_first(self):
        stored = LeadModel(
            id=uuid.uuid4(),
            dynamics_id="L1",
            full_name="Ann Smith",
            gh_code="GH24",
            campaign_type="Type 2",
        )
        session = RecordingSession(result=_lookup_result(stored))
        repo = IngestionRepository(_factory(session))

        (found,) = await repo.find_leads_by_full_name("  ANN Smith ")

        assert found.id == str(stored.id)
        assert found.gh_code == "GH24"
        compiled = _compiled(session.statements[0])
        assert "lower(leads.full_name) = " in str(compiled)
        assert "ORDER BY leads.modified_on DESC NULLS LAST, leads.synced_at DESC" in str(compiled)
        assert "ann smith" in compiled.params.values()

    async def test_by_dynamics_id_is_exact(self):
        session = RecordingSession(result=_lookup_result())
        repo = IngestionRepository(_factory(session))

        assert await repo.find_leads_by_dynamics_id("L-404") == []
        compiled = _compiled(session.statements[0])
        assert "leads.dynamics_id = " in str(compiled)
        assert "L-404" in compiled.params.values()

    async def test_store_error_becomes_persistence_error(self):
        session = RecordingSession(error=_store_error("connection reset"))
        repo = IngestionRepository(_factory(session))

        with pytest.raises(PersistenceError, match="connection reset"):
            await repo.find_leads_by_full_name("Ann Smith")


# ── Schema ─────────────────────────────────────────────────────────────────


class TestColumnTypes:
    @pytest.mark.parametrize("model", [LeadModel, OpportunityModel])
    def test_string_columns_are_unbounded(self, model):
        for column in model.__table__.columns:
            length = getattr(column.type, "length", None)
            assert length is None, f"{model.__tablename__}.{column.name} is bounded"


# ── Sync Log ───────────────────────────────────────────────────────────────


class TestSyncLogRepository:
    async def test_record_appends_row(self):
        session = RecordingSession()
        repo = SyncLogRepository(_factory(session))

        row_id = await repo.record(
            SyncLogCreate(
                platform="meta",
                status=JobStatus.ERROR,
                error_message="Meta sync failed with 500",
            )
        )

        assert row_id == "00000000-0000-0000-0000-0000000000aa"
        (model,) = session.added
        assert isinstance(model, SyncLogModel)
        assert model.platform == "meta"
        assert model.status == "error"
        assert model.rows_synced == 0
        assert model.error_message == "Meta sync failed with 500"
        assert session.commits == 1
