"""Shared fixtures for ingestion and ad-sync tests.

Provides:
- InMemoryIngestionRepository: dict-backed stand-in for IngestionRepository
  that upserts by dynamics_id exactly like the PostgreSQL ON CONFLICT path
- InMemorySyncLog: append-only list standing in for SyncLogRepository
- Mapper, reconciler, pipeline and batch fixtures wired to the in-memory store

No database is required: every test runs against these doubles.
"""

from __future__ import annotations

import uuid

import pytest

from src.crm_ingest.adsync.schemas import SyncLogCreate
from src.crm_ingest.ingestion.batch import BatchProcessor
from src.crm_ingest.ingestion.campaigns import CampaignCodeResolver, default_campaign_mapping
from src.crm_ingest.ingestion.mappers import LeadMapper, OpportunityMapper
from src.crm_ingest.ingestion.pipelines import LeadPipeline, OpportunityPipeline
from src.crm_ingest.ingestion.reconciler import EntityReconciler
from src.crm_ingest.ingestion.schemas import (
    CanonicalLead,
    CanonicalOpportunity,
    LeadReference,
)


# ── In-Memory Doubles ──────────────────────────────────────────────────────


class InMemoryIngestionRepository:
    """Dict-backed repository keyed by dynamics_id.

    Row ids are stable across upserts of the same dynamics_id, and every
    upsert replaces the whole record.
    """

    def __init__(self) -> None:
        self.leads: dict[str, tuple[str, CanonicalLead]] = {}
        self.opportunities: dict[str, tuple[str, CanonicalOpportunity]] = {}
        self.upsert_calls = 0

    async def upsert_lead(self, lead: CanonicalLead) -> str:
        self.upsert_calls += 1
        row_id = self.leads[lead.dynamics_id][0] if lead.dynamics_id in self.leads else str(uuid.uuid4())
        self.leads[lead.dynamics_id] = (row_id, lead)
        return row_id

    async def upsert_opportunity(self, opportunity: CanonicalOpportunity) -> str:
        self.upsert_calls += 1
        key = opportunity.dynamics_id
        row_id = self.opportunities[key][0] if key in self.opportunities else str(uuid.uuid4())
        self.opportunities[key] = (row_id, opportunity)
        return row_id

    async def find_leads_by_dynamics_id(self, dynamics_id: str) -> list[LeadReference]:
        if dynamics_id not in self.leads:
            return []
        row_id, lead = self.leads[dynamics_id]
        return [_reference(row_id, lead)]

    async def find_leads_by_full_name(self, full_name: str) -> list[LeadReference]:
        needle = full_name.strip().lower()
        matches = [
            (row_id, lead)
            for row_id, lead in self.leads.values()
            if lead.full_name and lead.full_name.lower() == needle
        ]
        matches.sort(key=lambda item: item[1].modified_on or "", reverse=True)
        return [_reference(row_id, lead) for row_id, lead in matches]

    def lead_row_id(self, dynamics_id: str) -> str:
        return self.leads[dynamics_id][0]

    def opportunity(self, dynamics_id: str) -> CanonicalOpportunity:
        return self.opportunities[dynamics_id][1]


def _reference(row_id: str, lead: CanonicalLead) -> LeadReference:
    return LeadReference(
        id=row_id,
        dynamics_id=lead.dynamics_id,
        full_name=lead.full_name,
        gh_code=lead.gh_code,
        campaign_type=lead.campaign_type,
    )


class InMemorySyncLog:
    """Append-only list of sync_log entries."""

    def __init__(self) -> None:
        self.entries: list[SyncLogCreate] = []

    async def record(self, entry: SyncLogCreate) -> str:
        self.entries.append(entry)
        return str(uuid.uuid4())

    def for_platform(self, platform: str) -> list[SyncLogCreate]:
        return [e for e in self.entries if e.platform == platform]


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture
def campaigns() -> CampaignCodeResolver:
    return CampaignCodeResolver(default_campaign_mapping())


@pytest.fixture
def repo() -> InMemoryIngestionRepository:
    return InMemoryIngestionRepository()


@pytest.fixture
def sync_log() -> InMemorySyncLog:
    return InMemorySyncLog()


@pytest.fixture
def lead_mapper(campaigns) -> LeadMapper:
    return LeadMapper(campaigns)


@pytest.fixture
def opportunity_mapper(campaigns) -> OpportunityMapper:
    return OpportunityMapper(campaigns)


@pytest.fixture
def reconciler(repo) -> EntityReconciler:
    return EntityReconciler(repo)


@pytest.fixture
def lead_batch(lead_mapper, repo) -> BatchProcessor:
    return BatchProcessor(LeadPipeline(lead_mapper, repo))


@pytest.fixture
def opportunity_batch(opportunity_mapper, reconciler, repo) -> BatchProcessor:
    return BatchProcessor(OpportunityPipeline(opportunity_mapper, reconciler, repo))
