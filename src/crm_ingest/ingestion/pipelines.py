"""Per-entity units of work: map → validate → (reconcile) → upsert.

One pipeline call handles exactly one record. Record-level problems are
raised as RecordMappingError / PersistenceError for the BatchProcessor to
turn into per-record failures.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from src.crm_ingest.ingestion.exceptions import PersistenceError, RecordMappingError
from src.crm_ingest.ingestion.mappers import LeadMapper, OpportunityMapper
from src.crm_ingest.ingestion.reconciler import EntityReconciler
from src.crm_ingest.ingestion.repository import IngestionRepository
from src.crm_ingest.ingestion.schemas import EntityKind


class EntityPipeline(Protocol):
    """What the BatchProcessor needs from an entity-specific pipeline."""

    entity: EntityKind

    async def ingest(self, payload: Mapping[str, Any]) -> str:
        """Persist one record and return its dynamics_id."""
        ...


class LeadPipeline:
    """Maps and upserts a single lead."""

    entity = EntityKind.LEAD

    def __init__(self, mapper: LeadMapper, repository: IngestionRepository) -> None:
        self._mapper = mapper
        self._repository = repository

    async def ingest(self, payload: Mapping[str, Any]) -> str:
        lead = self._mapper.map(payload)
        if not lead.dynamics_id:
            raise RecordMappingError("No leadid found")
        await self._repository.upsert_lead(lead)
        return lead.dynamics_id


class OpportunityPipeline:
    """Maps an opportunity, links it to its lead, then upserts it."""

    entity = EntityKind.OPPORTUNITY

    def __init__(
        self,
        mapper: OpportunityMapper,
        reconciler: EntityReconciler,
        repository: IngestionRepository,
    ) -> None:
        self._mapper = mapper
        self._reconciler = reconciler
        self._repository = repository

    async def ingest(self, payload: Mapping[str, Any]) -> str:
        opportunity = self._mapper.map(payload)
        if not opportunity.dynamics_id:
            raise RecordMappingError("No opportunityid found")
        try:
            linked = await self._reconciler.link(opportunity)
        except PersistenceError as exc:
            raise PersistenceError(exc.message, dynamics_id=opportunity.dynamics_id) from exc
        await self._repository.upsert_opportunity(linked)
        return opportunity.dynamics_id
