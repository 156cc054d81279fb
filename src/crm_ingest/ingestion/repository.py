"""Ingestion repository -- idempotent upserts and lead lookups.

Provides IngestionRepository with the session_factory callable pattern: each
call opens its own AsyncSession, so concurrent records in one webhook batch
never share a transaction.

Upserts are ``INSERT ... ON CONFLICT (dynamics_id) DO UPDATE`` replacing every
mapped column. The unique constraint on dynamics_id is the only guard
against duplicate rows; there is no application-level locking. Store errors
are re-raised as PersistenceError so the BatchProcessor can fail just the
affected record.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.crm_ingest.ingestion.exceptions import PersistenceError
from src.crm_ingest.ingestion.models import LeadModel, OpportunityModel
from src.crm_ingest.ingestion.schemas import (
    CanonicalLead,
    CanonicalOpportunity,
    LeadReference,
)

logger = structlog.get_logger(__name__)

# Enough rows to tell "one match" from "ambiguous" without loading every namesake.
_LOOKUP_LIMIT = 5


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_reference(model: LeadModel) -> LeadReference:
    """Convert LeadModel to the LeadReference used by the reconciler."""
    return LeadReference(
        id=str(model.id),
        dynamics_id=model.dynamics_id,
        full_name=model.full_name,
        gh_code=model.gh_code,
        campaign_type=model.campaign_type,
    )


def _store_error_message(exc: SQLAlchemyError) -> str:
    """Driver-level message without the SQL statement and parameters."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


# ── Repository ──────────────────────────────────────────────────────────────


class IngestionRepository:
    """Async persistence for leads and opportunities.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Upserts ─────────────────────────────────────────────────────────────

    async def upsert_lead(self, lead: CanonicalLead) -> str:
        """Insert or fully replace the lead row for ``lead.dynamics_id``.

        Returns:
            The row's UUID as a string.

        Raises:
            PersistenceError: If the store rejects the statement.
        """
        values = lead.model_dump()
        return await self._upsert(LeadModel, values)

    async def upsert_opportunity(self, opportunity: CanonicalOpportunity) -> str:
        """Insert or fully replace the opportunity row for its dynamics_id.

        Raises:
            PersistenceError: If the store rejects the statement.
        """
        values = opportunity.model_dump()
        values["lead_id"] = uuid.UUID(values["lead_id"]) if values["lead_id"] else None
        return await self._upsert(OpportunityModel, values)

    async def _upsert(self, model: type[LeadModel] | type[OpportunityModel], values: dict[str, Any]) -> str:
        stmt = pg_insert(model).values(**values)
        replace = {name: stmt.excluded[name] for name in values if name != "dynamics_id"}
        replace["synced_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[model.dynamics_id],
            set_=replace,
        ).returning(model.id)

        async for session in self._session_factory():
            try:
                result = await session.execute(stmt)
                row_id = result.scalar_one()
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.warning(
                    "ingest.upsert_failed",
                    table=model.__tablename__,
                    dynamics_id=values.get("dynamics_id"),
                    error=_store_error_message(exc),
                )
                raise PersistenceError(
                    _store_error_message(exc), dynamics_id=values.get("dynamics_id")
                ) from exc
            return str(row_id)

    # ── Lead Lookups ────────────────────────────────────────────────────────

    async def find_leads_by_dynamics_id(self, dynamics_id: str) -> list[LeadReference]:
        """Leads whose external identifier equals ``dynamics_id`` exactly."""
        stmt = (
            select(LeadModel)
            .where(LeadModel.dynamics_id == dynamics_id)
            .limit(_LOOKUP_LIMIT)
        )
        return await self._find_leads(stmt)

    async def find_leads_by_full_name(self, full_name: str) -> list[LeadReference]:
        """Leads whose full name matches case-insensitively.

        Ordered most recently modified first so "take the first match" is
        deterministic across calls.
        """
        stmt = (
            select(LeadModel)
            .where(func.lower(LeadModel.full_name) == full_name.strip().lower())
            .order_by(
                LeadModel.modified_on.desc().nulls_last(),
                LeadModel.synced_at.desc(),
            )
            .limit(_LOOKUP_LIMIT)
        )
        return await self._find_leads(stmt)

    async def _find_leads(self, stmt: Any) -> list[LeadReference]:
        async for session in self._session_factory():
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                raise PersistenceError(_store_error_message(exc)) from exc
            return [_model_to_reference(m) for m in result.scalars().all()]
