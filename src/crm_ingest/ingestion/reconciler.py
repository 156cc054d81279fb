"""Opportunity → lead reconciliation.

Dynamics does not reliably send the originating lead's identifier on an
opportunity. The reconciler walks an explicit, ordered list of named
strategies and stops at the first one that finds a lead:

1. originating_lead -- exact dynamics_id match on the originating lead
   reference (``_originatingleadid_value`` / ``originatingleadid``).
2. parent_contact -- the parent contact reference used as a stand-in lead
   identifier (some records model a contact where a lead would be).
3. lead_name -- case-insensitive exact match on the lead's full name against
   the opportunity's originating lead display name; first row wins.

Steps 1 and 2 only accept a single unambiguous row. Nothing is retried: if an
opportunity arrives before its lead has committed it simply stays unlinked,
with the raw reference identifiers kept on the record for later repair.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from src.crm_ingest.ingestion.schemas import (
    CanonicalOpportunity,
    LeadReference,
    ReconciliationResult,
)

logger = structlog.get_logger(__name__)


class LeadLookup(Protocol):
    """Read access to previously ingested leads (IngestionRepository)."""

    async def find_leads_by_dynamics_id(self, dynamics_id: str) -> list[LeadReference]: ...

    async def find_leads_by_full_name(self, full_name: str) -> list[LeadReference]: ...


@dataclass(frozen=True)
class ResolutionStrategy:
    """One named step of the fallback chain."""

    name: str
    resolve: Callable[[CanonicalOpportunity], Awaitable[LeadReference | None]]


class EntityReconciler:
    """Links opportunities to stored leads and applies campaign inheritance.

    Args:
        leads: LeadLookup implementation.
        strategies: Optional custom chain; defaults to the three steps above.
    """

    def __init__(
        self,
        leads: LeadLookup,
        strategies: Sequence[ResolutionStrategy] | None = None,
    ) -> None:
        self._leads = leads
        self._strategies: tuple[ResolutionStrategy, ...] = tuple(
            strategies
            if strategies is not None
            else (
                ResolutionStrategy("originating_lead", self._by_originating_lead),
                ResolutionStrategy("parent_contact", self._by_parent_contact),
                ResolutionStrategy("lead_name", self._by_lead_name),
            )
        )

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def reconcile(self, opportunity: CanonicalOpportunity) -> ReconciliationResult:
        """Run the strategies in order; first match wins."""
        for strategy in self._strategies:
            lead = await strategy.resolve(opportunity)
            if lead is not None:
                logger.debug(
                    "reconcile.lead_resolved",
                    opportunity_id=opportunity.dynamics_id,
                    lead_id=lead.id,
                    strategy=strategy.name,
                )
                return ReconciliationResult(lead=lead, strategy=strategy.name)

        logger.info(
            "reconcile.lead_unresolved",
            opportunity_id=opportunity.dynamics_id,
            originating_lead_dynamics_id=opportunity.originating_lead_dynamics_id,
            parent_contact_dynamics_id=opportunity.parent_contact_dynamics_id,
        )
        return ReconciliationResult()

    @staticmethod
    def apply(
        opportunity: CanonicalOpportunity, result: ReconciliationResult
    ) -> CanonicalOpportunity:
        """Return the record to persist.

        A linked lead's gh_code and campaign_type replace the opportunity's
        own attribution unless the lead has no gh_code.
        """
        if result.lead is None:
            return opportunity.model_copy(update={"lead_id": None})

        update: dict[str, str | None] = {"lead_id": result.lead.id}
        if result.lead.gh_code is not None:
            update["gh_code"] = result.lead.gh_code
            update["campaign_type"] = result.lead.campaign_type
        return opportunity.model_copy(update=update)

    async def link(self, opportunity: CanonicalOpportunity) -> CanonicalOpportunity:
        """reconcile() followed by apply()."""
        return self.apply(opportunity, await self.reconcile(opportunity))

    # ── Strategies ──────────────────────────────────────────────────────────

    async def _by_originating_lead(self, opportunity: CanonicalOpportunity) -> LeadReference | None:
        return await self._unique_by_dynamics_id(opportunity.originating_lead_dynamics_id)

    async def _by_parent_contact(self, opportunity: CanonicalOpportunity) -> LeadReference | None:
        return await self._unique_by_dynamics_id(opportunity.parent_contact_dynamics_id)

    async def _by_lead_name(self, opportunity: CanonicalOpportunity) -> LeadReference | None:
        name = opportunity.originating_lead_name
        if not name or not name.strip():
            return None
        matches = await self._leads.find_leads_by_full_name(name)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "reconcile.ambiguous_lead_name",
                opportunity_id=opportunity.dynamics_id,
                lead_name=name,
                candidates=[m.dynamics_id for m in matches],
                chosen=matches[0].dynamics_id,
            )
        return matches[0]

    async def _unique_by_dynamics_id(self, dynamics_id: str | None) -> LeadReference | None:
        if not dynamics_id:
            return None
        matches = await self._leads.find_leads_by_dynamics_id(dynamics_id)
        if len(matches) != 1:
            return None
        return matches[0]
