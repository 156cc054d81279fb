"""Pydantic schemas for webhook ingestion.

Defines:
- Canonical records: CanonicalLead, CanonicalOpportunity
- Reconciliation: LeadReference, ReconciliationResult
- Batch outcomes: RecordOutcome, BatchSummary

Canonical records are always written whole: every upsert replaces the full
row for its ``dynamics_id``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    """Record types accepted by the ingestion webhooks."""

    LEAD = "lead"
    OPPORTUNITY = "opportunity"


# ── Canonical Records ───────────────────────────────────────────────────────


class CanonicalLead(BaseModel):
    """Normalized Dynamics lead, keyed by ``dynamics_id``."""

    dynamics_id: str | None = None
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    mobile_phone: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    language: str | None = None
    lead_type: str | None = None
    quote_type: str | None = None
    quote_group: str | None = None
    lead_source: str | None = None
    rating: str | None = None
    status: str | None = None
    status_reason: str | None = None
    owner: str | None = None
    utm_campaign: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_content: str | None = None
    gh_code: str | None = None
    campaign_type: str | None = None
    est_value: float | None = None
    existing_contact: bool = False
    created_on: str | None = None
    modified_on: str | None = None


class CanonicalOpportunity(BaseModel):
    """Normalized Dynamics opportunity, keyed by ``dynamics_id``.

    ``lead_id`` is filled in by the reconciler. When it is set, ``gh_code`` and
    ``campaign_type`` are the lead's values unless the lead has none.
    """

    dynamics_id: str | None = None
    contact_name: str | None = None
    account_name: str | None = None
    originating_lead_name: str | None = None
    type: str | None = None
    quote_type: str | None = None
    quote_group: str | None = None
    pipeline_phase: str | None = None
    status_reason: str | None = None
    rating: str | None = None
    owner: str | None = None
    branch: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    language: str | None = None
    est_revenue: float | None = None
    actual_revenue: float | None = None
    probability: str | None = None
    created_on: str | None = None
    actual_close_date: str | None = None
    est_close_date: str | None = None
    last_activity_date: str | None = None
    visit_date: str | None = None
    utm_campaign: str | None = None
    gh_code: str | None = None
    campaign_type: str | None = None
    lead_id: str | None = None
    originating_lead_dynamics_id: str | None = None
    parent_contact_dynamics_id: str | None = None


# ── Reconciliation ──────────────────────────────────────────────────────────


class LeadReference(BaseModel):
    """The slice of a stored lead the reconciler needs."""

    id: str
    dynamics_id: str
    full_name: str | None = None
    gh_code: str | None = None
    campaign_type: str | None = None


class ReconciliationResult(BaseModel):
    """Outcome of the reconciler's fallback chain.

    ``strategy`` names the step that matched, or is None when nothing did.
    """

    lead: LeadReference | None = None
    strategy: str | None = None

    @property
    def resolved(self) -> bool:
        return self.lead is not None


# ── Batch Outcomes ──────────────────────────────────────────────────────────


class RecordOutcome(BaseModel):
    """Result of one record's map-and-persist unit of work."""

    success: bool
    dynamics_id: str | None = None
    error: str | None = None


class BatchSummary(BaseModel):
    """Aggregated outcome of one webhook delivery."""

    success: bool = True
    entity: EntityKind
    total: int
    succeeded: int
    failed: int
    errors: list[RecordOutcome] = Field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Response body; ``errors`` is omitted when every record succeeded."""
        body = self.model_dump(mode="json")
        if not self.errors:
            body.pop("errors")
        return body
