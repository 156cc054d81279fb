"""Persistence models for ingested Dynamics records.

Two SQLAlchemy models keyed by the upstream external identifier:
- LeadModel: ``leads`` table, unique on dynamics_id
- OpportunityModel: ``opportunities`` table, unique on dynamics_id, with an
  optional application-level reference to ``leads.id`` via lead_id

All string attributes are unbounded TEXT: dates hold the DateNormalizer
output verbatim and loose pattern matches can pick up long values. A long
or unparseable upstream value never causes the store to reject a record.
The dashboard reads these tables; column names are part of its contract.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.crm_ingest.core.database import Base


class LeadModel(Base):
    """Dynamics lead, one row per dynamics_id."""

    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    dynamics_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    mobile_phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)
    language: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    quote_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    quote_group: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_source: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_source: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    gh_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    campaign_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    est_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    existing_contact: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false")
    )
    created_on: Mapped[str | None] = mapped_column(Text, nullable=True)
    modified_on: Mapped[str | None] = mapped_column(Text, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class OpportunityModel(Base):
    """Dynamics opportunity, one row per dynamics_id.

    lead_id references leads.id at the application level only (no FK
    constraint): opportunities may arrive before their lead.
    """

    __tablename__ = "opportunities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    dynamics_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    contact_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    account_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    originating_lead_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str | None] = mapped_column(Text, nullable=True)
    quote_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    quote_group: Mapped[str | None] = mapped_column(Text, nullable=True)
    pipeline_phase: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner: Mapped[str | None] = mapped_column(Text, nullable=True)
    branch: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)
    language: Mapped[str | None] = mapped_column(Text, nullable=True)
    est_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_revenue: Mapped[float | None] = mapped_column(Float, nullable=True)
    probability: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_on: Mapped[str | None] = mapped_column(Text, nullable=True)
    actual_close_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    est_close_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_activity_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    visit_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(Text, nullable=True)
    gh_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    campaign_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )
    originating_lead_dynamics_id: Mapped[str | None] = mapped_column(
        Text, nullable=True, index=True
    )
    parent_contact_dynamics_id: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
