"""Create the leads, opportunities and sync_log tables.

Revision ID: 001_ingest_tables
Revises:
Create Date: 2026-10-17

- leads: Dynamics leads, unique on dynamics_id (upsert key)
- opportunities: Dynamics opportunities, unique on dynamics_id, with the
  resolved lead_id and the raw originating/parent-contact identifiers
- sync_log: append-only audit of ad-spend sync jobs

Date attributes are stored as text exactly as normalized by the ingestion
pipeline. No foreign key from opportunities.lead_id to leads.id: an
opportunity may be ingested before its lead.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_ingest_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _synced_at_column() -> sa.Column:
    return sa.Column(
        "synced_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ── leads table ─────────────────────────────────────────────────────

    op.create_table(
        "leads",
        _id_column(),
        sa.Column("dynamics_id", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("mobile_phone", sa.Text(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("postal_code", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=True),
        sa.Column("language", sa.Text(), nullable=True),
        sa.Column("lead_type", sa.Text(), nullable=True),
        sa.Column("quote_type", sa.Text(), nullable=True),
        sa.Column("quote_group", sa.Text(), nullable=True),
        sa.Column("lead_source", sa.Text(), nullable=True),
        sa.Column("rating", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=True),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("owner", sa.Text(), nullable=True),
        sa.Column("utm_campaign", sa.Text(), nullable=True),
        sa.Column("utm_source", sa.Text(), nullable=True),
        sa.Column("utm_medium", sa.Text(), nullable=True),
        sa.Column("utm_content", sa.Text(), nullable=True),
        sa.Column("gh_code", sa.Text(), nullable=True),
        sa.Column("campaign_type", sa.Text(), nullable=True),
        sa.Column("est_value", sa.Float(), nullable=True),
        sa.Column(
            "existing_contact",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("created_on", sa.Text(), nullable=True),
        sa.Column("modified_on", sa.Text(), nullable=True),
        _synced_at_column(),
        sa.UniqueConstraint("dynamics_id", name="uq_leads_dynamics_id"),
    )
    op.create_index("ix_leads_full_name", "leads", ["full_name"])
    # Case-insensitive name lookup used by the reconciler's last fallback
    op.execute("CREATE INDEX IF NOT EXISTS ix_leads_full_name_lower ON leads (lower(full_name))")

    # ── opportunities table ─────────────────────────────────────────────

    op.create_table(
        "opportunities",
        _id_column(),
        sa.Column("dynamics_id", sa.Text(), nullable=False),
        sa.Column("contact_name", sa.Text(), nullable=True),
        sa.Column("account_name", sa.Text(), nullable=True),
        sa.Column("originating_lead_name", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=True),
        sa.Column("quote_type", sa.Text(), nullable=True),
        sa.Column("quote_group", sa.Text(), nullable=True),
        sa.Column("pipeline_phase", sa.Text(), nullable=True),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("rating", sa.Text(), nullable=True),
        sa.Column("owner", sa.Text(), nullable=True),
        sa.Column("branch", sa.Text(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("postal_code", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=True),
        sa.Column("language", sa.Text(), nullable=True),
        sa.Column("est_revenue", sa.Float(), nullable=True),
        sa.Column("actual_revenue", sa.Float(), nullable=True),
        sa.Column("probability", sa.Text(), nullable=True),
        sa.Column("created_on", sa.Text(), nullable=True),
        sa.Column("actual_close_date", sa.Text(), nullable=True),
        sa.Column("est_close_date", sa.Text(), nullable=True),
        sa.Column("last_activity_date", sa.Text(), nullable=True),
        sa.Column("visit_date", sa.Text(), nullable=True),
        sa.Column("utm_campaign", sa.Text(), nullable=True),
        sa.Column("gh_code", sa.Text(), nullable=True),
        sa.Column("campaign_type", sa.Text(), nullable=True),
        sa.Column("lead_id", UUID(as_uuid=True), nullable=True),
        sa.Column("originating_lead_dynamics_id", sa.Text(), nullable=True),
        sa.Column("parent_contact_dynamics_id", sa.Text(), nullable=True),
        _synced_at_column(),
        sa.UniqueConstraint("dynamics_id", name="uq_opportunities_dynamics_id"),
    )
    op.create_index("ix_opportunities_lead_id", "opportunities", ["lead_id"])
    op.create_index(
        "ix_opportunities_originating_lead_dynamics_id",
        "opportunities",
        ["originating_lead_dynamics_id"],
    )

    # ── sync_log table ──────────────────────────────────────────────────

    op.create_table(
        "sync_log",
        _id_column(),
        sa.Column("platform", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "rows_synced",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.Column("date_range_start", sa.Text(), nullable=True),
        sa.Column("date_range_end", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_sync_log_platform", "sync_log", ["platform"])


def downgrade() -> None:
    op.drop_index("ix_sync_log_platform", table_name="sync_log")
    op.drop_table("sync_log")

    op.drop_index("ix_opportunities_originating_lead_dynamics_id", table_name="opportunities")
    op.drop_index("ix_opportunities_lead_id", table_name="opportunities")
    op.drop_table("opportunities")

    op.execute("DROP INDEX IF EXISTS ix_leads_full_name_lower")
    op.drop_index("ix_leads_full_name", table_name="leads")
    op.drop_table("leads")
