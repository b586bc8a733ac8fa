"""Initial lead store schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_LEAD_STATUSES = (
    "new",
    "collected",
    "filtered",
    "enriched",
    "scored",
    "output",
    "excluded",
    "cooldown",
)
_STAGES = ("discover", "collect", "filter", "enrich", "score", "output", "refresh")
_RUN_STATUSES = ("running", "completed", "failed", "cancelled")
_CONTACT_RESULTS = ("sent", "opened", "bounced_hard", "bounced_soft", "no_reply", "replied")
_EXCLUSION_REASONS = (
    "bad_fit",
    "duplicate_brand",
    "competitor",
    "manually_excluded",
    "invalid_contact",
    "out_of_geo",
    "wrong_industry",
)


def _string_enum(values: Sequence[str], name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "leads",
        sa.Column("lead_id", sa.String(length=32), nullable=False),
        sa.Column("business_name", sa.String(), nullable=False),
        sa.Column("canonical_name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("postal_code", sa.String(), nullable=True),
        sa.Column("country", sa.String(length=8), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_contact_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_contact_result", _string_enum(_CONTACT_RESULTS, "contactresult"), nullable=True
        ),
        sa.Column(
            "excluded_reason", _string_enum(_EXCLUSION_REASONS, "exclusionreason"), nullable=True
        ),
        sa.Column("cooldown_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active_angles", sa.Text(), nullable=False),
        sa.Column("exhausted_angles", sa.Text(), nullable=False),
        sa.Column("source_metadata", sa.Text(), nullable=False),
        sa.Column("enrichment_data", sa.Text(), nullable=True),
        sa.Column("enrichment_failures", sa.Text(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("score_reasons", sa.Text(), nullable=False),
        sa.Column("status", _string_enum(_LEAD_STATUSES, "leadstatus"), nullable=False),
        sa.Column("last_output_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("lead_id", name=op.f("pk_leads")),
    )
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_canonical_name", "leads", ["canonical_name"])
    op.create_index("ix_leads_cooldown_until", "leads", ["cooldown_until"])
    op.create_index("ix_leads_last_seen_at", "leads", ["last_seen_at"])
    op.create_index("ix_leads_score", "leads", ["score"])
    op.create_index(
        "ix_leads_status_first_seen", "leads", ["status", "first_seen_at", "lead_id"]
    )

    op.create_table(
        "runs",
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("stage", _string_enum(_STAGES, "stagename"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _string_enum(_RUN_STATUSES, "runstatus"), nullable=False),
        sa.Column("leads_processed", sa.Integer(), nullable=False),
        sa.Column("leads_passed", sa.Integer(), nullable=False),
        sa.Column("leads_failed", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("run_id", name=op.f("pk_runs")),
    )
    op.create_index("ix_runs_stage", "runs", ["stage"])
    op.create_index("ix_runs_status", "runs", ["status"])
    op.create_index("ix_runs_started_at", "runs", ["started_at"])

    op.create_table(
        "raw_discoveries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("discovered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raw_discoveries")),
    )
    op.create_index(
        "ix_raw_discoveries_processed_run_id", "raw_discoveries", ["processed", "run_id"]
    )
    op.create_index("ix_raw_discoveries_run_id", "raw_discoveries", ["run_id"])


def downgrade() -> None:
    op.drop_index("ix_raw_discoveries_run_id", table_name="raw_discoveries")
    op.drop_index("ix_raw_discoveries_processed_run_id", table_name="raw_discoveries")
    op.drop_table("raw_discoveries")

    op.drop_index("ix_runs_started_at", table_name="runs")
    op.drop_index("ix_runs_status", table_name="runs")
    op.drop_index("ix_runs_stage", table_name="runs")
    op.drop_table("runs")

    op.drop_index("ix_leads_status_first_seen", table_name="leads")
    op.drop_index("ix_leads_score", table_name="leads")
    op.drop_index("ix_leads_last_seen_at", table_name="leads")
    op.drop_index("ix_leads_cooldown_until", table_name="leads")
    op.drop_index("ix_leads_canonical_name", table_name="leads")
    op.drop_index("ix_leads_status", table_name="leads")
    op.drop_table("leads")
