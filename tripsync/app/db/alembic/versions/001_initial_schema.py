"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates trip, trip_item, reconstruct_run and pending_action.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

trip_status = postgresql.ENUM("DRAFT", "ACTIVE", "ARCHIVED", name="trip_status", create_type=False)
trip_item_kind = postgresql.ENUM(
    "FLIGHT", "LODGING", "MEETING", "MEAL", "TRANSPORT", "ACTIVITY", "NOTE", "OTHER",
    name="trip_item_kind",
    create_type=False,
)
trip_item_state = postgresql.ENUM(
    "PROPOSED", "CONFIRMED", "DISMISSED", "CANCELLED", name="trip_item_state", create_type=False
)
trip_item_source = postgresql.ENUM("AI", "USER", "CALENDAR", "EMAIL", name="trip_item_source", create_type=False)
run_type = postgresql.ENUM(
    "RECONSTRUCT", "PATCH", "DIAGNOSTICS", name="reconstruct_run_type", create_type=False
)
run_status = postgresql.ENUM(
    "SUCCESS", "FAILED", name="reconstruct_run_status", create_type=False
)
pending_intent_type = postgresql.ENUM(
    "UPDATE", "CANCEL", "REPLACE", "UNKNOWN",
    name="pending_intent_type",
    create_type=False,
)

ENUMS = (
    trip_status,
    trip_item_kind,
    trip_item_state,
    trip_item_source,
    run_type,
    run_status,
    pending_intent_type,
)


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # trip table
    op.create_table(
        "trip",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), server_default=sa.text("'Untitled Trip'"), nullable=False),
        sa.Column("status", trip_status, server_default=sa.text("'DRAFT'"), nullable=False),
        sa.Column("source_text", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("idx_trip_user_created", "trip", ["user_id", "created_at"])

    # trip_item table
    op.create_table(
        "trip_item",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("kind", trip_item_kind, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("start_local_date", sa.Text(), nullable=True),
        sa.Column("start_local_time", sa.Text(), nullable=True),
        sa.Column("start_timezone", sa.Text(), nullable=True),
        sa.Column("end_local_date", sa.Text(), nullable=True),
        sa.Column("end_local_time", sa.Text(), nullable=True),
        sa.Column("end_timezone", sa.Text(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=True),
        sa.Column("start_iso", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_iso", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location_text", sa.Text(), nullable=True),
        sa.Column("state", trip_item_state, server_default=sa.text("'PROPOSED'"), nullable=False),
        sa.Column("source", trip_item_source, server_default=sa.text("'AI'"), nullable=False),
        sa.Column("is_inferred", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("confidence", sa.Float(), server_default=sa.text("0.5"), nullable=False),
        sa.Column("source_snippet", sa.Text(), nullable=True),
        sa.Column("fingerprint", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("trip_id", "fingerprint", name="uq_trip_item_trip_fingerprint"),
    )
    op.create_index("idx_trip_item_trip_start", "trip_item", ["trip_id", "start_iso"])
    op.create_index("idx_trip_item_trip_state", "trip_item", ["trip_id", "state"])

    # reconstruct_run table (append-only audit)
    op.create_table(
        "reconstruct_run",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("run_type", run_type, server_default=sa.text("'RECONSTRUCT'"), nullable=False),
        sa.Column("status", run_status, nullable=False),
        sa.Column("error_code", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=True),
        sa.Column("now_iso", sa.Text(), nullable=True),
        sa.Column("raw_text", sa.Text(), nullable=True),
        sa.Column("output_json", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_reconstruct_run_user_created", "reconstruct_run", ["user_id", "created_at"])
    op.create_index("idx_reconstruct_run_trip_created", "reconstruct_run", ["trip_id", "created_at"])

    # pending_action table
    op.create_table(
        "pending_action",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("intent_type", pending_intent_type, nullable=False),
        sa.Column("raw_update_text", sa.Text(), nullable=False),
        sa.Column("candidates", postgresql.JSONB(), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_pending_action_trip_created", "pending_action", ["trip_id", "created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("pending_action")
    op.drop_table("reconstruct_run")
    op.drop_table("trip_item")
    op.drop_table("trip")
    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
