"""SQLAlchemy ORM models for trips, items, runs and pending actions."""

import uuid
from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tripsync.app.models.common import (
    PendingIntentType,
    RunStatus,
    TripItemKind,
    TripItemSource,
    TripItemState,
    TripStatus,
)

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


class RunType(str, PyEnum):
    """What produced a reconstruct run row."""

    RECONSTRUCT = "RECONSTRUCT"
    PATCH = "PATCH"
    DIAGNOSTICS = "DIAGNOSTICS"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Trip(Base):
    """Trip table - owned by one user within an org."""

    __tablename__ = "trip"
    __table_args__ = (Index("idx_trip_user_created", "user_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="Untitled Trip")
    status: Mapped[TripStatus] = mapped_column(
        Enum(TripStatus, name="trip_status"), nullable=False, default=TripStatus.DRAFT
    )
    source_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class TripItem(Base):
    """Trip item table - one itinerary entry, unique per (trip, fingerprint)."""

    __tablename__ = "trip_item"
    __table_args__ = (
        UniqueConstraint("trip_id", "fingerprint", name="uq_trip_item_trip_fingerprint"),
        Index("idx_trip_item_trip_start", "trip_id", "start_iso"),
        Index("idx_trip_item_trip_state", "trip_id", "state"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[TripItemKind] = mapped_column(Enum(TripItemKind, name="trip_item_kind"))
    title: Mapped[str] = mapped_column(Text, nullable=False)
    start_local_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_local_time: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_timezone: Mapped[str | None] = mapped_column(Text, nullable=True)
    end_local_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    end_local_time: Mapped[str | None] = mapped_column(Text, nullable=True)
    end_timezone: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_iso: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_iso: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    location_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[TripItemState] = mapped_column(
        Enum(TripItemState, name="trip_item_state"), nullable=False, default=TripItemState.PROPOSED
    )
    source: Mapped[TripItemSource] = mapped_column(
        Enum(TripItemSource, name="trip_item_source"), nullable=False, default=TripItemSource.AI
    )
    is_inferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    source_snippet: Mapped[str | None] = mapped_column(Text, nullable=True)
    fingerprint: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    item_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ReconstructRun(Base):
    """Append-only audit row for every reconstruction, patch or diagnostics run."""

    __tablename__ = "reconstruct_run"
    __table_args__ = (
        Index("idx_reconstruct_run_user_created", "user_id", "created_at"),
        Index("idx_reconstruct_run_trip_created", "trip_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    trip_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("trip.id", ondelete="SET NULL"), nullable=True
    )
    run_type: Mapped[RunType] = mapped_column(
        Enum(RunType, name="reconstruct_run_type"), nullable=False, default=RunType.RECONSTRUCT
    )
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus, name="reconstruct_run_status"))
    error_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str | None] = mapped_column(Text, nullable=True)
    now_iso: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    output_json: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class PendingAction(Base):
    """Deferred operation awaiting the user's choice of target."""

    __tablename__ = "pending_action"
    __table_args__ = (Index("idx_pending_action_trip_created", "trip_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip.id", ondelete="CASCADE"), nullable=False
    )
    intent_type: Mapped[PendingIntentType] = mapped_column(
        Enum(PendingIntentType, name="pending_intent_type"), nullable=False
    )
    raw_update_text: Mapped[str] = mapped_column(Text, nullable=False)
    candidates: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
