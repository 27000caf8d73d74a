"""Ingest request/result models."""

from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tripsync.app.errors import TripSyncError
from tripsync.app.models.common import PendingIntentType, TripItemKind, TripItemState
from tripsync.app.models.trips import TripItemOut


class IngestMode(str, Enum):
    """How an ingested text was processed."""

    REBUILD = "rebuild"
    PATCH = "patch"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PendingCandidate(_CamelModel):
    """One existing item the user may pick to resolve an ambiguous op."""

    item_id: UUID
    kind: TripItemKind
    title: str
    start_local_date: str | None = None
    start_local_time: str | None = None
    location_text: str | None = None
    state: TripItemState
    reason: str


class IngestApplied(_CamelModel):
    """Operations were applied (or the trip was rebuilt)."""

    status: Literal["APPLIED"] = "APPLIED"
    mode: IngestMode
    trip_items: list[TripItemOut]
    changed_item_ids: list[UUID]


class IngestNeedsClarification(_CamelModel):
    """Nothing applied; a pending action awaits the user's choice."""

    status: Literal["NEEDS_CLARIFICATION"] = "NEEDS_CLARIFICATION"
    pending_action_id: UUID
    intent_type: PendingIntentType
    candidates: list[PendingCandidate]


class IngestFailed(_CamelModel):
    """An expected failure, mapped to an HTTP error by the API layer."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: Literal["FAILED"] = "FAILED"
    mode: IngestMode | None = None
    error: TripSyncError


IngestResult = IngestApplied | IngestNeedsClarification | IngestFailed
