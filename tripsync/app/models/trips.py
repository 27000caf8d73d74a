"""API views of persisted trips, items and runs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tripsync.app.models.common import (
    PendingIntentType,
    RunStatus,
    TripItemKind,
    TripItemSource,
    TripItemState,
    TripStatus,
)


class ApiModel(BaseModel):
    """Response model read from ORM rows, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TripItemOut(ApiModel):
    id: UUID
    trip_id: UUID
    kind: TripItemKind
    title: str
    start_local_date: str | None = None
    start_local_time: str | None = None
    start_timezone: str | None = None
    end_local_date: str | None = None
    end_local_time: str | None = None
    end_timezone: str | None = None
    timezone: str | None = None
    start_iso: datetime | None = None
    end_iso: datetime | None = None
    location_text: str | None = None
    state: TripItemState
    source: TripItemSource
    is_inferred: bool
    confidence: float
    source_snippet: str | None = None
    fingerprint: str
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="item_metadata")


class RunOut(ApiModel):
    id: UUID
    trip_id: UUID | None = None
    status: RunStatus
    error_code: str | None = None
    error_message: str | None = None
    timezone: str | None = None
    created_at: datetime


class TripOut(ApiModel):
    id: UUID
    title: str
    status: TripStatus
    created_at: datetime
    updated_at: datetime


class TripSummaryOut(TripOut):
    latest_run_status: RunStatus | None = None


class TripDetailOut(BaseModel):
    """Trip with its latest successful reconstruction, runs and items."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    trip: TripOut
    latest_reconstruction: dict[str, Any] | None = None
    runs: list[RunOut]
    items: list[TripItemOut]


class PendingActionOut(ApiModel):
    id: UUID
    trip_id: UUID
    intent_type: PendingIntentType
    raw_update_text: str
    candidates: list[dict[str, Any]]
    created_at: datetime
    expires_at: datetime | None = None
