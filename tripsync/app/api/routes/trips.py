"""Trip endpoints - CRUD, reconstruction, ingest, item state and pending actions."""

from typing import Annotated, Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.dependencies import (
    get_oracle,
    raise_for_failure,
    require_text_within_limit,
)
from tripsync.app.config import Settings, get_settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.engine import get_session
from tripsync.app.db.pending_actions import list_pending_actions
from tripsync.app.db.runs import get_latest_diagnostics_source, list_trip_runs
from tripsync.app.db.trip_items import get_trip_item, list_trip_items
from tripsync.app.db.trips import create_trip, get_trip_for_user, list_trips_with_status
from tripsync.app.errors import TargetNotFound
from tripsync.app.llm.client import OracleClient
from tripsync.app.models.common import ClientContext, TripItemState
from tripsync.app.models.ingest import IngestApplied, IngestMode, IngestNeedsClarification
from tripsync.app.models.reconstruction import TripReconstruction
from tripsync.app.models.trips import (
    PendingActionOut,
    RunOut,
    TripDetailOut,
    TripItemOut,
    TripOut,
    TripSummaryOut,
)
from tripsync.app.orchestration.ingest import IngestRequest, ingest_trip_update, rebuild_trip
from tripsync.app.orchestration.locks import trip_locks

router = APIRouter(prefix="/trips", tags=["trips"])

class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateTripRequest(_Body):
    """Request body for POST /trips."""

    title: str | None = Field(None, max_length=120)


class RenameTripRequest(_Body):
    """Request body for PATCH /trips/{trip_id}."""

    title: str = Field(..., min_length=1, max_length=120)


class ReconstructTripRequest(_Body):
    """Request body for POST /trips/{trip_id}/reconstruct."""

    raw_text: str = Field(..., min_length=1)
    client: ClientContext


class IngestTripRequest(_Body):
    """Request body for POST /trips/{trip_id}/ingest."""

    raw_update_text: str = Field(..., min_length=1)
    client: ClientContext
    mode: IngestMode | None = None


class ItemStateRequest(_Body):
    """Request body for POST /trips/{trip_id}/items/{item_id}/state."""

    state: Literal["CONFIRMED", "PROPOSED", "DISMISSED"]


@router.post("", response_model=TripOut, status_code=status.HTTP_201_CREATED)
async def create_trip_route(
    request: CreateTripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripOut:
    """Create an empty trip."""
    trip = await create_trip(session, ctx, request.title)
    await session.commit()
    return TripOut.model_validate(trip)


@router.get("", response_model=list[TripSummaryOut])
async def list_trips_route(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[TripSummaryOut]:
    """List the caller's trips, newest first, with their latest run status."""
    rows = await list_trips_with_status(session, ctx)
    return [
        TripSummaryOut.model_validate(
            {**TripOut.model_validate(trip).model_dump(), "latest_run_status": run_status}
        )
        for trip, run_status in rows
    ]


@router.get("/{trip_id}", response_model=TripDetailOut)
async def get_trip_route(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripDetailOut:
    """Trip with its latest full reconstruction, runs and items."""
    trip = await get_trip_for_user(session, ctx, trip_id)
    latest = await get_latest_diagnostics_source(session, trip_id)
    runs = await list_trip_runs(session, trip_id)
    items = await list_trip_items(session, trip_id)
    return TripDetailOut(
        trip=TripOut.model_validate(trip),
        latest_reconstruction=latest.output_json if latest else None,
        runs=[RunOut.model_validate(run) for run in runs],
        items=[TripItemOut.model_validate(item) for item in items],
    )


@router.patch("/{trip_id}", response_model=TripOut)
async def rename_trip_route(
    trip_id: UUID,
    request: RenameTripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripOut:
    """Rename a trip."""
    trip = await get_trip_for_user(session, ctx, trip_id)
    trip.title = request.title.strip()
    await session.commit()
    return TripOut.model_validate(trip)


@router.post("/{trip_id}/reconstruct", response_model=TripReconstruction)
async def reconstruct_trip_route(
    trip_id: UUID,
    request: ReconstructTripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
    oracle: Annotated[OracleClient, Depends(get_oracle)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TripReconstruction:
    """Append a raw dump to the trip and rebuild its itinerary."""
    require_text_within_limit(request.raw_text, settings)
    async with trip_locks.hold(trip_id):
        outcome = await rebuild_trip(
            session, oracle, ctx, trip_id, request.raw_text.strip(), request.client, settings
        )
    return outcome.reconstruction


@router.post("/{trip_id}/ingest", response_model=IngestApplied | IngestNeedsClarification)
async def ingest_route(
    trip_id: UUID,
    request: IngestTripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
    oracle: Annotated[OracleClient, Depends(get_oracle)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Any:
    """Ingest a free-text update (rebuild or patch).

    Returns:
        APPLIED with the trip items, or NEEDS_CLARIFICATION with candidates
    """
    require_text_within_limit(request.raw_update_text, settings)
    result = await ingest_trip_update(
        session,
        oracle,
        ctx,
        IngestRequest(
            trip_id=trip_id,
            raw_update_text=request.raw_update_text,
            client=request.client,
            mode=request.mode,
        ),
        settings,
    )
    raise_for_failure(result)
    return result


@router.post("/{trip_id}/items/{item_id}/state", response_model=TripItemOut)
async def set_item_state_route(
    trip_id: UUID,
    item_id: UUID,
    request: ItemStateRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripItemOut:
    """Let the user confirm, re-propose or dismiss an item."""
    await get_trip_for_user(session, ctx, trip_id)
    item = await get_trip_item(session, trip_id, item_id)
    if item is None:
        raise TargetNotFound("Trip item not found.")
    item.state = TripItemState(request.state)
    item.item_metadata = {**(item.item_metadata or {}), "lastStateChangeBy": "USER"}
    await session.commit()
    return TripItemOut.model_validate(item)


@router.get("/{trip_id}/pending-actions", response_model=list[PendingActionOut])
async def list_pending_actions_route(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[PendingActionOut]:
    """Open clarification requests for a trip."""
    await get_trip_for_user(session, ctx, trip_id)
    actions = await list_pending_actions(session, trip_id)
    return [PendingActionOut.model_validate(action) for action in actions]
