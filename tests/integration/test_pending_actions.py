"""Integration tests for resolving pending actions."""

import json
import uuid

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import PendingAction, ReconstructRun, RunType, Trip
from tripsync.app.db.trip_items import list_trip_items
from tripsync.app.errors import InvalidSelection, OperationDataMissing, PendingActionNotFound
from tripsync.app.llm.client import ScriptedOracleClient
from tripsync.app.models.common import ClientContext
from tripsync.app.models.ingest import IngestApplied, IngestFailed, IngestNeedsClarification
from tripsync.app.orchestration.ingest import IngestRequest, ingest_trip_update
from tripsync.app.orchestration.pending import resolve_pending_action

CLIENT = ClientContext(timezone="America/Los_Angeles")


@pytest_asyncio.fixture
async def pending(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    settings: Settings,
    make_reconstruction,
    make_item,
    make_patch_op,
) -> IngestNeedsClarification:
    """Two same-day dinners and an ambiguous 'dinner is at 9 now' update."""
    dinners = [
        make_item(
            item_id=f"dinner-{n}",
            kind="MEAL",
            title=title,
            local_date="2026-03-13",
            local_time=local_time,
            timezone="America/Los_Angeles",
            location_text=None,
        )
        for n, (title, local_time) in enumerate(
            [("Dinner at Nopa", "19:00"), ("Dinner at Zuni Cafe", "20:00")]
        )
    ]
    oracle.push(
        json.dumps(make_reconstruction(dinners)),
        json.dumps(
            {
                "ops": [
                    make_patch_op(
                        "UPDATE_ITEM",
                        0.9,
                        {"kind": "MEAL", "localDate": "2026-03-13"},
                        updates={"start": {"localTime": "21:00"}},
                    )
                ]
            }
        ),
    )
    for text in ("two dinners on the 13th", "dinner is at 9 now"):
        result = await ingest_trip_update(
            session,
            oracle,
            ctx,
            IngestRequest(trip_id=trip.id, raw_update_text=text, client=CLIENT),
            settings,
        )
    assert isinstance(result, IngestNeedsClarification)
    return result


@pytest.mark.asyncio
async def test_resolving_applies_op_and_deletes_pending_row(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    settings: Settings,
    pending: IngestNeedsClarification,
) -> None:
    chosen = next(c for c in pending.candidates if c.title == "Dinner at Zuni Cafe")

    result = await resolve_pending_action(
        session, ctx, pending.pending_action_id, chosen.item_id, settings
    )

    assert isinstance(result, IngestApplied)
    assert result.changed_item_ids == [chosen.item_id]
    by_title = {item.title: item for item in await list_trip_items(session, trip.id)}
    assert by_title["Dinner at Zuni Cafe"].start_local_time == "21:00"
    assert by_title["Dinner at Nopa"].start_local_time == "19:00"
    assert await session.get(PendingAction, pending.pending_action_id) is None

    patch_runs = await session.execute(
        select(ReconstructRun).where(ReconstructRun.run_type == RunType.PATCH)
    )
    run = patch_runs.scalar_one()
    assert run.raw_text == "dinner is at 9 now"
    assert run.output_json["resolution"][0]["targetId"] == str(chosen.item_id)
    assert run.timezone == "UTC"
    assert run.now_iso is None


@pytest.mark.asyncio
async def test_selection_outside_candidates_is_rejected(
    session: AsyncSession,
    ctx: RequestContext,
    settings: Settings,
    pending: IngestNeedsClarification,
) -> None:
    result = await resolve_pending_action(
        session, ctx, pending.pending_action_id, uuid.uuid4(), settings
    )

    assert isinstance(result, IngestFailed)
    assert isinstance(result.error, InvalidSelection)
    assert result.error.status_code == 400
    assert await session.get(PendingAction, pending.pending_action_id) is not None


@pytest.mark.asyncio
async def test_pending_action_is_consumed_once(
    session: AsyncSession,
    ctx: RequestContext,
    settings: Settings,
    pending: IngestNeedsClarification,
) -> None:
    item_id = pending.candidates[0].item_id

    first = await resolve_pending_action(session, ctx, pending.pending_action_id, item_id, settings)
    second = await resolve_pending_action(session, ctx, pending.pending_action_id, item_id, settings)

    assert isinstance(first, IngestApplied)
    assert isinstance(second, IngestFailed)
    assert isinstance(second.error, PendingActionNotFound)


@pytest.mark.asyncio
async def test_unknown_or_foreign_action_is_not_found(
    session: AsyncSession,
    ctx: RequestContext,
    settings: Settings,
    pending: IngestNeedsClarification,
) -> None:
    item_id = pending.candidates[0].item_id
    stranger = RequestContext(org_id=ctx.org_id, user_id=uuid.uuid4())

    unknown = await resolve_pending_action(session, ctx, uuid.uuid4(), item_id, settings)
    foreign = await resolve_pending_action(
        session, stranger, pending.pending_action_id, item_id, settings
    )

    assert isinstance(unknown, IngestFailed)
    assert isinstance(unknown.error, PendingActionNotFound)
    assert isinstance(foreign, IngestFailed)
    assert isinstance(foreign.error, PendingActionNotFound)


@pytest.mark.asyncio
async def test_unusable_payload_is_reported(
    session: AsyncSession,
    ctx: RequestContext,
    settings: Settings,
    pending: IngestNeedsClarification,
) -> None:
    action = await session.get(PendingAction, pending.pending_action_id)
    assert action is not None
    action.payload = {"opType": "UPDATE_ITEM", "confidence": 0.9, "reason": "r"}
    await session.commit()

    result = await resolve_pending_action(
        session, ctx, pending.pending_action_id, pending.candidates[0].item_id, settings
    )

    assert isinstance(result, IngestFailed)
    assert isinstance(result.error, OperationDataMissing)
