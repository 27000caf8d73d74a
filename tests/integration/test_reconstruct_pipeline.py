"""Integration tests for the reconstruction pipeline and its run audit."""

import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import ReconstructRun, RunType, Trip, TripItem
from tripsync.app.db.trip_items import list_trip_items
from tripsync.app.errors import InvalidModelOutput, SchemaValidationFailed
from tripsync.app.llm.client import ScriptedOracleClient
from tripsync.app.models.common import ClientContext, RunStatus, TripItemSource, TripItemState
from tripsync.app.orchestration.ingest import rebuild_trip
from tripsync.app.orchestration.reconstruct import ReconstructRequest, reconstruct_trip

CLIENT = ClientContext(timezone="America/New_York", now_iso="2026-03-01T12:00:00-05:00")


async def _runs(session: AsyncSession) -> list[ReconstructRun]:
    result = await session.execute(select(ReconstructRun).order_by(ReconstructRun.created_at))
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_reconstruct_persists_items_and_success_run(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    settings: Settings,
    make_reconstruction,
    make_item,
) -> None:
    flight = make_item(flight={"airlineCode": "UA", "flightNumber": "123", "pnr": None})
    oracle.push(json.dumps(make_reconstruction([flight])))

    outcome = await reconstruct_trip(
        session,
        oracle,
        ReconstructRequest(
            user_id=ctx.user_id, raw_text="Flight UA123", client=CLIENT, trip_id=trip.id
        ),
        settings,
    )

    items = await list_trip_items(session, trip.id)
    assert [item.id for item in items] == outcome.item_ids
    item = items[0]
    assert item.state == TripItemState.PROPOSED
    assert item.source == TripItemSource.AI
    assert item.start_timezone == "America/New_York"
    assert item.item_metadata["sourceRunId"] == str(outcome.run_id)
    assert item.item_metadata["lastUpdatedByRunId"] == str(outcome.run_id)
    assert item.item_metadata["ai"] == {"flight": {"airlineCode": "UA", "flightNumber": "123"}}

    runs = await _runs(session)
    assert len(runs) == 1
    assert runs[0].status == RunStatus.SUCCESS
    assert runs[0].run_type == RunType.RECONSTRUCT
    assert runs[0].output_json["tripTitle"] == "San Francisco trip"
    assert "_meta" not in runs[0].output_json


@pytest.mark.asyncio
async def test_reconstruct_is_idempotent_and_keeps_user_state(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    settings: Settings,
    make_reconstruction,
) -> None:
    document = json.dumps(make_reconstruction())
    oracle.push(document, document)
    request = ReconstructRequest(
        user_id=ctx.user_id, raw_text="Flight UA123", client=CLIENT, trip_id=trip.id
    )

    first = await reconstruct_trip(session, oracle, request, settings)
    item = (await list_trip_items(session, trip.id))[0]
    item.state = TripItemState.CONFIRMED
    await session.commit()

    second = await reconstruct_trip(session, oracle, request, settings)

    count = await session.scalar(select(func.count()).select_from(TripItem))
    assert count == 1
    assert first.item_ids == second.item_ids
    refreshed = (await list_trip_items(session, trip.id))[0]
    assert refreshed.state == TripItemState.CONFIRMED
    assert refreshed.item_metadata["sourceRunId"] == str(first.run_id)
    assert refreshed.item_metadata["lastUpdatedByRunId"] == str(second.run_id)


@pytest.mark.asyncio
async def test_failed_generation_records_failed_run(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    settings: Settings,
) -> None:
    bad = json.dumps({"tripTitle": "Trip"})
    oracle.push(bad, bad)

    with pytest.raises(SchemaValidationFailed):
        await reconstruct_trip(
            session,
            oracle,
            ReconstructRequest(
                user_id=ctx.user_id,
                raw_text="Flight UA123",
                client=CLIENT,
                trip_id=trip.id,
                input_meta={"rawTextTruncated": False},
            ),
            settings,
        )

    runs = await _runs(session)
    assert len(runs) == 1
    run = runs[0]
    assert run.status == RunStatus.FAILED
    assert run.error_code == "SCHEMA_VALIDATION_FAILED"
    payload = run.output_json
    assert payload["type"] == "reconstruct_error"
    assert payload["stage"] == "repair_validate"
    assert payload["inputMeta"] == {"rawTextTruncated": False}
    assert payload["attempt1"]["extractedJson"] == bad
    assert payload["attempt2"]["issues"]
    assert await session.scalar(select(func.count()).select_from(TripItem)) == 0


@pytest.mark.asyncio
async def test_failed_run_debug_text_is_capped(
    session: AsyncSession,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
) -> None:
    settings = Settings(_env_file=None, debug_payload_max_chars=50)
    oracle.push("no json here " * 20)

    with pytest.raises(InvalidModelOutput):
        await reconstruct_trip(
            session,
            oracle,
            ReconstructRequest(user_id=ctx.user_id, raw_text="x", client=CLIENT),
            settings,
        )

    run = (await _runs(session))[0]
    assert run.trip_id is None
    assert run.output_json["stage"] == "attempt1_parse"
    assert "[truncated" in run.output_json["attempt1"]["modelOutput"]
    assert run.output_json["attempt2"]["modelOutput"] is None


@pytest.mark.asyncio
async def test_stateless_reconstruct_creates_no_items(
    session: AsyncSession,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    settings: Settings,
    make_reconstruction,
) -> None:
    oracle.push(json.dumps(make_reconstruction()))

    outcome = await reconstruct_trip(
        session,
        oracle,
        ReconstructRequest(user_id=ctx.user_id, raw_text="Flight UA123", client=CLIENT),
        settings,
    )

    assert outcome.item_ids == []
    assert await session.scalar(select(func.count()).select_from(TripItem)) == 0
    assert len(await _runs(session)) == 1


@pytest.mark.asyncio
async def test_rebuild_accumulates_source_and_renames_untitled_trip(
    session: AsyncSession,
    trip: Trip,
    ctx: RequestContext,
    oracle: ScriptedOracleClient,
    make_reconstruction,
) -> None:
    settings = Settings(_env_file=None, source_text_max_chars=30)
    oracle.push(json.dumps(make_reconstruction()), json.dumps(make_reconstruction(title="Other")))

    await rebuild_trip(session, oracle, ctx, trip.id, "a" * 20, CLIENT, settings)
    await rebuild_trip(session, oracle, ctx, trip.id, "b" * 20, CLIENT, settings)

    assert trip.title == "San Francisco trip"
    assert trip.source_text is not None and len(trip.source_text) == 30
    assert trip.source_text.endswith("b" * 20)
    latest = (await _runs(session))[-1]
    assert latest.output_json["_meta"]["rawText"]["rawTextTruncated"] is True
    assert latest.raw_text == trip.source_text
