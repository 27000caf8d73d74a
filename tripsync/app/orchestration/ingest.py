"""Ingest service: route an update to a rebuild or a patch.

Rebuilds run the full reconstruction pipeline over the accumulated source
text. Patches ask the oracle for operations, resolve their targets, gate them
through the policy guard and apply them atomically. Ambiguous or blocked
operations are parked as pending actions instead.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import TripItem
from tripsync.app.db.pending_actions import create_pending_action
from tripsync.app.db.trip_items import list_trip_items
from tripsync.app.db.trips import UNTITLED_TRIP, accumulate_source_text, get_trip_for_user
from tripsync.app.errors import EmptyUpdateText, TripSyncError
from tripsync.app.llm.client import OracleClient
from tripsync.app.llm.prompts import patch as patch_prompts
from tripsync.app.llm.structured import generate_structured
from tripsync.app.models.common import ClientContext
from tripsync.app.models.ingest import (
    IngestApplied,
    IngestFailed,
    IngestMode,
    IngestNeedsClarification,
    IngestResult,
)
from tripsync.app.models.patch import ClarificationOp, CreateItemOp, PatchIntent, PatchOp, to_operation
from tripsync.app.models.trips import TripItemOut
from tripsync.app.orchestration.applier import PatchContext, ResolvedOperation, apply_operations
from tripsync.app.orchestration.diagnostics import refresh_diagnostics
from tripsync.app.orchestration.locks import trip_locks
from tripsync.app.orchestration.policy import is_op_allowed, to_intent_type
from tripsync.app.orchestration.reconstruct import (
    ReconstructOutcome,
    ReconstructRequest,
    reconstruct_trip,
)
from tripsync.app.orchestration.resolver import ItemSnapshot, ScoredCandidate, resolve_target
from tripsync.app.utils.metrics import PrometheusOracleMetrics

logger = logging.getLogger(__name__)

_metrics = PrometheusOracleMetrics()


@dataclass(frozen=True)
class IngestRequest:
    """One free-text update for a trip."""

    trip_id: UUID
    raw_update_text: str
    client: ClientContext
    mode: IngestMode | None = None


def should_rebuild(
    mode: IngestMode | None, item_count: int, text_chars: int, large_dump_chars: int
) -> bool:
    """Rebuild when forced, when the trip is empty, or for large dumps not forced to patch."""
    if mode == IngestMode.REBUILD or item_count == 0:
        return True
    return text_chars >= large_dump_chars and mode != IngestMode.PATCH


async def _count_items(session: AsyncSession, trip_id: UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(TripItem).where(TripItem.trip_id == trip_id)
    )
    return int(result.scalar_one())


async def _item_views(session: AsyncSession, trip_id: UUID) -> list[TripItemOut]:
    return [TripItemOut.model_validate(item) for item in await list_trip_items(session, trip_id)]


def _patch_snapshot(items: list[TripItem]) -> list[dict]:
    return [
        {
            "id": str(item.id),
            "kind": item.kind.value,
            "title": item.title,
            "start": {
                "localDate": item.start_local_date,
                "localTime": item.start_local_time,
                "timezone": item.start_timezone or item.timezone,
            },
            "end": {
                "localDate": item.end_local_date,
                "localTime": item.end_local_time,
                "timezone": item.end_timezone or item.timezone,
            },
            "locationText": item.location_text,
            "state": item.state.value,
        }
        for item in items
    ]


async def defer_operation(
    session: AsyncSession,
    trip_id: UUID,
    op: PatchOp,
    candidates: list[ScoredCandidate],
    raw_update_text: str,
    settings: Settings,
) -> IngestNeedsClarification:
    """Persist an op as a pending action and report the clarification."""
    pending_candidates = [candidate.to_pending_candidate() for candidate in candidates]
    intent_type = to_intent_type(op.op_type)
    action = await create_pending_action(
        session,
        trip_id=trip_id,
        intent_type=intent_type,
        raw_update_text=raw_update_text,
        candidates=[c.model_dump(mode="json", by_alias=True) for c in pending_candidates],
        payload=op.model_dump(mode="json", by_alias=True, exclude_none=True),
        ttl_hours=settings.pending_action_ttl_hours,
    )
    action_id = action.id
    await session.commit()
    logger.info(
        "Patch deferred for clarification",
        extra={
            "structured": {
                "trip_id": str(trip_id),
                "pending_action_id": str(action_id),
                "intent_type": intent_type.value,
                "candidates": len(pending_candidates),
            }
        },
    )
    return IngestNeedsClarification(
        pending_action_id=action_id, intent_type=intent_type, candidates=pending_candidates
    )


async def rebuild_trip(
    session: AsyncSession,
    oracle: OracleClient,
    ctx: RequestContext,
    trip_id: UUID,
    text: str,
    client: ClientContext,
    settings: Settings,
) -> ReconstructOutcome:
    """Append a dump to the trip source and reconstruct over all of it.

    A trip still called "Untitled Trip" takes the reconstructed title.

    Raises:
        TripNotFound: Trip missing or not owned by the caller
        OracleError: Generation failed
    """
    trip = await get_trip_for_user(session, ctx, trip_id)
    combined, truncation = accumulate_source_text(
        trip.source_text, text, settings.source_text_max_chars
    )
    trip.source_text = combined
    was_untitled = trip.title.strip() == UNTITLED_TRIP
    await session.commit()

    outcome = await reconstruct_trip(
        session,
        oracle,
        ReconstructRequest(
            user_id=ctx.user_id,
            raw_text=combined,
            client=client,
            trip_id=trip_id,
            input_meta=truncation,
        ),
        settings,
    )

    if was_untitled:
        trip.title = outcome.reconstruction.trip_title
        await session.commit()
    return outcome


async def _patch(
    session: AsyncSession,
    oracle: OracleClient,
    ctx: RequestContext,
    trip_id: UUID,
    text: str,
    client: ClientContext,
    settings: Settings,
) -> IngestApplied | IngestNeedsClarification:
    rows = await list_trip_items(session, trip_id, include_dismissed=False)
    snapshots = [ItemSnapshot.from_row(row) for row in rows]

    result = await generate_structured(
        oracle,
        schema=PatchIntent,
        system_prompt=patch_prompts.SYSTEM_PROMPT,
        user_prompt=patch_prompts.build_user_prompt(
            client.timezone,
            client.now_iso,
            text,
            patch_prompts.format_items_snapshot(_patch_snapshot(rows)),
        ),
        build_repair_prompt=patch_prompts.build_repair_prompt,
        purpose="patch",
        timeout_seconds=settings.oracle_timeout_seconds,
        trip_id=str(trip_id),
    )
    operations = [to_operation(op) for op in result.value.ops]

    # Explicit clarification requests win over everything else in the batch
    for operation in operations:
        if isinstance(operation, ClarificationOp):
            resolution = resolve_target(snapshots, operation.op.target_hints, text)
            return await defer_operation(
                session, trip_id, operation.op, resolution.candidates, text, settings
            )

    resolved: list[ResolvedOperation] = []
    for operation in operations:
        if isinstance(operation, CreateItemOp):
            resolved.append(ResolvedOperation(operation=operation))
            continue
        resolution = resolve_target(snapshots, operation.op.target_hints, text)
        if resolution.target is None or not is_op_allowed(
            operation.op, text, resolution.target.state
        ):
            return await defer_operation(
                session, trip_id, operation.op, resolution.candidates, text, settings
            )
        resolved.append(ResolvedOperation(operation=operation, target_id=resolution.target.id))

    applied = await apply_operations(
        session,
        PatchContext(
            trip_id=trip_id,
            user_id=ctx.user_id,
            raw_update_text=text,
            timezone=client.timezone,
            now_iso=client.now_iso,
            snippet_max_chars=settings.source_snippet_max_chars,
        ),
        resolved,
    )
    await refresh_diagnostics(
        session,
        oracle,
        settings,
        trip_id=trip_id,
        user_id=ctx.user_id,
        raw_update_text=text,
        timezone=client.timezone,
        now_iso=client.now_iso,
    )
    return IngestApplied(
        mode=IngestMode.PATCH,
        trip_items=await _item_views(session, trip_id),
        changed_item_ids=applied.changed_item_ids,
    )


async def ingest_trip_update(
    session: AsyncSession,
    oracle: OracleClient,
    ctx: RequestContext,
    request: IngestRequest,
    settings: Settings,
) -> IngestResult:
    """Ingest a free-text update for a trip.

    Args:
        session: Database session
        oracle: Oracle client
        ctx: Caller identity
        request: Trip, update text, client clock and optional forced mode
        settings: Application settings

    Returns:
        IngestApplied, IngestNeedsClarification, or IngestFailed carrying the
        expected error (oracle failure, bad input, missing trip, conflict)
    """
    text = request.raw_update_text.strip()
    if not text:
        return IngestFailed(mode=request.mode, error=EmptyUpdateText())

    mode: IngestMode | None = request.mode
    async with trip_locks.hold(request.trip_id):
        try:
            await get_trip_for_user(session, ctx, request.trip_id)
            item_count = await _count_items(session, request.trip_id)
            if should_rebuild(request.mode, item_count, len(text), settings.large_dump_chars):
                mode = IngestMode.REBUILD
                rebuilt = await rebuild_trip(
                    session, oracle, ctx, request.trip_id, text, request.client, settings
                )
                outcome: IngestResult = IngestApplied(
                    mode=IngestMode.REBUILD,
                    trip_items=await _item_views(session, request.trip_id),
                    changed_item_ids=rebuilt.item_ids,
                )
            else:
                mode = IngestMode.PATCH
                outcome = await _patch(
                    session, oracle, ctx, request.trip_id, text, request.client, settings
                )
        except TripSyncError as exc:
            logger.warning(
                "Ingest failed",
                extra={
                    "structured": {
                        "trip_id": str(request.trip_id),
                        "mode": mode.value if mode else None,
                        "code": exc.code,
                    }
                },
            )
            outcome = IngestFailed(mode=mode, error=exc)

    _metrics.inc_ingest(mode.value if mode else "unknown", outcome.status)
    return outcome
