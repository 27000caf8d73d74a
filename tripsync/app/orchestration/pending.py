"""Pending action resolution: apply a deferred op to the user's chosen item."""

import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.pending_actions import get_pending_action_for_user
from tripsync.app.db.trip_items import list_trip_items
from tripsync.app.errors import InvalidSelection, OperationDataMissing, TripSyncError
from tripsync.app.models.ingest import IngestApplied, IngestFailed, IngestMode, PendingCandidate
from tripsync.app.models.patch import PatchOp, to_operation
from tripsync.app.models.trips import TripItemOut
from tripsync.app.orchestration.applier import PatchContext, ResolvedOperation, apply_operations
from tripsync.app.orchestration.locks import trip_locks

logger = logging.getLogger(__name__)

# Resolution has no client context; the run is stamped in UTC
RESOLUTION_TIMEZONE = "UTC"


def _candidate_ids(raw_candidates: list[dict]) -> set[UUID]:
    ids: set[UUID] = set()
    for raw in raw_candidates or []:
        try:
            ids.add(PendingCandidate.model_validate(raw).item_id)
        except ValidationError:
            logger.warning("Skipping malformed pending candidate")
    return ids


async def resolve_pending_action(
    session: AsyncSession,
    ctx: RequestContext,
    action_id: UUID,
    selected_item_id: UUID,
    settings: Settings,
) -> IngestApplied | IngestFailed:
    """Apply a pending action's op to the selected candidate.

    The stored op bypasses target resolution and the policy guard; the user's
    selection is the confirmation. The op and the pending row deletion commit
    in one transaction.

    Args:
        session: Database session
        ctx: Caller identity
        action_id: Pending action id
        selected_item_id: Item chosen among the stored candidates
        settings: Application settings

    Returns:
        IngestApplied on success, IngestFailed for unknown action, invalid
        selection, unusable payload or a vanished target
    """
    try:
        _, trip = await get_pending_action_for_user(session, ctx, action_id)
    except TripSyncError as exc:
        return IngestFailed(mode=IngestMode.PATCH, error=exc)
    trip_id = trip.id

    async with trip_locks.hold(trip_id):
        try:
            # Re-read under the lock: a concurrent resolve may have consumed it
            action, _ = await get_pending_action_for_user(session, ctx, action_id)
            if selected_item_id not in _candidate_ids(action.candidates):
                raise InvalidSelection()
            try:
                op = PatchOp.model_validate(action.payload)
            except ValidationError as exc:
                raise OperationDataMissing("Pending action payload is invalid.") from exc
            applied = await apply_operations(
                session,
                PatchContext(
                    trip_id=trip_id,
                    user_id=ctx.user_id,
                    raw_update_text=action.raw_update_text,
                    timezone=RESOLUTION_TIMEZONE,
                    snippet_max_chars=settings.source_snippet_max_chars,
                ),
                [ResolvedOperation(operation=to_operation(op), target_id=selected_item_id)],
                pending_action=action,
            )
        except TripSyncError as exc:
            logger.warning(
                "Pending action resolution failed",
                extra={
                    "structured": {
                        "pending_action_id": str(action_id),
                        "code": exc.code,
                    }
                },
            )
            return IngestFailed(mode=IngestMode.PATCH, error=exc)

    logger.info(
        "Pending action resolved",
        extra={
            "structured": {
                "pending_action_id": str(action_id),
                "trip_id": str(trip_id),
                "run_id": str(applied.run_id),
            }
        },
    )
    items = await list_trip_items(session, trip_id)
    return IngestApplied(
        mode=IngestMode.PATCH,
        trip_items=[TripItemOut.model_validate(item) for item in items],
        changed_item_ids=applied.changed_item_ids,
    )
