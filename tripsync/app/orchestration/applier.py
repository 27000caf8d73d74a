"""Transactional applier for resolved patch operations.

All operations of one batch, the audit run row and (when resolving a pending
action) the pending row deletion commit together or not at all.
"""

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.models import PendingAction, RunType, TripItem, utcnow
from tripsync.app.db.runs import record_run
from tripsync.app.db.trip_items import (
    assign_fields,
    get_item_by_fingerprint,
    get_trip_item,
    insert_trip_item,
)
from tripsync.app.errors import ConcurrentUpdateConflict, DuplicateItem, TargetNotFound
from tripsync.app.itinerary.fields import (
    fields_from_new_item,
    fields_from_update,
    merge_metadata,
    previous_snapshot,
    trust_after_update,
)
from tripsync.app.itinerary.temporal import format_instant
from tripsync.app.models.common import RunStatus, TripItemSource, TripItemState
from tripsync.app.models.patch import (
    CancelItemOp,
    ClarificationOp,
    CreateItemOp,
    DismissItemOp,
    NewItem,
    PatchOp,
    PatchOperation,
    ReplaceItemOp,
    UpdateItemOp,
)

logger = logging.getLogger(__name__)

CREATED_ITEM_CONFIDENCE = 0.95


@dataclass(frozen=True)
class ResolvedOperation:
    """An operation bound to its target (CREATE has none)."""

    operation: PatchOperation
    target_id: UUID | None = None


@dataclass(frozen=True)
class PatchContext:
    """Who and what a patch batch is for."""

    trip_id: UUID
    user_id: UUID
    raw_update_text: str
    timezone: str | None = None
    now_iso: str | None = None
    snippet_max_chars: int = 180

    @property
    def source_snippet(self) -> str:
        return self.raw_update_text[: self.snippet_max_chars]


@dataclass(frozen=True)
class ApplyResult:
    run_id: UUID
    changed_item_ids: list[UUID]


def build_patch_audit_payload(
    raw_update_text: str,
    ops: list[PatchOp],
    resolution: list[dict[str, Any]],
    applied_at: str,
) -> dict[str, Any]:
    """Audit payload stored on the patch run (no raw text, only its hash)."""
    return {
        "type": "PATCH",
        "rawUpdateTextLength": len(raw_update_text),
        "rawUpdateTextHash": hashlib.sha256(raw_update_text.encode("utf-8")).hexdigest(),
        "appliedAt": applied_at,
        "ops": [
            {"opType": op.op_type.value, "confidence": op.confidence, "reason": op.reason}
            for op in ops
        ],
        "resolution": resolution,
    }


async def _create_item(
    session: AsyncSession, ctx: PatchContext, item: NewItem, run_id: UUID
) -> UUID:
    fields = fields_from_new_item(item)
    existing = await get_item_by_fingerprint(session, ctx.trip_id, fields.fingerprint)
    if existing is not None:
        assign_fields(existing, fields)
        existing.state = TripItemState.PROPOSED
        existing.source = TripItemSource.USER
        existing.is_inferred = False
        existing.confidence = CREATED_ITEM_CONFIDENCE
        existing.source_snippet = ctx.source_snippet
        existing.item_metadata = merge_metadata(existing.item_metadata, run_id)
        return existing.id

    created = await insert_trip_item(
        session,
        ctx.trip_id,
        fields,
        state=TripItemState.PROPOSED,
        source=TripItemSource.USER,
        is_inferred=False,
        confidence=CREATED_ITEM_CONFIDENCE,
        source_snippet=ctx.source_snippet,
        metadata=merge_metadata(None, run_id),
    )
    return created.id


async def _update_item(
    session: AsyncSession, target: TripItem, operation: UpdateItemOp, run_id: UUID
) -> None:
    updates = operation.updates
    merged = fields_from_update(target, updates)
    clash = await get_item_by_fingerprint(session, target.trip_id, merged.fingerprint)
    if clash is not None and clash.id != target.id:
        raise DuplicateItem(details={"itemId": str(target.id), "existingItemId": str(clash.id)})
    previous = (
        previous_snapshot(target, updates) if target.state == TripItemState.CONFIRMED else None
    )
    is_inferred, confidence = trust_after_update(target, merged)
    assign_fields(target, merged)
    target.is_inferred = is_inferred
    target.confidence = confidence
    target.item_metadata = merge_metadata(target.item_metadata, run_id, previous=previous)


def _set_state(target: TripItem, state: TripItemState, run_id: UUID) -> None:
    target.state = state
    target.item_metadata = merge_metadata(target.item_metadata, run_id)


async def _apply_one(
    session: AsyncSession, ctx: PatchContext, resolved: ResolvedOperation, run_id: UUID
) -> tuple[list[UUID], dict[str, Any]]:
    operation = resolved.operation
    op_type = operation.op.op_type.value

    if isinstance(operation, CreateItemOp):
        created_id = await _create_item(session, ctx, operation.item, run_id)
        return [created_id], {"opType": op_type}

    if resolved.target_id is None:
        raise TargetNotFound("Resolved operation has no target.")
    target = await get_trip_item(session, ctx.trip_id, resolved.target_id)
    if target is None:
        raise TargetNotFound()

    changed = [target.id]
    if isinstance(operation, UpdateItemOp):
        await _update_item(session, target, operation, run_id)
    elif isinstance(operation, CancelItemOp):
        _set_state(target, TripItemState.CANCELLED, run_id)
    elif isinstance(operation, DismissItemOp):
        _set_state(target, TripItemState.DISMISSED, run_id)
    elif isinstance(operation, ReplaceItemOp):
        _set_state(target, TripItemState.CANCELLED, run_id)
        changed.append(await _create_item(session, ctx, operation.replacement, run_id))
    elif isinstance(operation, ClarificationOp):
        # The user picked a target but the op carries nothing to apply
        changed = []
    return changed, {"opType": op_type, "targetId": str(target.id)}


async def apply_operations(
    session: AsyncSession,
    ctx: PatchContext,
    resolved: list[ResolvedOperation],
    *,
    pending_action: PendingAction | None = None,
) -> ApplyResult:
    """Apply resolved operations atomically and record one PATCH run.

    Args:
        session: Database session (committed or rolled back here)
        ctx: Trip, user and update text of the batch
        resolved: Operations with their targets, in application order
        pending_action: Pending row to delete in the same transaction

    Returns:
        ApplyResult with the run id and changed item ids

    Raises:
        TargetNotFound: A target vanished since resolution
        DuplicateItem: An update collides with another item of the trip
        ConcurrentUpdateConflict: Unique fingerprint constraint tripped
    """
    run_id = uuid.uuid4()
    changed: list[UUID] = []
    resolution: list[dict[str, Any]] = []
    started = time.perf_counter()

    try:
        for entry in resolved:
            ids, record = await _apply_one(session, ctx, entry, run_id)
            changed.extend(ids)
            resolution.append(record)

        await record_run(
            session,
            run_id=run_id,
            user_id=ctx.user_id,
            trip_id=ctx.trip_id,
            status=RunStatus.SUCCESS,
            run_type=RunType.PATCH,
            timezone=ctx.timezone,
            now_iso=ctx.now_iso,
            raw_text=ctx.raw_update_text,
            output_json=build_patch_audit_payload(
                ctx.raw_update_text,
                [entry.operation.op for entry in resolved],
                resolution,
                format_instant(utcnow()) or "",
            ),
        )
        if pending_action is not None:
            await session.delete(pending_action)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning(
            "Patch hit fingerprint conflict",
            extra={"structured": {"trip_id": str(ctx.trip_id), "run_id": str(run_id)}},
        )
        raise ConcurrentUpdateConflict() from exc
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Patch applied",
        extra={
            "structured": {
                "trip_id": str(ctx.trip_id),
                "run_id": str(run_id),
                "ops": len(resolved),
                "changed": len(changed),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }
        },
    )
    return ApplyResult(run_id=run_id, changed_item_ids=list(dict.fromkeys(changed)))
