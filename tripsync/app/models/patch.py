"""Patch intent models.

The wire shape (``PatchIntent``/``PatchOp``) is what the oracle emits for a
small follow-up update. After validation every wire op is converted into one
of the typed operation variants below, whose required payload is guaranteed
by construction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from pydantic import Field

from tripsync.app.errors import OperationDataMissing
from tripsync.app.models.common import (
    Confidence,
    LocalDateStr,
    LocalTimeStr,
    StrictWireModel,
    TimezoneStr,
    TripItemKind,
)

Keyword = Annotated[str, Field(min_length=1, max_length=40)]


class OpType(str, Enum):
    """Operation requested by a patch."""

    CREATE_ITEM = "CREATE_ITEM"
    UPDATE_ITEM = "UPDATE_ITEM"
    CANCEL_ITEM = "CANCEL_ITEM"
    DISMISS_ITEM = "DISMISS_ITEM"
    REPLACE_ITEM = "REPLACE_ITEM"
    NEED_CLARIFICATION = "NEED_CLARIFICATION"


DESTRUCTIVE_OPS = frozenset({OpType.CANCEL_ITEM, OpType.DISMISS_ITEM, OpType.REPLACE_ITEM})


class PatchDateTime(StrictWireModel):
    """Partial local wall-clock point; every key optional."""

    local_date: LocalDateStr | None = None
    local_time: LocalTimeStr | None = None
    timezone: TimezoneStr | None = None


class TargetHints(StrictWireModel):
    """Clues identifying which existing item an op refers to."""

    kind: TripItemKind | None = None
    local_date: LocalDateStr | None = None
    local_time: LocalTimeStr | None = None
    title_keywords: list[Keyword] | None = Field(default=None, max_length=6)
    location_keywords: list[Keyword] | None = Field(default=None, max_length=6)


class ItemUpdate(StrictWireModel):
    """Fields to overwrite on an existing item; absent means keep."""

    title: str | None = Field(default=None, min_length=1, max_length=140)
    location_text: str | None = Field(default=None, max_length=300)
    start: PatchDateTime | None = None
    end: PatchDateTime | None = None
    kind: TripItemKind | None = None


class NewItem(StrictWireModel):
    """Full payload for an item to be created."""

    kind: TripItemKind
    title: str = Field(..., min_length=1, max_length=140)
    start: PatchDateTime | None = None
    end: PatchDateTime | None = None
    location_text: str | None = Field(default=None, max_length=300)


class PatchOp(StrictWireModel):
    """One operation as emitted by the oracle."""

    op_type: OpType
    target_hints: TargetHints | None = None
    updates: ItemUpdate | None = None
    replacement: NewItem | None = None
    confidence: Confidence
    reason: str = Field(..., min_length=1, max_length=200)


class PatchIntent(StrictWireModel):
    """Oracle output for a follow-up update."""

    ops: list[PatchOp] = Field(..., min_length=1, max_length=6)


# Typed operation variants


@dataclass(frozen=True)
class CreateItemOp:
    op: PatchOp
    item: NewItem


@dataclass(frozen=True)
class UpdateItemOp:
    op: PatchOp
    updates: ItemUpdate


@dataclass(frozen=True)
class CancelItemOp:
    op: PatchOp


@dataclass(frozen=True)
class DismissItemOp:
    op: PatchOp


@dataclass(frozen=True)
class ReplaceItemOp:
    op: PatchOp
    replacement: NewItem


@dataclass(frozen=True)
class ClarificationOp:
    op: PatchOp


PatchOperation = (
    CreateItemOp | UpdateItemOp | CancelItemOp | DismissItemOp | ReplaceItemOp | ClarificationOp
)


def _new_item_from_updates(updates: ItemUpdate | None) -> NewItem | None:
    if updates is None or updates.kind is None or not updates.title:
        return None
    return NewItem(
        kind=updates.kind,
        title=updates.title,
        start=updates.start,
        end=updates.end,
        location_text=updates.location_text,
    )


def to_operation(op: PatchOp) -> PatchOperation:
    """Convert a validated wire op into its typed variant.

    Args:
        op: Wire operation.

    Returns:
        Typed operation carrying the payload its type requires.

    Raises:
        OperationDataMissing: If the op lacks its required payload.
    """
    if op.op_type == OpType.CREATE_ITEM:
        item = op.replacement or _new_item_from_updates(op.updates)
        if item is None:
            raise OperationDataMissing("CREATE_ITEM requires kind and title.")
        return CreateItemOp(op=op, item=item)
    if op.op_type == OpType.UPDATE_ITEM:
        if op.updates is None:
            raise OperationDataMissing("UPDATE_ITEM requires updates.")
        return UpdateItemOp(op=op, updates=op.updates)
    if op.op_type == OpType.CANCEL_ITEM:
        return CancelItemOp(op=op)
    if op.op_type == OpType.DISMISS_ITEM:
        return DismissItemOp(op=op)
    if op.op_type == OpType.REPLACE_ITEM:
        if op.replacement is None:
            raise OperationDataMissing("REPLACE_ITEM requires replacement.")
        return ReplaceItemOp(op=op, replacement=op.replacement)
    return ClarificationOp(op=op)
