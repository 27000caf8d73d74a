"""Patch policy guard: block risky ops unless the user's words are explicit."""

import re

from tripsync.app.models.common import PendingIntentType, TripItemState
from tripsync.app.models.patch import DESTRUCTIVE_OPS, OpType, PatchOp

DESTRUCTIVE_CONFIDENCE_THRESHOLD = 0.85
UPDATE_CONFIDENCE_THRESHOLD = 0.65

EXPLICIT_DESTRUCTIVE_PATTERNS = [
    re.compile(r"\bcancel(?:led|ed)?\b", re.IGNORECASE),
    re.compile(r"\bmoved to\b", re.IGNORECASE),
    re.compile(r"\bchanged to\b", re.IGNORECASE),
    re.compile(r"\bnew reservation\b", re.IGNORECASE),
    re.compile(r"\breplaced by\b", re.IGNORECASE),
    re.compile(r"\binstead\b", re.IGNORECASE),
    re.compile(r"\brescheduled\b", re.IGNORECASE),
]


def has_explicit_destructive_language(text: str) -> bool:
    """True when the text explicitly cancels, moves or replaces something."""
    return any(pattern.search(text) for pattern in EXPLICIT_DESTRUCTIVE_PATTERNS)


def is_op_allowed(op: PatchOp, raw_update_text: str, target_state: TripItemState | None) -> bool:
    """Decide whether an op may be applied without asking the user.

    Args:
        op: Wire op (type and confidence)
        raw_update_text: The user's update
        target_state: State of the resolved target, if any

    Returns:
        False when the op must be deferred for clarification
    """
    if op.op_type == OpType.CREATE_ITEM:
        return True

    explicit = has_explicit_destructive_language(raw_update_text)
    destructive = op.op_type in DESTRUCTIVE_OPS

    if destructive and target_state == TripItemState.CONFIRMED and not explicit:
        return False
    if destructive and not explicit and op.confidence < DESTRUCTIVE_CONFIDENCE_THRESHOLD:
        return False
    if op.op_type == OpType.UPDATE_ITEM and op.confidence < UPDATE_CONFIDENCE_THRESHOLD and not explicit:
        return False
    return True


def to_intent_type(op_type: OpType) -> PendingIntentType:
    """Coarse intent shown on a pending action."""
    if op_type == OpType.UPDATE_ITEM:
        return PendingIntentType.UPDATE
    if op_type in (OpType.CANCEL_ITEM, OpType.DISMISS_ITEM):
        return PendingIntentType.CANCEL
    if op_type == OpType.REPLACE_ITEM:
        return PendingIntentType.REPLACE
    return PendingIntentType.UNKNOWN
