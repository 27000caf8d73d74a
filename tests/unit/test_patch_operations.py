"""Unit tests for patch wire models and typed operation conversion."""

import pytest
from pydantic import ValidationError

from tripsync.app.errors import OperationDataMissing
from tripsync.app.models.common import TripItemKind
from tripsync.app.models.patch import (
    CancelItemOp,
    ClarificationOp,
    CreateItemOp,
    DismissItemOp,
    PatchIntent,
    PatchOp,
    ReplaceItemOp,
    UpdateItemOp,
    to_operation,
)


def _wire(op_type: str, **payload: object) -> PatchOp:
    return PatchOp.model_validate(
        {"opType": op_type, "confidence": 0.9, "reason": "test", **payload}
    )


def test_update_requires_updates() -> None:
    with pytest.raises(OperationDataMissing):
        to_operation(_wire("UPDATE_ITEM"))


def test_update_carries_updates() -> None:
    operation = to_operation(_wire("UPDATE_ITEM", updates={"start": {"localTime": "20:15"}}))

    assert isinstance(operation, UpdateItemOp)
    assert operation.updates.start is not None
    assert operation.updates.start.local_time == "20:15"


def test_replace_requires_replacement() -> None:
    with pytest.raises(OperationDataMissing):
        to_operation(_wire("REPLACE_ITEM", updates={"title": "New hotel"}))


def test_replace_carries_replacement() -> None:
    operation = to_operation(
        _wire("REPLACE_ITEM", replacement={"kind": "LODGING", "title": "Marriott Union Square"})
    )

    assert isinstance(operation, ReplaceItemOp)
    assert operation.replacement.kind == TripItemKind.LODGING


def test_create_prefers_replacement() -> None:
    operation = to_operation(
        _wire(
            "CREATE_ITEM",
            replacement={"kind": "MEAL", "title": "Lunch at Tartine"},
            updates={"kind": "MEAL", "title": "ignored"},
        )
    )

    assert isinstance(operation, CreateItemOp)
    assert operation.item.title == "Lunch at Tartine"


def test_create_accepts_complete_updates() -> None:
    operation = to_operation(
        _wire(
            "CREATE_ITEM",
            updates={"kind": "MEETING", "title": "Sync with Acme", "locationText": "HQ"},
        )
    )

    assert isinstance(operation, CreateItemOp)
    assert operation.item.kind == TripItemKind.MEETING
    assert operation.item.location_text == "HQ"


def test_create_without_kind_and_title_is_rejected() -> None:
    with pytest.raises(OperationDataMissing):
        to_operation(_wire("CREATE_ITEM", updates={"title": "Something"}))


def test_state_and_clarification_ops_need_no_payload() -> None:
    assert isinstance(to_operation(_wire("CANCEL_ITEM")), CancelItemOp)
    assert isinstance(to_operation(_wire("DISMISS_ITEM")), DismissItemOp)
    assert isinstance(to_operation(_wire("NEED_CLARIFICATION")), ClarificationOp)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        _wire("CANCEL_ITEM", targetHints={"kind": "MEAL", "venue": "Nopa"})


def test_intent_op_count_bounds() -> None:
    op = {"opType": "CANCEL_ITEM", "confidence": 0.9, "reason": "r"}

    with pytest.raises(ValidationError):
        PatchIntent.model_validate({"ops": []})
    with pytest.raises(ValidationError):
        PatchIntent.model_validate({"ops": [op] * 7})
    assert len(PatchIntent.model_validate({"ops": [op] * 6}).ops) == 6


def test_keyword_limits() -> None:
    with pytest.raises(ValidationError):
        _wire("CANCEL_ITEM", targetHints={"titleKeywords": ["x" * 41]})
    with pytest.raises(ValidationError):
        _wire("CANCEL_ITEM", targetHints={"titleKeywords": ["a", "b", "c", "d", "e", "f", "g"]})


def test_local_formats_are_enforced() -> None:
    with pytest.raises(ValidationError):
        _wire("UPDATE_ITEM", updates={"start": {"localTime": "8:15 PM"}})
