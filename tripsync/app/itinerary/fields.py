"""Derivation of persisted item fields from oracle payloads and updates."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from tripsync.app.itinerary.fingerprint import build_item_fingerprint
from tripsync.app.itinerary.temporal import format_instant, to_instant
from tripsync.app.models.common import TripItemKind
from tripsync.app.models.patch import ItemUpdate, NewItem, PatchDateTime
from tripsync.app.models.reconstruction import ItineraryItem


class ItemLike(Protocol):
    """Attributes read from an existing trip item row."""

    kind: TripItemKind
    title: str
    start_local_date: str | None
    start_local_time: str | None
    start_timezone: str | None
    end_local_date: str | None
    end_local_time: str | None
    end_timezone: str | None
    timezone: str | None
    location_text: str | None
    is_inferred: bool
    confidence: float


@dataclass(frozen=True)
class ItemFields:
    """Identity and temporal columns of a trip item, ready to persist."""

    kind: TripItemKind
    title: str
    start_local_date: str | None
    start_local_time: str | None
    start_timezone: str | None
    end_local_date: str | None
    end_local_time: str | None
    end_timezone: str | None
    timezone: str | None
    start_iso: datetime | None
    end_iso: datetime | None
    location_text: str | None
    fingerprint: str

    def as_columns(self) -> dict[str, Any]:
        """Column name to value mapping."""
        return asdict(self)


def build_fields(
    kind: TripItemKind,
    title: str,
    start: tuple[str | None, str | None, str | None],
    end: tuple[str | None, str | None, str | None],
    location_text: str | None,
) -> ItemFields:
    """Normalize start/end and compute the fingerprint.

    Each endpoint uses its own zone, falling back to the item zone (start zone,
    else end zone).

    Args:
        kind: Item kind.
        title: Item title.
        start: ``(local_date, local_time, timezone)`` for the start.
        end: ``(local_date, local_time, timezone)`` for the end.
        location_text: Free-form location.

    Returns:
        Fully derived fields.
    """
    start_date, start_time, start_zone = start
    end_date, end_time, end_zone = end
    timezone = start_zone or end_zone
    start_iso = to_instant(start_date, start_time, start_zone or timezone)
    end_iso = to_instant(end_date, end_time, end_zone or timezone)
    fingerprint = build_item_fingerprint(
        kind.value,
        title,
        format_instant(start_iso),
        start_date,
        start_time,
        location_text,
    )
    return ItemFields(
        kind=kind,
        title=title,
        start_local_date=start_date,
        start_local_time=start_time,
        start_timezone=start_zone,
        end_local_date=end_date,
        end_local_time=end_time,
        end_timezone=end_zone,
        timezone=timezone,
        start_iso=start_iso,
        end_iso=end_iso,
        location_text=location_text,
        fingerprint=fingerprint,
    )


def _triple(point: PatchDateTime | None) -> tuple[str | None, str | None, str | None]:
    if point is None:
        return (None, None, None)
    return (point.local_date, point.local_time, point.timezone)


def fields_from_itinerary_item(item: ItineraryItem) -> ItemFields:
    """Fields for an item emitted by a full reconstruction."""
    return build_fields(
        item.kind,
        item.title,
        (item.start.local_date, item.start.local_time, item.start.timezone),
        (item.end.local_date, item.end.local_time, item.end.timezone),
        item.location_text,
    )


def fields_from_new_item(item: NewItem) -> ItemFields:
    """Fields for an item created by a patch."""
    return build_fields(
        item.kind, item.title, _triple(item.start), _triple(item.end), item.location_text
    )


def fields_from_update(current: ItemLike, updates: ItemUpdate) -> ItemFields:
    """Merge supplied values over the current ones and re-derive.

    A supplied value wins, otherwise the current value is kept. Zones fall
    back to the endpoint's stored zone, then the item zone.
    """
    start = updates.start or PatchDateTime()
    end = updates.end or PatchDateTime()
    return build_fields(
        updates.kind or current.kind,
        updates.title if updates.title is not None else current.title,
        (
            start.local_date or current.start_local_date,
            start.local_time or current.start_local_time,
            start.timezone or current.start_timezone or current.timezone,
        ),
        (
            end.local_date or current.end_local_date,
            end.local_time or current.end_local_time,
            end.timezone or current.end_timezone or current.timezone,
        ),
        updates.location_text if updates.location_text is not None else current.location_text,
    )


def trust_after_update(current: ItemLike, merged: ItemFields) -> tuple[bool, float]:
    """Return ``(is_inferred, confidence)`` after an update.

    An item that lacked a start date or time and now has both was confirmed
    by the user's own words, so it stops being inferred.
    """
    was_incomplete = not current.start_local_date or not current.start_local_time
    now_complete = bool(merged.start_local_date and merged.start_local_time)
    if was_incomplete and now_complete:
        return False, max(0.9, current.confidence)
    return current.is_inferred, current.confidence


def previous_snapshot(current: ItemLike, updates: ItemUpdate) -> dict[str, Any]:
    """Current values of the groups the update is about to overwrite."""
    previous: dict[str, Any] = {}
    if updates.title:
        previous["title"] = current.title
    if updates.location_text:
        previous["locationText"] = current.location_text
    if updates.start is not None:
        previous["startLocalDate"] = current.start_local_date
        previous["startLocalTime"] = current.start_local_time
        previous["startTimezone"] = current.start_timezone or current.timezone
    if updates.end is not None:
        previous["endLocalDate"] = current.end_local_date
        previous["endLocalTime"] = current.end_local_time
        previous["endTimezone"] = current.end_timezone or current.timezone
    return previous


def merge_metadata(
    existing: dict[str, Any] | None,
    run_id: UUID,
    *,
    previous: dict[str, Any] | None = None,
    ai: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge audit metadata and stamp the updating run."""
    merged = dict(existing or {})
    if previous:
        merged["previous"] = {**(merged.get("previous") or {}), **previous}
    if ai:
        merged["ai"] = {**(merged.get("ai") or {}), **ai}
    merged["lastUpdatedByRunId"] = str(run_id)
    return merged


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return any(_has_value(v) for v in (value.values() if isinstance(value, dict) else value))
    return True


def build_ai_details(item: ItineraryItem) -> dict[str, Any] | None:
    """Kind-specific details worth keeping (any non-empty field)."""
    details: dict[str, Any] = {}
    for name in ("flight", "lodging", "meeting", "meal"):
        section = getattr(item, name)
        if section is None:
            continue
        dumped = section.model_dump(mode="json", by_alias=True, exclude_none=True)
        if _has_value(dumped):
            details[name] = dumped
    return details or None
