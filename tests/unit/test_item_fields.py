"""Unit tests for derived item fields, trust promotion and audit metadata."""

import uuid
from dataclasses import dataclass

from tripsync.app.itinerary.fields import (
    build_fields,
    fields_from_update,
    merge_metadata,
    previous_snapshot,
    trust_after_update,
)
from tripsync.app.models.common import TripItemKind
from tripsync.app.models.patch import ItemUpdate, PatchDateTime


@dataclass
class _Row:
    kind: TripItemKind = TripItemKind.FLIGHT
    title: str = "UA123 JFK to SFO"
    start_local_date: str | None = "2026-03-12"
    start_local_time: str | None = "19:35"
    start_timezone: str | None = "America/New_York"
    end_local_date: str | None = "2026-03-12"
    end_local_time: str | None = "23:05"
    end_timezone: str | None = "America/Los_Angeles"
    timezone: str | None = "America/New_York"
    location_text: str | None = "JFK"
    is_inferred: bool = False
    confidence: float = 0.95


def test_build_fields_converts_each_endpoint_in_its_zone() -> None:
    fields = build_fields(
        TripItemKind.FLIGHT,
        "UA123",
        ("2026-03-12", "19:35", "America/New_York"),
        ("2026-03-12", "23:05", "America/Los_Angeles"),
        "JFK",
    )

    assert fields.timezone == "America/New_York"
    assert fields.start_iso is not None and fields.start_iso.hour == 23
    assert fields.end_iso is not None and fields.end_iso.day == 13 and fields.end_iso.hour == 6


def test_build_fields_end_falls_back_to_item_zone() -> None:
    fields = build_fields(
        TripItemKind.MEETING,
        "Sync",
        ("2026-03-12", "10:00", "UTC"),
        ("2026-03-12", "11:00", None),
        None,
    )

    assert fields.end_timezone is None
    assert fields.end_iso is not None and fields.end_iso.hour == 11


def test_build_fields_item_zone_falls_back_to_end_zone() -> None:
    fields = build_fields(
        TripItemKind.LODGING,
        "Hotel",
        ("2026-03-12", "15:00", None),
        ("2026-03-14", "11:00", "Europe/Paris"),
        None,
    )

    assert fields.timezone == "Europe/Paris"
    assert fields.start_iso is not None and fields.start_iso.hour == 14


def test_update_keeps_unsupplied_values_and_refingerprints() -> None:
    row = _Row()
    before = build_fields(
        row.kind,
        row.title,
        (row.start_local_date, row.start_local_time, row.start_timezone),
        (row.end_local_date, row.end_local_time, row.end_timezone),
        row.location_text,
    )

    merged = fields_from_update(row, ItemUpdate(start=PatchDateTime(local_time="20:15")))

    assert merged.title == row.title
    assert merged.start_local_date == "2026-03-12"
    assert merged.start_local_time == "20:15"
    assert merged.start_timezone == "America/New_York"
    assert merged.end_local_time == "23:05"
    assert merged.fingerprint != before.fingerprint


def test_update_zone_falls_back_to_item_zone() -> None:
    row = _Row(start_timezone=None, timezone="Asia/Tokyo")

    merged = fields_from_update(row, ItemUpdate(start=PatchDateTime(local_time="09:00")))

    assert merged.start_timezone == "Asia/Tokyo"
    assert merged.start_iso is not None and merged.start_iso.hour == 0


def test_trust_promotion_when_start_becomes_complete() -> None:
    row = _Row(start_local_time=None, is_inferred=True, confidence=0.4)
    merged = fields_from_update(row, ItemUpdate(start=PatchDateTime(local_time="20:15")))

    assert trust_after_update(row, merged) == (False, 0.9)


def test_trust_unchanged_for_already_complete_items() -> None:
    row = _Row(is_inferred=True, confidence=0.7)
    merged = fields_from_update(row, ItemUpdate(title="UA123 to SFO"))

    assert trust_after_update(row, merged) == (True, 0.7)


def test_previous_snapshot_only_covers_supplied_groups() -> None:
    row = _Row()

    previous = previous_snapshot(row, ItemUpdate(start=PatchDateTime(local_time="20:15")))

    assert previous == {
        "startLocalDate": "2026-03-12",
        "startLocalTime": "19:35",
        "startTimezone": "America/New_York",
    }


def test_merge_metadata_stamps_run_and_merges() -> None:
    run_id = uuid.uuid4()
    existing = {"sourceRunId": "r0", "previous": {"title": "Old"}, "ai": {"flight": {"pnr": "X"}}}

    merged = merge_metadata(
        existing,
        run_id,
        previous={"startLocalTime": "19:35"},
        ai={"meal": {"venue": "Nopa"}},
    )

    assert merged["lastUpdatedByRunId"] == str(run_id)
    assert merged["sourceRunId"] == "r0"
    assert merged["previous"] == {"title": "Old", "startLocalTime": "19:35"}
    assert set(merged["ai"]) == {"flight", "meal"}
    assert "lastUpdatedByRunId" not in existing
