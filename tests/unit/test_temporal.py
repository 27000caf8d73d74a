"""Unit tests for local wall-clock to instant conversion."""

from datetime import UTC, datetime

import pytest

from tripsync.app.itinerary.temporal import (
    days_apart,
    format_instant,
    parse_local_time,
    to_instant,
    to_iso_instant,
)


def test_winter_time_uses_standard_offset() -> None:
    """New York is UTC-5 in January."""
    assert to_iso_instant("2026-01-15", "09:00", "America/New_York") == "2026-01-15T14:00:00.000Z"


def test_summer_time_uses_daylight_offset() -> None:
    """DST started on 2026-03-08, so March 12 is UTC-4."""
    assert to_iso_instant("2026-03-12", "19:35", "America/New_York") == "2026-03-12T23:35:00.000Z"


def test_crossing_midnight_in_utc() -> None:
    assert to_iso_instant("2026-03-12", "22:30", "America/Los_Angeles") == "2026-03-13T05:30:00.000Z"


def test_instant_is_aware_utc() -> None:
    instant = to_instant("2026-07-01", "12:00", "Europe/Paris")

    assert instant == datetime(2026, 7, 1, 10, 0, tzinfo=UTC)
    assert instant.tzinfo is not None


@pytest.mark.parametrize(
    ("local_date", "local_time", "timezone"),
    [
        (None, "10:00", "UTC"),
        ("2026-03-12", None, "UTC"),
        ("2026-03-12", "10:00", None),
        ("2026-03-12", "10:00", "Mars/Olympus_Mons"),
        ("2026-02-30", "10:00", "UTC"),
        ("2026-03-12", "25:00", "UTC"),
        ("12/03/2026", "10:00", "UTC"),
        ("2026-03-12", "7:35", "UTC"),
    ],
)
def test_missing_or_invalid_inputs_yield_none(
    local_date: str | None, local_time: str | None, timezone: str | None
) -> None:
    """Any missing or malformed part means no instant, never an error."""
    assert to_instant(local_date, local_time, timezone) is None
    assert to_iso_instant(local_date, local_time, timezone) is None


def test_parse_local_time_rejects_out_of_range_minutes() -> None:
    assert parse_local_time("10:60") is None
    assert parse_local_time("23:59") is not None


def test_format_instant_keeps_milliseconds() -> None:
    instant = datetime(2026, 3, 12, 23, 35, 0, 123456, tzinfo=UTC)

    assert format_instant(instant) == "2026-03-12T23:35:00.123Z"


def test_format_instant_treats_naive_as_utc() -> None:
    assert format_instant(datetime(2026, 3, 12, 8, 0)) == "2026-03-12T08:00:00.000Z"
    assert format_instant(None) is None


def test_days_apart_is_absolute() -> None:
    assert days_apart("2026-03-12", "2026-03-13") == 1
    assert days_apart("2026-03-13", "2026-03-12") == 1
    assert days_apart("2026-03-12", None) is None
