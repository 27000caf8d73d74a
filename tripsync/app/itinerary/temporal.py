"""Local wall-clock to absolute instant conversion."""

import re
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def parse_local_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD``; None when absent or malformed."""
    if not value or not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_local_time(value: str | None) -> time | None:
    """Parse ``HH:mm``; None when absent or malformed."""
    if not value or not _TIME_RE.match(value):
        return None
    hour, minute = int(value[:2]), int(value[3:])
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def resolve_zone(name: str | None) -> ZoneInfo | None:
    """Look up an IANA zone; None when unknown."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def to_instant(
    local_date: str | None, local_time: str | None, timezone: str | None
) -> datetime | None:
    """Convert a local date/time in a zone to an aware UTC datetime.

    Args:
        local_date: ``YYYY-MM-DD``.
        local_time: ``HH:mm``.
        timezone: IANA zone name.

    Returns:
        UTC datetime, or None if any input is missing or invalid.
    """
    day = parse_local_date(local_date)
    clock = parse_local_time(local_time)
    zone = resolve_zone(timezone)
    if day is None or clock is None or zone is None:
        return None
    return datetime.combine(day, clock, tzinfo=zone).astimezone(UTC)


def format_instant(instant: datetime | None) -> str | None:
    """Format as ISO-8601 UTC with millisecond precision and ``Z`` suffix."""
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.") + (
        f"{instant.microsecond // 1000:03d}Z"
    )


def to_iso_instant(
    local_date: str | None, local_time: str | None, timezone: str | None
) -> str | None:
    """Like :func:`to_instant` but returns the ISO string."""
    return format_instant(to_instant(local_date, local_time, timezone))


def days_apart(a: str | None, b: str | None) -> int | None:
    """Absolute whole-day distance between two local dates."""
    first = parse_local_date(a)
    second = parse_local_date(b)
    if first is None or second is None:
        return None
    return abs((first - second).days)
