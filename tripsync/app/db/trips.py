"""Helper functions for Trip database operations."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import ReconstructRun, Trip
from tripsync.app.errors import TripNotFound
from tripsync.app.models.common import RunStatus

UNTITLED_TRIP = "Untitled Trip"
SOURCE_SEPARATOR = "\n\n---\n\n"


async def create_trip(session: AsyncSession, ctx: RequestContext, title: str | None = None) -> Trip:
    """Insert a new trip owned by the caller."""
    trip = Trip(
        org_id=ctx.org_id,
        user_id=ctx.user_id,
        title=(title or "").strip() or UNTITLED_TRIP,
    )
    session.add(trip)
    await session.flush()
    return trip


async def get_trip_for_user(session: AsyncSession, ctx: RequestContext, trip_id: UUID) -> Trip:
    """Load a trip the caller owns.

    Raises:
        TripNotFound: If the trip does not exist or belongs to someone else
    """
    trip = await session.get(Trip, trip_id)
    if trip is None or not ctx.owns(trip):
        raise TripNotFound()
    return trip


async def list_trips_with_status(
    session: AsyncSession, ctx: RequestContext
) -> list[tuple[Trip, RunStatus | None]]:
    """Caller's trips, newest first, each with its latest run status."""
    result = await session.execute(
        select(Trip)
        .where(Trip.org_id == ctx.org_id, Trip.user_id == ctx.user_id)
        .order_by(Trip.created_at.desc())
    )
    trips = list(result.scalars().all())
    if not trips:
        return []

    latest = (
        select(ReconstructRun.trip_id, func.max(ReconstructRun.created_at).label("latest_at"))
        .where(ReconstructRun.trip_id.in_([t.id for t in trips]))
        .group_by(ReconstructRun.trip_id)
        .subquery()
    )
    status_rows = await session.execute(
        select(ReconstructRun.trip_id, ReconstructRun.status).join(
            latest,
            (ReconstructRun.trip_id == latest.c.trip_id)
            & (ReconstructRun.created_at == latest.c.latest_at),
        )
    )
    statuses = {trip_id: status for trip_id, status in status_rows.all()}
    return [(trip, statuses.get(trip.id)) for trip in trips]


def accumulate_source_text(
    existing: str | None, new_text: str, max_chars: int
) -> tuple[str, dict[str, int | bool] | None]:
    """Append a dump to the trip's source text, keeping the newest tail.

    Returns:
        Combined (possibly truncated) text, and truncation info when the
        oldest text had to be dropped
    """
    combined = f"{existing}{SOURCE_SEPARATOR}{new_text}" if existing else new_text
    original_chars = len(combined)
    if original_chars <= max_chars:
        return combined, None
    kept = combined[-max_chars:]
    return kept, {
        "rawTextTruncated": True,
        "rawTextOriginalChars": original_chars,
        "rawTextKeptChars": len(kept),
        "rawTextOmittedChars": original_chars - len(kept),
    }
