"""Helper functions for TripItem database operations."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.models import TripItem
from tripsync.app.itinerary.fields import ItemFields
from tripsync.app.models.common import TripItemSource, TripItemState


async def list_trip_items(
    session: AsyncSession, trip_id: UUID, *, include_dismissed: bool = True
) -> list[TripItem]:
    """Items of a trip in chronological order (undated last)."""
    stmt = select(TripItem).where(TripItem.trip_id == trip_id)
    if not include_dismissed:
        stmt = stmt.where(TripItem.state != TripItemState.DISMISSED)
    stmt = stmt.order_by(
        TripItem.start_local_date.is_(None),
        TripItem.start_local_date,
        TripItem.start_local_time.is_(None),
        TripItem.start_local_time,
        TripItem.created_at,
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_trip_item(session: AsyncSession, trip_id: UUID, item_id: UUID) -> TripItem | None:
    """Load one item scoped to its trip."""
    result = await session.execute(
        select(TripItem).where(TripItem.trip_id == trip_id, TripItem.id == item_id)
    )
    return result.scalar_one_or_none()


async def get_item_by_fingerprint(
    session: AsyncSession, trip_id: UUID, fingerprint: str
) -> TripItem | None:
    """Load the item holding a fingerprint within a trip."""
    result = await session.execute(
        select(TripItem).where(TripItem.trip_id == trip_id, TripItem.fingerprint == fingerprint)
    )
    return result.scalar_one_or_none()


def assign_fields(item: TripItem, fields: ItemFields) -> None:
    """Overwrite identity and temporal columns."""
    for name, value in fields.as_columns().items():
        setattr(item, name, value)


async def insert_trip_item(
    session: AsyncSession,
    trip_id: UUID,
    fields: ItemFields,
    *,
    state: TripItemState,
    source: TripItemSource,
    is_inferred: bool,
    confidence: float,
    source_snippet: str | None,
    metadata: dict[str, Any] | None,
) -> TripItem:
    """Insert a new item and flush so its id is available."""
    item = TripItem(
        trip_id=trip_id,
        state=state,
        source=source,
        is_inferred=is_inferred,
        confidence=confidence,
        source_snippet=source_snippet,
        item_metadata=metadata,
        **fields.as_columns(),
    )
    session.add(item)
    await session.flush()
    return item
