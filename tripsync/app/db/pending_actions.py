"""Helper functions for PendingAction database operations."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import PendingAction, Trip, utcnow
from tripsync.app.errors import PendingActionNotFound
from tripsync.app.models.common import PendingIntentType


async def create_pending_action(
    session: AsyncSession,
    *,
    trip_id: UUID,
    intent_type: PendingIntentType,
    raw_update_text: str,
    candidates: list[dict[str, Any]],
    payload: dict[str, Any],
    ttl_hours: int | None = None,
) -> PendingAction:
    """Add a pending action; expiry is informational only."""
    expires_at: datetime | None = utcnow() + timedelta(hours=ttl_hours) if ttl_hours else None
    action = PendingAction(
        trip_id=trip_id,
        intent_type=intent_type,
        raw_update_text=raw_update_text,
        candidates=candidates,
        payload=payload,
        expires_at=expires_at,
    )
    session.add(action)
    await session.flush()
    return action


async def get_pending_action_for_user(
    session: AsyncSession, ctx: RequestContext, action_id: UUID
) -> tuple[PendingAction, Trip]:
    """Load a pending action together with its (caller-owned) trip.

    Raises:
        PendingActionNotFound: Unknown id or trip owned by someone else
    """
    result = await session.execute(
        select(PendingAction, Trip)
        .join(Trip, Trip.id == PendingAction.trip_id)
        .where(
            PendingAction.id == action_id,
            Trip.org_id == ctx.org_id,
            Trip.user_id == ctx.user_id,
        )
    )
    row = result.one_or_none()
    if row is None:
        raise PendingActionNotFound()
    return row[0], row[1]


async def list_pending_actions(session: AsyncSession, trip_id: UUID) -> list[PendingAction]:
    """Open pending actions for a trip, oldest first."""
    result = await session.execute(
        select(PendingAction)
        .where(PendingAction.trip_id == trip_id)
        .order_by(PendingAction.created_at)
    )
    return list(result.scalars().all())
