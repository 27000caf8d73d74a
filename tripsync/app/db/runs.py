"""Helper functions for ReconstructRun database operations."""

import uuid
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.models import ReconstructRun, RunType
from tripsync.app.models.common import RunStatus


async def record_run(
    session: AsyncSession,
    *,
    user_id: UUID,
    trip_id: UUID | None,
    status: RunStatus,
    run_type: RunType = RunType.RECONSTRUCT,
    run_id: UUID | None = None,
    timezone: str | None = None,
    now_iso: str | None = None,
    raw_text: str | None = None,
    output_json: dict[str, Any] | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
) -> ReconstructRun:
    """Add one fully populated run row (caller commits).

    Args:
        session: Database session
        user_id: Calling user
        trip_id: Trip the run belongs to (None for stateless runs)
        status: SUCCESS or FAILED
        run_type: What produced the run
        run_id: Pre-generated id (patches allocate it up front)

    Returns:
        The new run row
    """
    run = ReconstructRun(
        id=run_id or uuid.uuid4(),
        user_id=user_id,
        trip_id=trip_id,
        run_type=run_type,
        status=status,
        timezone=timezone,
        now_iso=now_iso,
        raw_text=raw_text,
        output_json=output_json,
        error_code=error_code,
        error_message=error_message,
    )
    session.add(run)
    await session.flush()
    return run


async def get_latest_diagnostics_source(
    session: AsyncSession, trip_id: UUID
) -> ReconstructRun | None:
    """Latest successful run carrying a full trip output (not a patch)."""
    result = await session.execute(
        select(ReconstructRun)
        .where(
            ReconstructRun.trip_id == trip_id,
            ReconstructRun.status == RunStatus.SUCCESS,
            ReconstructRun.run_type != RunType.PATCH,
        )
        .order_by(ReconstructRun.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_trip_runs(session: AsyncSession, trip_id: UUID, limit: int = 50) -> list[ReconstructRun]:
    """Runs for a trip, newest first."""
    result = await session.execute(
        select(ReconstructRun)
        .where(ReconstructRun.trip_id == trip_id)
        .order_by(ReconstructRun.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
