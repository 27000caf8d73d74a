"""Best-effort refresh of narrative diagnostics after a patch."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.models import RunType, TripItem
from tripsync.app.db.runs import get_latest_diagnostics_source, record_run
from tripsync.app.db.trip_items import list_trip_items
from tripsync.app.errors import TripSyncError
from tripsync.app.llm.client import OracleClient
from tripsync.app.llm.prompts import diagnostics as prompts
from tripsync.app.llm.structured import generate_structured
from tripsync.app.models.common import RunStatus
from tripsync.app.models.diagnostics import DiagnosticsRefresh

logger = logging.getLogger(__name__)


def items_snapshot(items: list[TripItem]) -> list[dict[str, Any]]:
    """Canonical item view handed to the oracle."""
    return [
        {
            "id": str(item.id),
            "kind": item.kind.value,
            "title": item.title,
            "startLocalDate": item.start_local_date,
            "startLocalTime": item.start_local_time,
            "endLocalDate": item.end_local_date,
            "endLocalTime": item.end_local_time,
            "locationText": item.location_text,
            "isInferred": item.is_inferred,
            "confidence": item.confidence,
            "state": item.state.value,
        }
        for item in items
    ]


def merge_diagnostics(
    base: dict[str, Any], diagnostics: DiagnosticsRefresh, items: list[TripItem]
) -> dict[str, Any]:
    """Overlay refreshed fields on the previous output and recount items.

    Args:
        base: Previous full-trip output
        diagnostics: Validated refresh
        items: Non-dismissed items

    Returns:
        New output document (base is not mutated)
    """
    refreshed = diagnostics.to_wire()
    source_stats = base.get("sourceStats")
    return {
        **base,
        **refreshed,
        "sourceStats": {
            **(source_stats if isinstance(source_stats, dict) else {}),
            "recognizedItemCount": len(items),
            "inferredItemCount": sum(1 for item in items if item.is_inferred),
        },
    }


async def refresh_diagnostics(
    session: AsyncSession,
    oracle: OracleClient,
    settings: Settings,
    *,
    trip_id: UUID,
    user_id: UUID,
    raw_update_text: str,
    timezone: str | None = None,
    now_iso: str | None = None,
) -> UUID | None:
    """Refresh diagnostics and append them as a new SUCCESS run.

    Never raises for expected failures: oracle or store problems are logged
    and swallowed so the patch result stands.

    Returns:
        New run id, or None when skipped or failed
    """
    try:
        latest = await get_latest_diagnostics_source(session, trip_id)
        if latest is None or not isinstance(latest.output_json, dict):
            logger.info(
                "Diagnostics refresh skipped, no prior reconstruction",
                extra={"structured": {"trip_id": str(trip_id)}},
            )
            return None
        base = latest.output_json
        items = await list_trip_items(session, trip_id, include_dismissed=False)

        result = await generate_structured(
            oracle,
            schema=DiagnosticsRefresh,
            system_prompt=prompts.SYSTEM_PROMPT,
            user_prompt=prompts.build_user_prompt(raw_update_text, items_snapshot(items), base),
            build_repair_prompt=prompts.build_repair_prompt,
            purpose="diagnostics",
            timeout_seconds=settings.oracle_timeout_seconds,
            trip_id=str(trip_id),
        )

        run = await record_run(
            session,
            user_id=user_id,
            trip_id=trip_id,
            status=RunStatus.SUCCESS,
            run_type=RunType.DIAGNOSTICS,
            timezone=timezone,
            now_iso=now_iso,
            raw_text=raw_update_text,
            output_json=merge_diagnostics(base, result.value, items),
        )
        run_id = run.id
        await session.commit()
    except (TripSyncError, SQLAlchemyError) as exc:
        await session.rollback()
        logger.warning(
            "Diagnostics refresh failed",
            extra={"structured": {"trip_id": str(trip_id), "error": type(exc).__name__}},
        )
        return None

    logger.info(
        "Diagnostics refreshed", extra={"structured": {"trip_id": str(trip_id), "run_id": str(run_id)}}
    )
    return run_id
