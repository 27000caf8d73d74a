"""Reconstruction pipeline: raw dump -> validated TripReconstruction -> items.

Every invocation leaves exactly one run row behind, SUCCESS or FAILED. A
generation error always wins over a failure to record it.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.config import Settings
from tripsync.app.db.models import RunType
from tripsync.app.db.runs import record_run
from tripsync.app.db.trip_items import assign_fields, get_item_by_fingerprint, insert_trip_item
from tripsync.app.errors import ConcurrentUpdateConflict, OracleError
from tripsync.app.itinerary.fields import build_ai_details, fields_from_itinerary_item, merge_metadata
from tripsync.app.llm.client import OracleClient
from tripsync.app.llm.prompts import reconstruct as prompts
from tripsync.app.llm.structured import generate_structured, truncate_text
from tripsync.app.models.common import ClientContext, RunStatus, TripItemSource, TripItemState
from tripsync.app.models.reconstruction import TripReconstruction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconstructRequest:
    """Input of one reconstruction."""

    user_id: UUID
    raw_text: str
    client: ClientContext
    trip_id: UUID | None = None
    input_meta: dict[str, Any] | None = None


@dataclass(frozen=True)
class ReconstructOutcome:
    run_id: UUID
    reconstruction: TripReconstruction
    item_ids: list[UUID] = field(default_factory=list)


def build_output_json(
    reconstruction: TripReconstruction, input_meta: dict[str, Any] | None
) -> dict[str, Any]:
    """Run output: the reconstruction, plus truncation info when present."""
    output = reconstruction.to_wire()
    if input_meta and input_meta.get("rawTextTruncated"):
        output["_meta"] = {"rawText": input_meta}
    return output


def _attempt_debug(attempts: list[dict[str, Any]], index: int, max_chars: int) -> dict[str, Any]:
    attempt = attempts[index] if index < len(attempts) else {}
    return {
        "modelOutput": truncate_text(attempt.get("modelOutput"), max_chars),
        "extractedJson": truncate_text(attempt.get("extractedJson"), max_chars),
        "issues": attempt.get("issues"),
    }


def build_error_payload(
    error: OracleError, input_meta: dict[str, Any] | None, max_chars: int
) -> dict[str, Any]:
    """Postmortem payload stored on a FAILED run."""
    return {
        "type": "reconstruct_error",
        "stage": error.stage,
        "code": error.code,
        "message": error.message,
        "inputMeta": input_meta,
        "attempt1": _attempt_debug(error.attempts, 0, max_chars),
        "attempt2": _attempt_debug(error.attempts, 1, max_chars),
        "details": error.details,
    }


async def _record_failure(
    session: AsyncSession, request: ReconstructRequest, error: OracleError, settings: Settings
) -> None:
    try:
        await record_run(
            session,
            user_id=request.user_id,
            trip_id=request.trip_id,
            status=RunStatus.FAILED,
            timezone=request.client.timezone,
            now_iso=request.client.now_iso,
            raw_text=request.raw_text,
            error_code=error.code,
            error_message=error.message,
            output_json=build_error_payload(
                error, request.input_meta, settings.debug_payload_max_chars
            ),
        )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception(
            "Failed to record failed reconstruct run",
            extra={"structured": {"error_code": error.code, "stage": error.stage}},
        )


async def _upsert_items(
    session: AsyncSession, trip_id: UUID, reconstruction: TripReconstruction, run_id: UUID
) -> list[UUID]:
    item_ids: list[UUID] = []
    for item in reconstruction.iter_items():
        fields = fields_from_itinerary_item(item)
        ai = build_ai_details(item)
        existing = await get_item_by_fingerprint(session, trip_id, fields.fingerprint)
        if existing is not None:
            assign_fields(existing, fields)
            existing.is_inferred = item.is_inferred
            existing.confidence = item.confidence
            existing.source_snippet = item.source_snippet
            existing.item_metadata = merge_metadata(existing.item_metadata, run_id, ai=ai)
            item_ids.append(existing.id)
            continue

        metadata: dict[str, Any] = {"sourceRunId": str(run_id), "lastUpdatedByRunId": str(run_id)}
        if ai:
            metadata["ai"] = ai
        created = await insert_trip_item(
            session,
            trip_id,
            fields,
            state=TripItemState.PROPOSED,
            source=TripItemSource.AI,
            is_inferred=item.is_inferred,
            confidence=item.confidence,
            source_snippet=item.source_snippet,
            metadata=metadata,
        )
        item_ids.append(created.id)
    return item_ids


async def reconstruct_trip(
    session: AsyncSession,
    oracle: OracleClient,
    request: ReconstructRequest,
    settings: Settings,
) -> ReconstructOutcome:
    """Reconstruct a trip from raw text and persist the result.

    Args:
        session: Database session (committed here)
        oracle: Oracle client
        request: Raw text, client clock and optional trip
        settings: Application settings

    Returns:
        ReconstructOutcome with the run id, reconstruction and upserted item ids

    Raises:
        OracleError: Generation failed (the FAILED run is recorded best-effort)
        ConcurrentUpdateConflict: Fingerprint constraint tripped while upserting
    """
    logger.info(
        "Reconstruction start",
        extra={
            "structured": {
                "raw_text_chars": len(request.raw_text),
                "trip_id": str(request.trip_id) if request.trip_id else None,
            }
        },
    )
    started = time.perf_counter()
    try:
        result = await generate_structured(
            oracle,
            schema=TripReconstruction,
            system_prompt=prompts.SYSTEM_PROMPT,
            user_prompt=prompts.build_user_prompt(
                request.client.timezone, request.client.now_iso, request.raw_text
            ),
            build_repair_prompt=lambda invalid_json, issues: prompts.build_repair_prompt(
                request.client.timezone,
                request.client.now_iso,
                request.raw_text,
                invalid_json,
                issues,
            ),
            purpose="reconstruct",
            timeout_seconds=settings.oracle_timeout_seconds,
            trip_id=str(request.trip_id) if request.trip_id else None,
        )
    except OracleError as exc:
        await _record_failure(session, request, exc, settings)
        raise
    logger.info(
        "Reconstruction generated",
        extra={"structured": {"duration_ms": round((time.perf_counter() - started) * 1000, 2)}},
    )

    reconstruction = result.value
    persist_started = time.perf_counter()
    try:
        run = await record_run(
            session,
            user_id=request.user_id,
            trip_id=request.trip_id,
            status=RunStatus.SUCCESS,
            run_type=RunType.RECONSTRUCT,
            timezone=request.client.timezone,
            now_iso=request.client.now_iso,
            raw_text=request.raw_text,
            output_json=build_output_json(reconstruction, request.input_meta),
        )
        run_id = run.id
        item_ids: list[UUID] = []
        if request.trip_id is not None:
            item_ids = await _upsert_items(session, request.trip_id, reconstruction, run_id)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConcurrentUpdateConflict() from exc
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Reconstruction persisted",
        extra={
            "structured": {
                "run_id": str(run_id),
                "items": len(item_ids),
                "duration_ms": round((time.perf_counter() - persist_started) * 1000, 2),
            }
        },
    )
    return ReconstructOutcome(run_id=run_id, reconstruction=reconstruction, item_ids=item_ids)
