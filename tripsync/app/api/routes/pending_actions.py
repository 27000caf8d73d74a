"""Pending action endpoints - resolve a clarification request."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.api.auth import get_current_context
from tripsync.app.config import Settings, get_settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.engine import get_session
from tripsync.app.models.ingest import IngestApplied, IngestFailed
from tripsync.app.orchestration.pending import resolve_pending_action

router = APIRouter(prefix="/pending-actions", tags=["pending-actions"])


class ResolvePendingActionRequest(BaseModel):
    """Request body for POST /pending-actions/{pending_action_id}/resolve."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    selected_item_id: UUID


@router.post("/{pending_action_id}/resolve", response_model=IngestApplied)
async def resolve_pending_action_route(
    pending_action_id: UUID,
    request: ResolvePendingActionRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IngestApplied:
    """Apply the deferred operation to the item the user picked."""
    result = await resolve_pending_action(
        session, ctx, pending_action_id, request.selected_item_id, settings
    )
    if isinstance(result, IngestFailed):
        raise result.error
    return result
