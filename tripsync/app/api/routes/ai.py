"""Stateless reconstruction endpoint (run recorded without a trip)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.dependencies import get_oracle, require_text_within_limit
from tripsync.app.config import Settings, get_settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.engine import get_session
from tripsync.app.llm.client import OracleClient
from tripsync.app.models.common import ClientContext
from tripsync.app.models.reconstruction import TripReconstruction
from tripsync.app.orchestration.reconstruct import ReconstructRequest, reconstruct_trip

router = APIRouter(prefix="/ai", tags=["ai"])


class ReconstructRequestBody(BaseModel):
    """Request body for POST /ai/reconstruct."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    raw_text: str = Field(..., min_length=1)
    client: ClientContext


@router.post("/reconstruct", response_model=TripReconstruction)
async def reconstruct_route(
    request: ReconstructRequestBody,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    session: Annotated[AsyncSession, Depends(get_session)],
    oracle: Annotated[OracleClient, Depends(get_oracle)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TripReconstruction:
    """Reconstruct raw text without attaching it to a trip."""
    require_text_within_limit(request.raw_text, settings)
    outcome = await reconstruct_trip(
        session,
        oracle,
        ReconstructRequest(
            user_id=ctx.user_id, raw_text=request.raw_text.strip(), client=request.client
        ),
        settings,
    )
    return outcome.reconstruction
