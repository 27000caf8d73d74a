"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tripsync.app.api.routes.ai import router as ai_router
from tripsync.app.api.routes.health import router as health_router
from tripsync.app.api.routes.metrics import router as metrics_router
from tripsync.app.api.routes.pending_actions import router as pending_actions_router
from tripsync.app.api.routes.trips import router as trips_router
from tripsync.app.config import get_settings
from tripsync.app.db.engine import dispose_async_engine
from tripsync.app.errors import TripSyncError
from tripsync.app.llm.client import build_oracle_client
from tripsync.app.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    if not hasattr(app.state, "oracle"):
        app.state.oracle = build_oracle_client(settings)
    yield
    await dispose_async_engine()


app = FastAPI(title="TripSync API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(TripSyncError)
async def tripsync_error_handler(request: Request, exc: TripSyncError) -> JSONResponse:
    """Render domain errors as their public payload."""
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(trips_router)
app.include_router(pending_actions_router)
app.include_router(ai_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "TripSync API", "version": "0.1.0"}
