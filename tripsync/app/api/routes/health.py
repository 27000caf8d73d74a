"""Health check endpoints.

- /health: liveness, always 200 while the process runs
- /healthz: checks database connectivity and oracle configuration
"""

import json
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text

from tripsync.app.config import Settings, get_settings
from tripsync.app.db.engine import get_async_engine

router = APIRouter()


async def check_db() -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


def check_oracle(settings: Settings) -> tuple[bool, str]:
    """Report whether the oracle has credentials. Not a reachability probe."""
    if settings.openai_api_key is None:
        return (True, "not_configured")
    return (True, "configured")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Component health check.

    Returns:
        200 with component status if the database is reachable
        503 otherwise
    """
    settings = get_settings()

    db_ok, db_status = await check_db()
    _, oracle_status = check_oracle(settings)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {"db": db_status, "oracle": oracle_status},
    }

    if not db_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
