"""Shared pytest fixtures for all test suites."""

import uuid
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.models import Base, Trip
from tripsync.app.llm.client import ScriptedOracleClient
from tripsync.app.orchestration.locks import trip_locks

TEST_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created.

    A file is used instead of :memory: so every pooled connection sees the
    same schema.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tripsync.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the application's."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def ctx() -> RequestContext:
    """Development identity."""
    return RequestContext(org_id=TEST_ORG_ID, user_id=TEST_USER_ID)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env file."""
    return Settings(_env_file=None, database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
def oracle() -> ScriptedOracleClient:
    """Empty scripted oracle; tests push the responses they need."""
    return ScriptedOracleClient()


@pytest_asyncio.fixture
async def trip(session: AsyncSession, ctx: RequestContext) -> Trip:
    """An empty, untitled trip owned by the test identity."""
    trip = Trip(org_id=ctx.org_id, user_id=ctx.user_id)
    session.add(trip)
    await session.commit()
    return trip


@pytest.fixture(autouse=True)
def _reset_trip_locks() -> None:
    """Locks are bound to an event loop; start every test with none."""
    trip_locks.clear()


def _point(
    local_date: str | None = None, local_time: str | None = None, timezone: str | None = None
) -> dict:
    return {"localDate": local_date, "localTime": local_time, "timezone": timezone, "iso": None}


def build_item(
    item_id: str = "item-1",
    kind: str = "FLIGHT",
    title: str = "UA123 JFK to SFO",
    local_date: str | None = "2026-03-12",
    local_time: str | None = "19:35",
    timezone: str | None = "America/New_York",
    location_text: str | None = "JFK",
    is_inferred: bool = False,
    confidence: float = 0.95,
    **extra: object,
) -> dict:
    """One itinerary item as the oracle would emit it."""
    return {
        "id": item_id,
        "kind": kind,
        "title": title,
        "start": _point(local_date, local_time, timezone),
        "end": _point(),
        "locationText": location_text,
        "isInferred": is_inferred,
        "confidence": confidence,
        "sourceSnippet": "Flight UA123 JFK->SFO, Mar 12, 7:35 PM",
        **extra,
    }


def build_reconstruction(items: list[dict] | None = None, title: str = "San Francisco trip") -> dict:
    """A schema-valid reconstruction document."""
    items = [build_item()] if items is None else items
    return {
        "tripTitle": title,
        "executiveSummary": "Flight to San Francisco.",
        "destinationSummary": "San Francisco",
        "dateRange": {
            "startLocalDate": "2026-03-12",
            "endLocalDate": "2026-03-12",
            "timezone": "America/New_York",
        },
        "days": [{"dayIndex": 1, "label": "Day 1", "localDate": "2026-03-12", "items": items}],
        "risks": [],
        "assumptions": [],
        "missingInfo": [],
        "sourceStats": {
            "inputCharCount": 40,
            "recognizedItemCount": len(items),
            "inferredItemCount": sum(1 for item in items if item["isInferred"]),
        },
    }


def build_patch_op(
    op_type: str = "UPDATE_ITEM",
    confidence: float = 0.9,
    target_hints: dict | None = None,
    **payload: object,
) -> dict:
    """One wire patch op."""
    op: dict = {"opType": op_type, "confidence": confidence, "reason": "User update"}
    if target_hints is not None:
        op["targetHints"] = target_hints
    op.update(payload)
    return op


def build_diagnostics() -> dict:
    """A schema-valid diagnostics refresh."""
    return {
        "executiveSummary": "Flight to San Francisco, now departing later.",
        "destinationSummary": "San Francisco",
        "risks": [],
        "assumptions": [],
        "missingInfo": [],
    }


@pytest.fixture
def make_item():
    return build_item


@pytest.fixture
def make_reconstruction():
    return build_reconstruction


@pytest.fixture
def make_patch_op():
    return build_patch_op


@pytest.fixture
def make_diagnostics():
    return build_diagnostics
