"""Shared FastAPI dependencies."""

from fastapi import Request

from tripsync.app.config import Settings
from tripsync.app.errors import RawTextTooLong
from tripsync.app.llm.client import OracleClient
from tripsync.app.models.ingest import IngestFailed


def get_oracle(request: Request) -> OracleClient:
    """Oracle client built once in the application lifespan."""
    return request.app.state.oracle


def require_text_within_limit(text: str, settings: Settings) -> None:
    """Reject pasted text longer than max_raw_text_chars."""
    if len(text) > settings.max_raw_text_chars:
        raise RawTextTooLong(
            details={"maxChars": settings.max_raw_text_chars, "actualChars": len(text)}
        )


def raise_for_failure(result: object) -> None:
    """Re-raise the error carried by a failed ingest; the app handler renders it."""
    if isinstance(result, IngestFailed):
        raise result.error
