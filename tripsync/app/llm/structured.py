"""Structured-output generation: extract JSON, validate, repair once.

The oracle is called at most twice per request. A JSON parse failure at
either attempt is fatal immediately; only schema failures earn the single
repair round-trip.
"""

import asyncio
import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from tripsync.app.errors import InvalidModelOutput, OracleUnavailable, SchemaValidationFailed
from tripsync.app.llm.client import OracleClient
from tripsync.app.utils.logging import OracleCallContext, StructuredOracleLogger
from tripsync.app.utils.metrics import PrometheusOracleMetrics

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MAX_LOGGED_ISSUES = 8

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_oracle_logger = StructuredOracleLogger()
_metrics = PrometheusOracleMetrics()


def extract_json(text: str) -> str:
    """Pull the JSON document out of raw model text.

    Non-empty fenced block contents win, then the span from the first ``{`` to the
    last ``}``, else the trimmed text itself.
    """
    fenced = _FENCE_RE.search(text)
    if fenced and fenced.group(1):
        return fenced.group(1).strip()
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first : last + 1]
    return text.strip()


def validation_issues(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{path, type, message}`` dicts."""
    return [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "type": error["type"],
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def summarize_issues(issues: list[dict[str, Any]]) -> list[str]:
    """Compact one-line summaries of the first few issues, for logs."""
    return [
        f"{issue['path'] or '<root>'}: {issue['message']}" for issue in issues[:MAX_LOGGED_ISSUES]
    ]


def truncate_text(value: str | None, max_chars: int) -> str | None:
    """Cap a debug string, appending how much was dropped."""
    if value is None or len(value) <= max_chars:
        return value
    omitted = len(value) - max_chars
    return f"{value[:max_chars]}\n...[truncated {omitted} chars]"


@dataclass
class StructuredResult(Generic[ModelT]):
    """Validated output plus the attempts that produced it."""

    value: ModelT
    attempts: list[dict[str, Any]] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return len(self.attempts) > 1


async def _call_oracle(
    client: OracleClient,
    system_prompt: str,
    user_prompt: str,
    ctx: OracleCallContext,
    timeout_seconds: float,
    attempts: list[dict[str, Any]],
) -> str:
    stage = "attempt1_call" if ctx.attempt == 1 else "repair_call"
    started = time.perf_counter()
    try:
        raw = await asyncio.wait_for(
            client.complete(system_prompt, user_prompt), timeout=timeout_seconds
        )
    except TimeoutError as exc:
        latency_ms = (time.perf_counter() - started) * 1000
        _oracle_logger.log_attempt(ctx, "timeout", latency_ms, error_reason="timeout")
        _metrics.record_latency(ctx.purpose, "timeout", latency_ms)
        raise OracleUnavailable(
            f"Oracle timed out after {timeout_seconds}s.", stage=stage, attempts=attempts
        ) from exc
    except Exception as exc:
        latency_ms = (time.perf_counter() - started) * 1000
        _oracle_logger.log_attempt(ctx, "error", latency_ms, error_reason=type(exc).__name__)
        _metrics.record_latency(ctx.purpose, "error", latency_ms)
        message = exc.message if isinstance(exc, OracleUnavailable) else f"Oracle call failed: {exc}"
        raise OracleUnavailable(message, stage=stage, attempts=attempts) from exc

    latency_ms = (time.perf_counter() - started) * 1000
    _oracle_logger.log_attempt(ctx, "success", latency_ms, output_chars=len(raw))
    _metrics.record_latency(ctx.purpose, "success", latency_ms)
    return raw


def _parse(raw: str, stage: str, attempts: list[dict[str, Any]]) -> tuple[str, Any]:
    extracted = extract_json(raw)
    attempts.append({"modelOutput": raw, "extractedJson": extracted, "issues": None})
    try:
        return extracted, json.loads(extracted)
    except json.JSONDecodeError as exc:
        raise InvalidModelOutput(
            f"Model output is not valid JSON: {exc.msg}.",
            details={"position": exc.pos},
            stage=stage,
            attempts=attempts,
        ) from exc


async def generate_structured(
    client: OracleClient,
    *,
    schema: type[ModelT],
    system_prompt: str,
    user_prompt: str,
    build_repair_prompt: Callable[[str, list[dict[str, Any]]], str],
    purpose: str,
    timeout_seconds: float,
    trip_id: str | None = None,
) -> StructuredResult[ModelT]:
    """Produce a schema-valid object from the oracle with one repair.

    Args:
        client: Oracle client
        schema: Pydantic model the output must satisfy
        system_prompt: System prompt for both attempts
        user_prompt: User prompt for the first attempt
        build_repair_prompt: Builds the repair user prompt from the invalid
            JSON and its issues
        purpose: Label for logs/metrics (reconstruct, patch, diagnostics)
        timeout_seconds: Per-call timeout
        trip_id: Optional trip id for log correlation

    Returns:
        StructuredResult with the validated model and attempt records

    Raises:
        OracleUnavailable: Transport failure or timeout
        InvalidModelOutput: Unparseable JSON at either attempt
        SchemaValidationFailed: Schema mismatch after the repair
    """
    attempts: list[dict[str, Any]] = []

    raw = await _call_oracle(
        client,
        system_prompt,
        user_prompt,
        OracleCallContext(purpose=purpose, attempt=1, trip_id=trip_id),
        timeout_seconds,
        attempts,
    )
    extracted, data = _parse(raw, "attempt1_parse", attempts)
    try:
        return StructuredResult(value=schema.model_validate(data), attempts=attempts)
    except ValidationError as exc:
        issues = validation_issues(exc)
        attempts[-1]["issues"] = issues

    logger.warning(
        f"{purpose} output failed validation, attempting repair",
        extra={"structured": {"purpose": purpose, "issues": summarize_issues(issues)}},
    )
    _metrics.inc_repair(purpose)

    repair_raw = await _call_oracle(
        client,
        system_prompt,
        build_repair_prompt(extracted, issues),
        OracleCallContext(purpose=purpose, attempt=2, trip_id=trip_id),
        timeout_seconds,
        attempts,
    )
    _, repaired = _parse(repair_raw, "repair_parse", attempts)
    try:
        return StructuredResult(value=schema.model_validate(repaired), attempts=attempts)
    except ValidationError as exc:
        repair_issues = validation_issues(exc)
        attempts[-1]["issues"] = repair_issues
        logger.warning(
            f"{purpose} output failed validation after repair",
            extra={"structured": {"purpose": purpose, "issues": summarize_issues(repair_issues)}},
        )
        raise SchemaValidationFailed(
            issues=repair_issues, stage="repair_validate", attempts=attempts
        ) from exc
