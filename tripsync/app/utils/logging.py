"""Structured logging for oracle calls and pipelines."""

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OracleCallContext:
    """Identifies one oracle round-trip."""

    purpose: str
    attempt: int
    trip_id: str | None = None


class StructuredOracleLogger:
    """Structured logger for oracle calls."""

    def log_attempt(
        self,
        ctx: OracleCallContext,
        outcome: str,
        latency_ms: float,
        output_chars: int = 0,
        error_reason: str | None = None,
    ) -> None:
        """Log oracle call attempt with structured data."""
        log_data: dict[str, Any] = {
            "purpose": ctx.purpose,
            "attempt": ctx.attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "output_chars": output_chars,
        }
        if ctx.trip_id:
            log_data["trip_id"] = ctx.trip_id
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Oracle call: {ctx.purpose} attempt {ctx.attempt} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
