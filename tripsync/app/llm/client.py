"""Oracle client: the single external text-reasoning boundary.

Security: Reads API key from settings/environment only, never hardcoded.
Provides a scripted client for tests and for local runs without a key.
"""

import logging
from collections import deque
from collections.abc import Iterable
from typing import Protocol

from openai import AsyncOpenAI

from tripsync.app.config import Settings
from tripsync.app.errors import OracleUnavailable

logger = logging.getLogger(__name__)


class OracleClient(Protocol):
    """Protocol for oracle client implementations."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the raw text produced for a prompt pair.

        Args:
            system_prompt: Instructions and output contract
            user_prompt: Task input

        Returns:
            Raw model text (expected to contain one JSON object)
        """
        ...


class ScriptedOracleClient:
    """Deterministic queue-backed client (no API key required).

    Each call pops the next scripted response. A scripted exception is raised
    instead of returned. Calls are recorded for assertions.
    """

    def __init__(self, responses: Iterable[str | Exception] = ()) -> None:
        self._responses: deque[str | Exception] = deque(responses)
        self.calls: list[tuple[str, str]] = []

    def push(self, *responses: str | Exception) -> None:
        """Queue more responses."""
        self._responses.extend(responses)

    @property
    def remaining(self) -> int:
        return len(self._responses)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Pop the next scripted response."""
        self.calls.append((system_prompt, user_prompt))
        if not self._responses:
            raise OracleUnavailable("No scripted oracle response available.")
        response = self._responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


class OpenAIOracleClient:
    """OpenAI-backed oracle client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", temperature: float = 0.2):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            temperature: Sampling temperature
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Call chat completions in JSON mode and return the message text."""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""


def build_oracle_client(settings: Settings) -> OracleClient:
    """Factory function to get appropriate oracle client based on config.

    Returns:
        OpenAIOracleClient if API key is configured, ScriptedOracleClient otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI oracle client", extra={"structured": {"model": settings.openai_model}})
        return OpenAIOracleClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            temperature=settings.oracle_temperature,
        )
    logger.warning("No OpenAI API key configured, oracle calls will fail until one is scripted")
    return ScriptedOracleClient()
