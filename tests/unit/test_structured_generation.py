"""Unit tests for validated generation with a single repair attempt."""

import asyncio
import json
from typing import Any

import pytest

from tripsync.app.errors import InvalidModelOutput, OracleUnavailable, SchemaValidationFailed
from tripsync.app.llm.client import ScriptedOracleClient
from tripsync.app.llm.structured import generate_structured
from tripsync.app.models.diagnostics import DiagnosticsRefresh

VALID = {
    "executiveSummary": "Two days in Lisbon.",
    "destinationSummary": "Lisbon",
    "risks": [],
    "assumptions": [],
    "missingInfo": [],
}
INVALID = {**VALID, "executiveSummary": ""}


class _RepairRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[dict[str, Any]]]] = []

    def __call__(self, invalid_json: str, issues: list[dict[str, Any]]) -> str:
        self.calls.append((invalid_json, issues))
        return f"REPAIR {invalid_json}"


async def _generate(client: ScriptedOracleClient, repair: _RepairRecorder, timeout: float = 5.0):
    return await generate_structured(
        client,
        schema=DiagnosticsRefresh,
        system_prompt="system",
        user_prompt="user",
        build_repair_prompt=repair,
        purpose="diagnostics",
        timeout_seconds=timeout,
    )


@pytest.mark.asyncio
async def test_valid_first_attempt_makes_one_call() -> None:
    client = ScriptedOracleClient([json.dumps(VALID)])

    result = await _generate(client, _RepairRecorder())

    assert result.value.destination_summary == "Lisbon"
    assert not result.repaired
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_fenced_output_is_accepted() -> None:
    client = ScriptedOracleClient([f"Here it is:\n```json\n{json.dumps(VALID)}\n```"])

    result = await _generate(client, _RepairRecorder())

    assert result.value.executive_summary == "Two days in Lisbon."


@pytest.mark.asyncio
async def test_schema_failure_gets_exactly_one_repair() -> None:
    client = ScriptedOracleClient([json.dumps(INVALID), json.dumps(VALID)])
    repair = _RepairRecorder()

    result = await _generate(client, repair)

    assert result.repaired
    assert len(client.calls) == 2
    assert client.calls[1] == ("system", f"REPAIR {json.dumps(INVALID)}")
    invalid_json, issues = repair.calls[0]
    assert json.loads(invalid_json) == INVALID
    assert issues[0]["path"] == "executiveSummary"


@pytest.mark.asyncio
async def test_second_schema_failure_is_final() -> None:
    client = ScriptedOracleClient([json.dumps(INVALID), json.dumps(INVALID), json.dumps(VALID)])

    with pytest.raises(SchemaValidationFailed) as exc_info:
        await _generate(client, _RepairRecorder())

    error = exc_info.value
    assert len(client.calls) == 2
    assert client.remaining == 1
    assert error.stage == "repair_validate"
    assert error.status_code == 502
    assert error.code == "SCHEMA_VALIDATION_FAILED"
    assert len(error.attempts) == 2
    assert error.attempts[1]["issues"][0]["path"] == "executiveSummary"
    assert error.details == {"issues": error.issues}


@pytest.mark.asyncio
async def test_unparseable_first_output_is_not_repaired() -> None:
    client = ScriptedOracleClient(["I could not find any trip details.", json.dumps(VALID)])

    with pytest.raises(InvalidModelOutput) as exc_info:
        await _generate(client, _RepairRecorder())

    assert len(client.calls) == 1
    assert exc_info.value.stage == "attempt1_parse"
    assert exc_info.value.attempts[0]["modelOutput"] == "I could not find any trip details."


@pytest.mark.asyncio
async def test_unparseable_repair_output() -> None:
    client = ScriptedOracleClient([json.dumps(INVALID), "{broken"])

    with pytest.raises(InvalidModelOutput) as exc_info:
        await _generate(client, _RepairRecorder())

    assert len(client.calls) == 2
    assert exc_info.value.stage == "repair_parse"
    assert len(exc_info.value.attempts) == 2


@pytest.mark.asyncio
async def test_transport_error_becomes_oracle_unavailable() -> None:
    client = ScriptedOracleClient([ConnectionError("reset by peer")])

    with pytest.raises(OracleUnavailable) as exc_info:
        await _generate(client, _RepairRecorder())

    assert exc_info.value.stage == "attempt1_call"
    assert exc_info.value.attempts == []


@pytest.mark.asyncio
async def test_repair_transport_error_keeps_first_attempt() -> None:
    client = ScriptedOracleClient([json.dumps(INVALID), TimeoutError()])

    with pytest.raises(OracleUnavailable) as exc_info:
        await _generate(client, _RepairRecorder())

    assert exc_info.value.stage == "repair_call"
    assert len(exc_info.value.attempts) == 1


class _SlowClient:
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        await asyncio.sleep(1)
        return json.dumps(VALID)


@pytest.mark.asyncio
async def test_timeout_becomes_oracle_unavailable() -> None:
    with pytest.raises(OracleUnavailable) as exc_info:
        await generate_structured(
            _SlowClient(),
            schema=DiagnosticsRefresh,
            system_prompt="system",
            user_prompt="user",
            build_repair_prompt=_RepairRecorder(),
            purpose="diagnostics",
            timeout_seconds=0.01,
        )

    assert "timed out" in exc_info.value.message
