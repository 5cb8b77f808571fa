# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from typing import Any

import pytest

from observability import logger, metrics
from orchestrator.enums.state import State


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    lines: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    monkeypatch.setattr(logger, "_enabled", True)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[dict[str, Any]]) -> None:
    payload: dict[str, Any] = {
        "ts_ms": 5,
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert captured == [payload]


def test_missing_timestamp_is_filled_without_mutating_caller(
    captured: list[dict[str, Any]],
) -> None:
    payload = {"event_type": "TEST"}

    logger.log_event(payload)

    assert isinstance(captured[0]["ts_ms"], int)
    assert "ts_ms" not in payload


def test_enums_and_sets_are_written_by_value(captured: list[dict[str, Any]]) -> None:
    logger.log_event({"ts_ms": 1, "state": State.PLAYING, "timers": frozenset({"sync_tick"})})

    assert captured[0]["state"] == "PLAYING"
    assert captured[0]["timers"] == ["sync_tick"]


def test_unserializable_payload_logs_fallback(captured: list[dict[str, Any]]) -> None:
    logger.log_event({"ts_ms": 1, "event_type": "TEST", "blob": object()})

    assert captured[0]["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert captured[0]["ts_ms"] == 1


def test_disabled_logger_is_silent(
    captured: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logger, "_enabled", True)
    logger.configure_logging(enabled=False)
    try:
        logger.log_event({"event_type": "TEST"})
    finally:
        logger.configure_logging(enabled=True)

    assert captured == []


# ---------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------

def test_timed_records_ok_with_attached_details(captured: list[dict[str, Any]]) -> None:
    with metrics.timed("lyrics_latency", session_id="s1", details={"run_id": 2}) as info:
        info["source"] = "cache"

    (event,) = captured
    assert event["event_type"] == "METRIC_TIMER"
    assert event["metric"] == "lyrics_latency"
    assert event["outcome"] == metrics.OUTCOME_OK
    assert event["details"] == {"run_id": 2, "source": "cache"}
    assert event["value_ms"] >= 0


def test_timed_records_error_and_reraises(captured: list[dict[str, Any]]) -> None:
    with pytest.raises(RuntimeError):
        with metrics.timed("identify_latency"):
            raise RuntimeError("boom")

    assert captured[0]["outcome"] == metrics.OUTCOME_ERROR


def test_timed_records_cancellation(captured: list[dict[str, Any]]) -> None:
    async def scenario() -> None:
        async def slow() -> None:
            with metrics.timed("enrich_latency"):
                await asyncio.sleep(10)

        task = asyncio.create_task(slow())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert captured[0]["outcome"] == metrics.OUTCOME_CANCELLED
