"""
Latency metrics for service calls.

- Durations use monotonic time; ts_ms is wall-clock for correlation
- One metric = one JSONL event, never aggregated in-process
- timed() records how the block ended: ok, error or cancelled
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event

OUTCOME_OK = "ok"
OUTCOME_ERROR = "error"
OUTCOME_CANCELLED = "cancelled"


def emit_timing(
    name: str,
    duration_ms: int,
    *,
    outcome: str = OUTCOME_OK,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "outcome": outcome,
        "session_id": session_id,
        "details": details or {},
    })


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Time a block and emit exactly one metric event.

    Yields the details dict so the block can attach results
    (e.g. which lookup step answered). Exceptions propagate unchanged.

    Usage:
        with timed("identify_latency", session_id=sid) as info:
            result = await call()
            info["status"] = 0
    """
    info: dict[str, Any] = dict(details or {})
    outcome = OUTCOME_ERROR
    start_ns = time.monotonic_ns()
    try:
        yield info
        outcome = OUTCOME_OK
    except asyncio.CancelledError:
        outcome = OUTCOME_CANCELLED
        raise
    finally:
        emit_timing(
            name,
            (time.monotonic_ns() - start_ns) // 1_000_000,
            outcome=outcome,
            session_id=session_id,
            details=info,
        )
