"""
JSONL event logger.

- One JSON object per line on stdout
- Flushed per line, no batching
- Enum values are written by value; ts_ms is filled in when missing
- Never raises
"""

from __future__ import annotations

import json
import sys
import time
from enum import Enum
from typing import Any, Callable, Mapping


# ------------------------------------------------------------------
# Output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


_print: Callable[[str], None] = _stdout_print
_enabled: bool = True


def configure_logging(*, enabled: bool) -> None:
    """Turn JSONL output on or off for the process (ENABLE_JSON_LOGS)."""
    global _enabled  # pylint: disable=global-statement
    _enabled = enabled


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    Callers supply event_type and whatever context they have
    (session_id, state, run ids).
    """
    if not _enabled:
        return

    record = dict(event)
    record.setdefault("ts_ms", time.time_ns() // 1_000_000)

    try:
        line = json.dumps(
            record, ensure_ascii=False, separators=(",", ":"), default=_json_default
        )
    except (TypeError, ValueError) as e:
        fallback: dict[str, Any] = {
            "ts_ms": record.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
