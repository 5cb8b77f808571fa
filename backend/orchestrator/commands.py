"""
Side-effect command definitions for the orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from adapters.identify.base import IdentificationResult
from audio.sample import AudioSample
from orchestrator.events import EventType

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging, replay,
    and runtime dispatch.
    """

    # Capture
    OPEN_CAPTURE = "OPEN_CAPTURE"
    FINALIZE_CAPTURE = "FINALIZE_CAPTURE"
    RELEASE_CAPTURE = "RELEASE_CAPTURE"

    # Identification
    START_IDENTIFY = "START_IDENTIFY"
    CANCEL_IDENTIFY = "CANCEL_IDENTIFY"

    # Lookups
    START_ENRICHMENT = "START_ENRICHMENT"
    START_TRANSCRIPT_LOOKUP = "START_TRANSCRIPT_LOOKUP"
    CANCEL_ENRICHMENT = "CANCEL_ENRICHMENT"
    CANCEL_TRANSCRIPT_LOOKUP = "CANCEL_TRANSCRIPT_LOOKUP"

    # Client / transport
    SEND_JSON_TO_CLIENT = "SEND_JSON_TO_CLIENT"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Capture Commands
# =============================================================================

@dataclass(frozen=True)
class OpenCapture(Command):
    """Acquire the input stream for a new recording."""
    run_id: int
    command_type: CommandType = CommandType.OPEN_CAPTURE


@dataclass(frozen=True)
class FinalizeCapture(Command):
    """
    Stop the input stream and hand over the sample.

    The runtime answers with CaptureFinalized(run_id).
    """
    run_id: int
    command_type: CommandType = CommandType.FINALIZE_CAPTURE


@dataclass(frozen=True)
class ReleaseCapture(Command):
    """Stop the input stream and discard any captured audio."""
    run_id: int
    command_type: CommandType = CommandType.RELEASE_CAPTURE


# =============================================================================
# Identification Commands
# =============================================================================

@dataclass(frozen=True)
class StartIdentify(Command):
    run_id: int
    sample: AudioSample
    command_type: CommandType = CommandType.START_IDENTIFY


@dataclass(frozen=True)
class CancelIdentify(Command):
    run_id: int
    command_type: CommandType = CommandType.CANCEL_IDENTIFY


# =============================================================================
# Lookup Commands
# =============================================================================

@dataclass(frozen=True)
class StartEnrichment(Command):
    run_id: int
    result: IdentificationResult
    command_type: CommandType = CommandType.START_ENRICHMENT


@dataclass(frozen=True)
class StartTranscriptLookup(Command):
    run_id: int
    result: IdentificationResult
    command_type: CommandType = CommandType.START_TRANSCRIPT_LOOKUP


@dataclass(frozen=True)
class CancelEnrichment(Command):
    run_id: int
    command_type: CommandType = CommandType.CANCEL_ENRICHMENT


@dataclass(frozen=True)
class CancelTranscriptLookup(Command):
    run_id: int
    command_type: CommandType = CommandType.CANCEL_TRANSCRIPT_LOOKUP


# =============================================================================
# Client Commands
# =============================================================================

@dataclass(frozen=True)
class SendJSONToClient(Command):
    """
    Send a JSON control or UI message to the client.
    """
    message_type: str
    data: dict[str, Any]
    command_type: CommandType = CommandType.SEND_JSON_TO_CLIENT


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a named timer.

    On expiration, the runtime must inject the specified timeout event,
    built with run_id so a timer can never act on a later run.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    run_id: int
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
