"""
Unified event definitions for the orchestrator reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer events are not ServiceEvents, but carry the run_id they guard for
stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from adapters.enrich.base import Enrichment
from adapters.identify.base import IdentificationResult
from audio.sample import AudioSample
from orchestrator.enums.service import Service
from orchestrator.errors import FailureKind
from transcript.models import Transcript


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"

    # ------------------------------------------------------------------
    # Client control
    # ------------------------------------------------------------------
    CAPTURE_REQUESTED = "CAPTURE_REQUESTED"
    CAPTURE_STOP_REQUESTED = "CAPTURE_STOP_REQUESTED"
    CANCEL_REQUESTED = "CANCEL_REQUESTED"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    CAPTURE_FAILED = "CAPTURE_FAILED"
    QUALITY_SAMPLE_TAKEN = "QUALITY_SAMPLE_TAKEN"
    CAPTURE_CEILING_REACHED = "CAPTURE_CEILING_REACHED"
    CAPTURE_FINALIZED = "CAPTURE_FINALIZED"

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------
    IDENTIFY_SUCCEEDED = "IDENTIFY_SUCCEEDED"
    IDENTIFY_FAILED = "IDENTIFY_FAILED"
    IDENTIFY_TIMEOUT = "IDENTIFY_TIMEOUT"

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------
    ENRICHMENT_RESOLVED = "ENRICHMENT_RESOLVED"
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"
    ENRICHMENT_TIMEOUT = "ENRICHMENT_TIMEOUT"

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------
    TRANSCRIPT_RESOLVED = "TRANSCRIPT_RESOLVED"
    TRANSCRIPT_FAILED = "TRANSCRIPT_FAILED"
    TRANSCRIPT_TIMEOUT = "TRANSCRIPT_TIMEOUT"

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    SYNC_TICK = "SYNC_TICK"


# =============================================================================
# Base Events
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned activity.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that service.
    """

    service: Service
    run_id: int


@dataclass(frozen=True)
class TimerEvent(Event):
    """Timer expiry; run_id is the run the timer was armed for."""
    run_id: int


# =============================================================================
# Session Events
# =============================================================================

@dataclass(frozen=True)
class SessionStarted(Event):
    session_id: str


@dataclass(frozen=True)
class SessionEnded(Event):
    session_id: str


# =============================================================================
# Client Control Events
# =============================================================================

@dataclass(frozen=True)
class CaptureRequested(Event):
    """User asked to start listening."""


@dataclass(frozen=True)
class CaptureStopRequested(Event):
    """User asked to stop listening early."""


@dataclass(frozen=True)
class CancelRequested(Event):
    """Explicit reset to IDLE from any state."""


# =============================================================================
# Capture Events
# =============================================================================

@dataclass(frozen=True)
class CaptureFailed(ServiceEvent):
    """Input stream could not be acquired or was lost."""
    kind: FailureKind
    detail: str = ""


@dataclass(frozen=True)
class QualitySampleTaken(TimerEvent):
    """
    One amplitude reading on the quality cadence.

    Injected by the runtime when the quality poll timer fires.
    """
    level: float


@dataclass(frozen=True)
class CaptureCeilingReached(TimerEvent):
    """Recording hit the hard duration ceiling."""


@dataclass(frozen=True)
class CaptureFinalized(ServiceEvent):
    """Source stopped and produced the sample."""
    sample: AudioSample


# =============================================================================
# Identification Events
# =============================================================================

@dataclass(frozen=True)
class IdentifySucceeded(ServiceEvent):
    result: IdentificationResult


@dataclass(frozen=True)
class IdentifyFailed(ServiceEvent):
    kind: FailureKind
    detail: str = ""


@dataclass(frozen=True)
class IdentifyTimeout(TimerEvent):
    """Identification did not settle within IDENTIFY_TIMEOUT_MS."""


# =============================================================================
# Enrichment Events
# =============================================================================

@dataclass(frozen=True)
class EnrichmentResolved(ServiceEvent):
    """enrichment=None means no match (not an error)."""
    enrichment: Enrichment | None


@dataclass(frozen=True)
class EnrichmentFailed(ServiceEvent):
    reason: str


@dataclass(frozen=True)
class EnrichmentTimeout(TimerEvent):
    pass


# =============================================================================
# Transcript Events
# =============================================================================

@dataclass(frozen=True)
class TranscriptResolved(ServiceEvent):
    """
    transcript.available=False is a valid outcome.

    source: "cache" | "get" | "search" | "none"
    """
    transcript: Transcript
    source: str = "none"


@dataclass(frozen=True)
class TranscriptFailed(ServiceEvent):
    reason: str


@dataclass(frozen=True)
class TranscriptTimeout(TimerEvent):
    pass


# =============================================================================
# Playback Events
# =============================================================================

@dataclass(frozen=True)
class SyncTick(TimerEvent):
    """
    Periodic tick while PLAYING with an available transcript.

    run_id is the identification run the clock belongs to.
    """
