"""
Authoritative orchestrator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from adapters.enrich.base import Enrichment
from adapters.identify.base import IdentificationResult
from audio.quality import SignalQualityGate
from orchestrator.enums.state import State
from orchestrator.errors import CaptureFailure
from orchestrator.run_ids import RunIds
from playback.clock import PlaybackClock
from playback.synchronizer import SyncState
from transcript.models import Transcript


@dataclass(frozen=True)
class OrchestratorState:
    """Immutable snapshot of all orchestrator-owned state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: State = State.IDLE

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # ------------------------------------------------------------------
    # RECORDING
    # ------------------------------------------------------------------
    quality_gate: SignalQualityGate = field(default_factory=SignalQualityGate)
    capture_started_ts_ms: int | None = None
    # True between FinalizeCapture and CaptureFinalized
    finalizing: bool = False

    # ------------------------------------------------------------------
    # ANALYZING
    # ------------------------------------------------------------------
    identification: IdentificationResult | None = None
    enrichment: Enrichment | None = None
    transcript: Transcript | None = None
    enrichment_settled: bool = False
    transcript_settled: bool = False

    # ------------------------------------------------------------------
    # PLAYING
    # ------------------------------------------------------------------
    clock: PlaybackClock | None = None
    sync: SyncState = field(default_factory=SyncState)

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    last_error: CaptureFailure | None = None
