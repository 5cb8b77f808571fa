# pylint: disable=missing-module-docstring,missing-function-docstring
from typing import Any, TypeVar

from adapters.enrich.base import Enrichment
from adapters.identify.base import IdentificationResult
from audio.sample import AudioSample
from orchestrator.commands import Command, LogEvent, SendJSONToClient
from orchestrator.enums.service import Service
from orchestrator.errors import FailureKind
from orchestrator.events import (
    CancelRequested,
    CaptureCeilingReached,
    CaptureFailed,
    CaptureFinalized,
    CaptureRequested,
    CaptureStopRequested,
    EnrichmentResolved,
    EnrichmentTimeout,
    EventType,
    IdentifyFailed,
    IdentifySucceeded,
    IdentifyTimeout,
    QualitySampleTaken,
    SyncTick,
    TranscriptFailed,
    TranscriptResolved,
    TranscriptTimeout,
)
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import OrchestratorState
from transcript.models import LyricLine, Transcript

C = TypeVar("C", bound=Command)

SONG = IdentificationResult(
    title="Song",
    artist_name="Band",
    in_song_offset_ms=45_000,
    artists=("Band",),
    genres=("Pop",),
)

LINES = Transcript(lines=(
    LyricLine(time_s=40.0, text="first"),
    LyricLine(time_s=50.0, text="second"),
    LyricLine(time_s=60.0, text="third"),
))

SAMPLE = AudioSample.from_pcm16(b"\x01\x00" * 320)

ENRICHMENT = Enrichment(song_id=7, title="Song", artist="Band")


# ---------------------------------------------------------------------
# Event helpers (mirror runtime / gateway construction)
# ---------------------------------------------------------------------

def capture_requested(ts_ms: int = 1_000) -> CaptureRequested:
    return CaptureRequested(event_type=EventType.CAPTURE_REQUESTED, ts_ms=ts_ms)


def stop_requested(ts_ms: int = 3_000) -> CaptureStopRequested:
    return CaptureStopRequested(event_type=EventType.CAPTURE_STOP_REQUESTED, ts_ms=ts_ms)


def cancel_requested(ts_ms: int = 0) -> CancelRequested:
    return CancelRequested(event_type=EventType.CANCEL_REQUESTED, ts_ms=ts_ms)


def quality(level: float, run_id: int = 1, ts_ms: int = 1_200) -> QualitySampleTaken:
    return QualitySampleTaken(
        event_type=EventType.QUALITY_SAMPLE_TAKEN, ts_ms=ts_ms, run_id=run_id, level=level
    )


def ceiling(run_id: int = 1, ts_ms: int = 7_000) -> CaptureCeilingReached:
    return CaptureCeilingReached(
        event_type=EventType.CAPTURE_CEILING_REACHED, ts_ms=ts_ms, run_id=run_id
    )


def capture_failed(kind: FailureKind, run_id: int = 1) -> CaptureFailed:
    return CaptureFailed(
        event_type=EventType.CAPTURE_FAILED,
        ts_ms=1_100,
        service=Service.CAPTURE,
        run_id=run_id,
        kind=kind,
    )


def finalized(sample: AudioSample = SAMPLE, run_id: int = 1) -> CaptureFinalized:
    return CaptureFinalized(
        event_type=EventType.CAPTURE_FINALIZED,
        ts_ms=3_010,
        service=Service.CAPTURE,
        run_id=run_id,
        sample=sample,
    )


def identified(run_id: int = 1, ts_ms: int = 10_000) -> IdentifySucceeded:
    return IdentifySucceeded(
        event_type=EventType.IDENTIFY_SUCCEEDED,
        ts_ms=ts_ms,
        service=Service.IDENTIFY,
        run_id=run_id,
        result=SONG,
    )


def identify_failed(kind: FailureKind, run_id: int = 1) -> IdentifyFailed:
    return IdentifyFailed(
        event_type=EventType.IDENTIFY_FAILED,
        ts_ms=10_000,
        service=Service.IDENTIFY,
        run_id=run_id,
        kind=kind,
    )


def identify_timeout(run_id: int = 1) -> IdentifyTimeout:
    return IdentifyTimeout(event_type=EventType.IDENTIFY_TIMEOUT, ts_ms=18_000, run_id=run_id)


def enrichment_resolved(
    enrichment: Enrichment | None = ENRICHMENT, run_id: int = 1, ts_ms: int = 10_050
) -> EnrichmentResolved:
    return EnrichmentResolved(
        event_type=EventType.ENRICHMENT_RESOLVED,
        ts_ms=ts_ms,
        service=Service.ENRICH,
        run_id=run_id,
        enrichment=enrichment,
    )


def enrichment_timeout(run_id: int = 1) -> EnrichmentTimeout:
    return EnrichmentTimeout(
        event_type=EventType.ENRICHMENT_TIMEOUT, ts_ms=25_000, run_id=run_id
    )


def transcript_resolved(
    transcript: Transcript = LINES, run_id: int = 1, ts_ms: int = 10_100
) -> TranscriptResolved:
    return TranscriptResolved(
        event_type=EventType.TRANSCRIPT_RESOLVED,
        ts_ms=ts_ms,
        service=Service.LYRICS,
        run_id=run_id,
        transcript=transcript,
        source="get",
    )


def transcript_failed(run_id: int = 1) -> TranscriptFailed:
    return TranscriptFailed(
        event_type=EventType.TRANSCRIPT_FAILED,
        ts_ms=10_100,
        service=Service.LYRICS,
        run_id=run_id,
        reason="search failed",
    )


def transcript_timeout(run_id: int = 1) -> TranscriptTimeout:
    return TranscriptTimeout(
        event_type=EventType.TRANSCRIPT_TIMEOUT, ts_ms=25_000, run_id=run_id
    )


def sync_tick(ts_ms: int, run_id: int = 1) -> SyncTick:
    return SyncTick(event_type=EventType.SYNC_TICK, ts_ms=ts_ms, run_id=run_id)


# ---------------------------------------------------------------------
# Command helpers
# ---------------------------------------------------------------------

def of_type(cmds: tuple[Command, ...], cls: type[C]) -> list[C]:
    return [c for c in cmds if isinstance(c, cls)]


def messages(cmds: tuple[Command, ...], message_type: str) -> list[dict[str, Any]]:
    return [
        c.data for c in of_type(cmds, SendJSONToClient) if c.message_type == message_type
    ]


def decisions(cmds: tuple[Command, ...]) -> list[str]:
    return [c.event["decision"] for c in of_type(cmds, LogEvent)]


# ---------------------------------------------------------------------
# State builders
# ---------------------------------------------------------------------

def recording(level: float = 40.0) -> OrchestratorState:
    state, _ = reduce(OrchestratorState(), capture_requested())
    state, _ = reduce(state, quality(level))
    return state


def analyzing_identified() -> OrchestratorState:
    state, _ = reduce(recording(), stop_requested())
    state, _ = reduce(state, finalized())
    state, _ = reduce(state, identified())
    return state


def playing() -> OrchestratorState:
    state, _ = reduce(analyzing_identified(), enrichment_resolved())
    state, _ = reduce(state, transcript_resolved())
    return state
