"""
Pure orchestrator reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).

Reducer owns timer semantics; runtime must not cancel timers implicitly.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from audio.quality import SignalQualityGate
from constants import (
    CAPTURE_CEILING_MS,
    ENRICH_TIMEOUT_MS,
    IDENTIFY_TIMEOUT_MS,
    LYRICS_TIMEOUT_MS,
    QUALITY_SAMPLE_INTERVAL_MS,
    SYNC_TICK_MS,
)
from orchestrator.commands import (
    CancelEnrichment,
    CancelIdentify,
    CancelTimer,
    CancelTranscriptLookup,
    Command,
    FinalizeCapture,
    LogEvent,
    OpenCapture,
    ReleaseCapture,
    SendJSONToClient,
    StartEnrichment,
    StartIdentify,
    StartTimer,
    StartTranscriptLookup,
)
from orchestrator.enums.service import Service
from orchestrator.enums.state import State
from orchestrator.errors import CaptureFailure, FailureKind, InvariantViolation
from orchestrator.events import (
    CancelRequested,
    CaptureCeilingReached,
    CaptureFailed,
    CaptureFinalized,
    CaptureRequested,
    CaptureStopRequested,
    EnrichmentFailed,
    EnrichmentResolved,
    EnrichmentTimeout,
    Event,
    EventType,
    IdentifyFailed,
    IdentifySucceeded,
    IdentifyTimeout,
    QualitySampleTaken,
    ServiceEvent,
    SessionEnded,
    SessionStarted,
    SyncTick,
    TranscriptFailed,
    TranscriptResolved,
    TranscriptTimeout,
)
from orchestrator.state_dataclass import OrchestratorState
from playback.clock import PlaybackClock
from playback.synchronizer import LineSynchronizer, SyncState
from protocol.messages import (
    S2C_ACTIVE_LINE,
    S2C_IDENTIFIED,
    S2C_NOW_PLAYING,
    S2C_SIGNAL_LEVEL,
    S2C_STATE,
)
from transcript.models import Transcript


# =============================================================================
# Invariants (run IDs & cancellation)
# =============================================================================
# - Run IDs are bumped ONLY when a run starts (capture/identify/enrich/lyrics)
# - Cancellation never bumps run IDs; a late result is rejected either by
#   state (no longer expected) or by run id (a newer run exists)
# - Every exit from RECORDING releases the input stream and clears both
#   recording timers

# =============================================================================
# Timer IDs
# =============================================================================

TIMER_CAPTURE_CEILING = "capture_ceiling"
TIMER_QUALITY_POLL = "quality_poll"
TIMER_IDENTIFY = "identify_timeout"
TIMER_ENRICH = "enrich_timeout"
TIMER_LYRICS = "lyrics_timeout"
TIMER_SYNC_TICK = "sync_tick"

ALL_TIMERS = (
    TIMER_CAPTURE_CEILING,
    TIMER_QUALITY_POLL,
    TIMER_IDENTIFY,
    TIMER_ENRICH,
    TIMER_LYRICS,
    TIMER_SYNC_TICK,
)

_SYNCHRONIZER = LineSynchronizer()

Result = tuple[OrchestratorState, tuple[Command, ...]]


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: OrchestratorState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_ids": state.active_runs.to_json(),
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(state: OrchestratorState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _state_message(state: OrchestratorState) -> SendJSONToClient:
    return SendJSONToClient(
        message_type=S2C_STATE,
        data={
            "state": state.state.value,
            "error": state.last_error.to_json() if state.last_error else None,
        },
    )


def _transition(
    prev: OrchestratorState,
    new_state: OrchestratorState,
    event: Event,
    source: str,
    cmds: list[Command],
) -> Result:
    """Finish a handler that changed control state."""
    return (
        new_state,
        _logs_last(tuple(cmds) + (
            _state_message(new_state),
            _log(
                new_state,
                event,
                "state_changed",
                {
                    "from_state": prev.state.value,
                    "to_state": new_state.state.value,
                    "source": source,
                },
            ),
        )),
    )


def _is_stale(state: OrchestratorState, event: ServiceEvent) -> bool:
    return event.run_id != state.active_runs.get(event.service)


def _cleared_session(state: OrchestratorState) -> OrchestratorState:
    """Drop all per-recording data; run ids and last_error are kept."""
    return replace(
        state,
        state=State.IDLE,
        quality_gate=SignalQualityGate(),
        capture_started_ts_ms=None,
        finalizing=False,
        identification=None,
        enrichment=None,
        transcript=None,
        enrichment_settled=False,
        transcript_settled=False,
        clock=None,
        sync=SyncState(),
    )


def _teardown_commands(state: OrchestratorState) -> list[Command]:
    """
    Release whatever the current state holds.

    Cancel commands are idempotent in the runtime, so a run that has
    already settled is harmless to name here.
    """
    runs = state.active_runs
    cmds: list[Command] = [CancelTimer(timer_id=t) for t in ALL_TIMERS]

    if state.state is State.RECORDING or state.finalizing:
        cmds.append(ReleaseCapture(run_id=runs.capture))

    if state.state is State.ANALYZING:
        if state.identification is None:
            if not state.finalizing:
                cmds.append(CancelIdentify(run_id=runs.identify))
        else:
            if not state.enrichment_settled:
                cmds.append(CancelEnrichment(run_id=runs.enrich))
            if not state.transcript_settled:
                cmds.append(CancelTranscriptLookup(run_id=runs.lyrics))

    return cmds


def _abort_to_idle(
    state: OrchestratorState,
    event: Event,
    failure: CaptureFailure,
    source: str,
) -> Result:
    cmds = _teardown_commands(state)
    new_state = replace(_cleared_session(state), last_error=failure)
    cmds.append(
        _log(
            new_state,
            event,
            "abort",
            {"kind": failure.kind.value, "detail": failure.detail},
        )
    )
    return _transition(state, new_state, event, source, cmds)


# =============================================================================
# RECORDING
# =============================================================================

def _stop_recording(
    state: OrchestratorState, event: Event, source: str
) -> Result:
    """
    Consult the quality gate exactly once, against the running maximum.
    """
    gate = state.quality_gate
    run_id = state.active_runs.capture

    if not gate.accepts():
        new_state, cmds = _abort_to_idle(
            state,
            event,
            CaptureFailure(FailureKind.SIGNAL_TOO_WEAK),
            source,
        )
        return new_state, _logs_last(cmds + (
            _log(new_state, event, "quality_rejected", gate.snapshot()),
        ))

    new_state = replace(state, state=State.ANALYZING, finalizing=True)
    cmds: list[Command] = [
        CancelTimer(timer_id=TIMER_CAPTURE_CEILING),
        CancelTimer(timer_id=TIMER_QUALITY_POLL),
        FinalizeCapture(run_id=run_id),
        _log(new_state, event, "quality_accepted", gate.snapshot()),
    ]
    return _transition(state, new_state, event, source, cmds)


def _on_quality_sample(state: OrchestratorState, event: QualitySampleTaken) -> Result:
    gate, advisory = state.quality_gate.observe(event.level)
    new_state = replace(state, quality_gate=gate)

    cmds: tuple[Command, ...] = (
        SendJSONToClient(
            message_type=S2C_SIGNAL_LEVEL,
            data={
                "level": round(gate.last_level, 1),
                "running_max": round(gate.running_max, 1),
                "advisory": advisory,
            },
        ),
    )

    started = state.capture_started_ts_ms
    if started is not None and event.ts_ms - started >= CAPTURE_CEILING_MS:
        stopped, more = _stop_recording(new_state, event, "ceiling_elapsed")
        return stopped, _logs_last(cmds + more)

    return new_state, cmds + (
        StartTimer(
            timer_id=TIMER_QUALITY_POLL,
            duration_ms=QUALITY_SAMPLE_INTERVAL_MS,
            timeout_event_type=EventType.QUALITY_SAMPLE_TAKEN,
            run_id=state.active_runs.capture,
        ),
    )


# =============================================================================
# ANALYZING
# =============================================================================

def _maybe_start_playing(
    state: OrchestratorState,
    event: Event,
    cmds: list[Command],
) -> Result:
    """
    ANALYZING → PLAYING once enrichment and transcript have both settled.
    """
    if not (state.enrichment_settled and state.transcript_settled):
        return state, _logs_last(tuple(cmds))

    if state.identification is None or state.clock is None:
        raise InvariantViolation("PLAYING requires an identification result")

    transcript = state.transcript or Transcript.unavailable()
    new_state = replace(state, state=State.PLAYING, transcript=transcript)

    cmds.append(
        SendJSONToClient(
            message_type=S2C_NOW_PLAYING,
            data={
                "identification": state.identification.to_json(),
                "enrichment": state.enrichment.to_json() if state.enrichment else None,
                "lines": transcript.to_json(),
                "available": transcript.available,
            },
        )
    )

    if transcript.available and len(transcript) > 0:
        new_state, tick_cmds = _sync_step(new_state, event)
        cmds.extend(tick_cmds)

    return _transition(state, new_state, event, "lookups_settled", cmds)


def _settle_enrichment(state: OrchestratorState, event: Event) -> Result:
    cmds: list[Command] = [CancelTimer(timer_id=TIMER_ENRICH)]
    enrichment = None

    if isinstance(event, EnrichmentResolved):
        enrichment = event.enrichment
        cmds.append(
            _log(state, event, "enrichment_resolved", {"found": enrichment is not None})
        )
    elif isinstance(event, EnrichmentFailed):
        cmds.append(_log(state, event, "enrichment_degraded", {"reason": event.reason}))
    else:
        cmds.append(CancelEnrichment(run_id=state.active_runs.enrich))
        cmds.append(_log(state, event, "enrichment_degraded", {"reason": "timeout"}))

    new_state = replace(state, enrichment=enrichment, enrichment_settled=True)
    return _maybe_start_playing(new_state, event, cmds)


def _settle_transcript(state: OrchestratorState, event: Event) -> Result:
    cmds: list[Command] = [CancelTimer(timer_id=TIMER_LYRICS)]

    if isinstance(event, TranscriptResolved):
        transcript = event.transcript
        cmds.append(
            _log(
                state,
                event,
                "transcript_resolved",
                {
                    "source": event.source,
                    "available": transcript.available,
                    "lines": len(transcript),
                },
            )
        )
    elif isinstance(event, TranscriptFailed):
        transcript = Transcript.unavailable()
        cmds.append(_log(state, event, "transcript_degraded", {"reason": event.reason}))
    else:
        transcript = Transcript.unavailable()
        cmds.append(CancelTranscriptLookup(run_id=state.active_runs.lyrics))
        cmds.append(_log(state, event, "transcript_degraded", {"reason": "timeout"}))

    new_state = replace(state, transcript=transcript, transcript_settled=True)
    return _maybe_start_playing(new_state, event, cmds)


# =============================================================================
# PLAYING
# =============================================================================

def _sync_step(state: OrchestratorState, event: Event) -> Result:
    """
    One synchronizer step at event.ts_ms, then re-arm the tick.
    """
    if state.clock is None or state.transcript is None:
        raise InvariantViolation("sync step without clock and transcript")

    elapsed_s = state.clock.elapsed_seconds(event.ts_ms)
    sync, changed = _SYNCHRONIZER.step(state.sync, state.transcript.lines, elapsed_s)
    new_state = replace(state, sync=sync)

    cmds: list[Command] = []
    if changed:
        cmds.append(
            SendJSONToClient(
                message_type=S2C_ACTIVE_LINE,
                data={
                    "index": sync.active_line_index,
                    "scroll_offset": sync.scroll_offset,
                    "elapsed_s": round(elapsed_s, 3),
                },
            )
        )
        cmds.append(
            _log(
                new_state,
                event,
                "active_line_changed",
                {
                    "from_index": state.sync.active_line_index,
                    "to_index": sync.active_line_index,
                    "elapsed_s": round(elapsed_s, 3),
                },
            )
        )

    cmds.append(
        StartTimer(
            timer_id=TIMER_SYNC_TICK,
            duration_ms=SYNC_TICK_MS,
            timeout_event_type=EventType.SYNC_TICK,
            run_id=state.active_runs.identify,
        )
    )
    return new_state, tuple(cmds)


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(state: OrchestratorState, event: Event) -> Result:
    """
    Pure reducer for the capture session state machine.

    Given the current orchestrator state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores events with stale run IDs

    Raises:
        InvariantViolation: only on a configuration the transitions below
        cannot produce.
    """
    if isinstance(event, SessionStarted):
        return state, (
            _log(state, event, "session_started", {"session_id": event.session_id}),
        )

    if isinstance(event, SessionEnded):
        return state, (
            _log(state, event, "session_ended", {"session_id": event.session_id}),
        )

    # ------------------------------------------------------------------
    # Cancellation (any state)
    # ------------------------------------------------------------------
    if isinstance(event, CancelRequested):
        if state.state is State.IDLE:
            if state.last_error is None:
                return _ignore(state, event, "already_idle")
            new_state = replace(state, last_error=None)
            return new_state, (
                _state_message(new_state),
                _log(new_state, event, "error_cleared"),
            )

        cmds = _teardown_commands(state)
        new_state = replace(_cleared_session(state), last_error=None)
        cmds.append(_log(new_state, event, "cancelled", {"from_state": state.state.value}))
        return _transition(state, new_state, event, "cancel", cmds)

    # ============================
    # IDLE
    # ============================
    if state.state is State.IDLE:
        if isinstance(event, CaptureRequested):
            new_runs = state.active_runs.bump(Service.CAPTURE)
            new_state = replace(
                _cleared_session(state),
                state=State.RECORDING,
                active_runs=new_runs,
                capture_started_ts_ms=event.ts_ms,
                last_error=None,
            )
            cmds: list[Command] = [
                OpenCapture(run_id=new_runs.capture),
                StartTimer(
                    timer_id=TIMER_CAPTURE_CEILING,
                    duration_ms=CAPTURE_CEILING_MS,
                    timeout_event_type=EventType.CAPTURE_CEILING_REACHED,
                    run_id=new_runs.capture,
                ),
                StartTimer(
                    timer_id=TIMER_QUALITY_POLL,
                    duration_ms=QUALITY_SAMPLE_INTERVAL_MS,
                    timeout_event_type=EventType.QUALITY_SAMPLE_TAKEN,
                    run_id=new_runs.capture,
                ),
                _log(new_state, event, "open_capture", {"capture_run_id": new_runs.capture}),
            ]
            return _transition(state, new_state, event, "capture_requested", cmds)

        return _ignore(state, event, "idle")

    if isinstance(event, CaptureRequested):
        return _ignore(state, event, "capture_in_progress")

    # ============================
    # RECORDING
    # ============================
    if state.state is State.RECORDING:
        if isinstance(event, CaptureFailed):
            if _is_stale(state, event):
                return _ignore(state, event, "stale_run_id")
            return _abort_to_idle(
                state, event, CaptureFailure(event.kind, event.detail), "capture_failed"
            )

        if isinstance(event, QualitySampleTaken):
            if event.run_id != state.active_runs.capture:
                return _ignore(state, event, "stale_run_id")
            return _on_quality_sample(state, event)

        if isinstance(event, CaptureStopRequested):
            return _stop_recording(state, event, "stop_requested")

        if isinstance(event, CaptureCeilingReached):
            if event.run_id != state.active_runs.capture:
                return _ignore(state, event, "stale_run_id")
            return _stop_recording(state, event, "ceiling_reached")

        return _ignore(state, event, "not_expected_while_recording")

    # ============================
    # ANALYZING
    # ============================
    if state.state is State.ANALYZING:
        if isinstance(event, CaptureFinalized):
            if _is_stale(state, event) or not state.finalizing:
                return _ignore(state, event, "stale_run_id")

            if event.sample.is_empty:
                return _abort_to_idle(
                    state,
                    event,
                    CaptureFailure(FailureKind.SIGNAL_TOO_WEAK, "empty sample"),
                    "empty_sample",
                )

            new_runs = state.active_runs.bump(Service.IDENTIFY)
            new_state = replace(state, active_runs=new_runs, finalizing=False)
            return new_state, _logs_last((
                StartIdentify(run_id=new_runs.identify, sample=event.sample),
                StartTimer(
                    timer_id=TIMER_IDENTIFY,
                    duration_ms=IDENTIFY_TIMEOUT_MS,
                    timeout_event_type=EventType.IDENTIFY_TIMEOUT,
                    run_id=new_runs.identify,
                ),
                _log(
                    new_state,
                    event,
                    "start_identify",
                    {
                        "identify_run_id": new_runs.identify,
                        "mime": event.sample.mime,
                        "bytes": len(event.sample.payload),
                    },
                ),
            ))

        if isinstance(event, CaptureFailed):
            if _is_stale(state, event) or not state.finalizing:
                return _ignore(state, event, "stale_run_id")
            return _abort_to_idle(
                state, event, CaptureFailure(event.kind, event.detail), "capture_failed"
            )

        if isinstance(event, IdentifySucceeded):
            if _is_stale(state, event) or state.identification is not None:
                return _ignore(state, event, "stale_run_id")

            result = event.result
            clock = PlaybackClock.establish(result.in_song_offset_ms, now_ms=event.ts_ms)
            new_runs = state.active_runs.bump(Service.ENRICH).bump(Service.LYRICS)
            new_state = replace(
                state,
                active_runs=new_runs,
                identification=result,
                clock=clock,
            )
            return new_state, _logs_last((
                CancelTimer(timer_id=TIMER_IDENTIFY),
                SendJSONToClient(message_type=S2C_IDENTIFIED, data=result.to_json()),
                StartEnrichment(run_id=new_runs.enrich, result=result),
                StartTimer(
                    timer_id=TIMER_ENRICH,
                    duration_ms=ENRICH_TIMEOUT_MS,
                    timeout_event_type=EventType.ENRICHMENT_TIMEOUT,
                    run_id=new_runs.enrich,
                ),
                StartTranscriptLookup(run_id=new_runs.lyrics, result=result),
                StartTimer(
                    timer_id=TIMER_LYRICS,
                    duration_ms=LYRICS_TIMEOUT_MS,
                    timeout_event_type=EventType.TRANSCRIPT_TIMEOUT,
                    run_id=new_runs.lyrics,
                ),
                _log(
                    new_state,
                    event,
                    "identified",
                    {
                        "title": result.title,
                        "artist": result.artist_name,
                        "in_song_offset_ms": result.in_song_offset_ms,
                        "clock_origin_ms": clock.origin_ms,
                    },
                ),
            ))

        if isinstance(event, IdentifyFailed):
            if _is_stale(state, event) or state.identification is not None:
                return _ignore(state, event, "stale_run_id")
            return _abort_to_idle(
                state, event, CaptureFailure(event.kind, event.detail), "identify_failed"
            )

        if isinstance(event, IdentifyTimeout):
            if event.run_id != state.active_runs.identify or state.identification is not None:
                return _ignore(state, event, "stale_run_id")
            return _abort_to_idle(
                state, event, CaptureFailure(FailureKind.TIMEOUT, "identify timeout"),
                "identify_timeout",
            )

        if isinstance(event, (EnrichmentResolved, EnrichmentFailed)):
            if _is_stale(state, event) or state.enrichment_settled:
                return _ignore(state, event, "stale_run_id")
            return _settle_enrichment(state, event)

        if isinstance(event, EnrichmentTimeout):
            if event.run_id != state.active_runs.enrich or state.enrichment_settled:
                return _ignore(state, event, "stale_run_id")
            return _settle_enrichment(state, event)

        if isinstance(event, (TranscriptResolved, TranscriptFailed)):
            if _is_stale(state, event) or state.transcript_settled:
                return _ignore(state, event, "stale_run_id")
            return _settle_transcript(state, event)

        if isinstance(event, TranscriptTimeout):
            if event.run_id != state.active_runs.lyrics or state.transcript_settled:
                return _ignore(state, event, "stale_run_id")
            return _settle_transcript(state, event)

        return _ignore(state, event, "not_expected_while_analyzing")

    # ============================
    # PLAYING
    # ============================
    if state.state is State.PLAYING:
        if isinstance(event, SyncTick):
            if event.run_id != state.active_runs.identify:
                return _ignore(state, event, "stale_run_id")
            if state.transcript is None or not state.transcript.available:
                return _ignore(state, event, "no_transcript")
            return _sync_step(state, event)

        return _ignore(state, event, "not_expected_while_playing")

    return _ignore(state, event, "unhandled_state")
