# pylint: disable=missing-module-docstring,missing-function-docstring
from orchestrator.commands import (
    CancelIdentify,
    CancelTimer,
    FinalizeCapture,
    LogEvent,
    OpenCapture,
    ReleaseCapture,
    StartIdentify,
    StartTimer,
)
from orchestrator.enums.state import State
from orchestrator.errors import FailureKind, user_message
from orchestrator.events import EventType
from orchestrator.reducer import (
    ALL_TIMERS,
    TIMER_CAPTURE_CEILING,
    TIMER_IDENTIFY,
    TIMER_QUALITY_POLL,
    reduce,
)
from orchestrator.state_dataclass import OrchestratorState
from audio.sample import AudioSample
from protocol.messages import S2C_SIGNAL_LEVEL, S2C_STATE

from reducer_helpers import (
    cancel_requested,
    capture_failed,
    capture_requested,
    ceiling,
    decisions,
    finalized,
    identified,
    messages,
    of_type,
    quality,
    recording,
    stop_requested,
)


# ---------------------------------------------------------------------
# IDLE -> RECORDING
# ---------------------------------------------------------------------

def test_capture_request_opens_capture_and_arms_timers() -> None:
    state, cmds = reduce(OrchestratorState(), capture_requested(ts_ms=1_000))

    assert state.state is State.RECORDING
    assert state.active_runs.capture == 1
    assert state.capture_started_ts_ms == 1_000

    assert of_type(cmds, OpenCapture) == [OpenCapture(run_id=1)]
    timers = {t.timer_id: t for t in of_type(cmds, StartTimer)}
    assert timers[TIMER_CAPTURE_CEILING].duration_ms == 6_000
    assert timers[TIMER_CAPTURE_CEILING].run_id == 1
    assert timers[TIMER_QUALITY_POLL].duration_ms == 200
    assert timers[TIMER_QUALITY_POLL].timeout_event_type is EventType.QUALITY_SAMPLE_TAKEN

    assert messages(cmds, S2C_STATE) == [{"state": "RECORDING", "error": None}]


def test_log_events_are_emitted_last_with_state_change_final() -> None:
    _, cmds = reduce(OrchestratorState(), capture_requested())

    first_log = next(i for i, c in enumerate(cmds) if isinstance(c, LogEvent))
    assert all(isinstance(c, LogEvent) for c in cmds[first_log:])
    assert cmds[-1].event["decision"] == "state_changed"  # type: ignore[attr-defined]


def test_capture_request_while_recording_is_ignored() -> None:
    state = recording()

    new_state, cmds = reduce(state, capture_requested(ts_ms=2_000))

    assert new_state == state
    assert decisions(cmds) == ["ignore"]


def test_second_recording_gets_a_new_run_id() -> None:
    state, _ = reduce(recording(), cancel_requested())
    state, cmds = reduce(state, capture_requested())

    assert of_type(cmds, OpenCapture) == [OpenCapture(run_id=2)]


# ---------------------------------------------------------------------
# Quality sampling
# ---------------------------------------------------------------------

def test_quality_sample_reports_level_and_rearms() -> None:
    state, _ = reduce(OrchestratorState(), capture_requested())

    state, cmds = reduce(state, quality(8.0))

    assert messages(cmds, S2C_SIGNAL_LEVEL) == [
        {"level": 8.0, "running_max": 8.0, "advisory": True}
    ]
    assert [t.timer_id for t in of_type(cmds, StartTimer)] == [TIMER_QUALITY_POLL]
    assert state.quality_gate.samples_seen == 1


def test_stale_quality_sample_is_ignored() -> None:
    state = recording()

    new_state, cmds = reduce(state, quality(90.0, run_id=0))

    assert new_state == state
    assert decisions(cmds) == ["ignore"]


def test_quality_sample_past_ceiling_stops_recording() -> None:
    state, _ = reduce(OrchestratorState(), capture_requested(ts_ms=1_000))

    state, cmds = reduce(state, quality(50.0, ts_ms=7_000))

    assert state.state is State.ANALYZING
    assert of_type(cmds, FinalizeCapture) == [FinalizeCapture(run_id=1)]
    assert not of_type(cmds, StartTimer)
    assert messages(cmds, S2C_SIGNAL_LEVEL)


# ---------------------------------------------------------------------
# Stopping: quality gate
# ---------------------------------------------------------------------

def test_stop_with_weak_signal_aborts() -> None:
    state, cmds = reduce(recording(level=14.0), stop_requested())

    assert state.state is State.IDLE
    assert state.last_error is not None
    assert state.last_error.kind is FailureKind.SIGNAL_TOO_WEAK
    assert of_type(cmds, ReleaseCapture) == [ReleaseCapture(run_id=1)]
    assert not of_type(cmds, FinalizeCapture)
    assert {c.timer_id for c in of_type(cmds, CancelTimer)} == set(ALL_TIMERS)

    (msg,) = messages(cmds, S2C_STATE)
    assert msg["state"] == "IDLE"
    assert msg["error"]["kind"] == "signal_too_weak"
    assert msg["error"]["message"] == user_message(FailureKind.SIGNAL_TOO_WEAK)
    assert "quality_rejected" in decisions(cmds)


def test_stop_with_one_loud_moment_is_accepted() -> None:
    state = recording(level=3.0)
    state, _ = reduce(state, quality(16.0, ts_ms=1_400))
    state, _ = reduce(state, quality(2.0, ts_ms=1_600))

    state, cmds = reduce(state, stop_requested())

    assert state.state is State.ANALYZING
    assert state.finalizing is True
    assert of_type(cmds, FinalizeCapture) == [FinalizeCapture(run_id=1)]
    assert {c.timer_id for c in of_type(cmds, CancelTimer)} == {
        TIMER_CAPTURE_CEILING,
        TIMER_QUALITY_POLL,
    }


def test_ceiling_timer_stops_recording() -> None:
    state, cmds = reduce(recording(), ceiling())

    assert state.state is State.ANALYZING
    assert of_type(cmds, FinalizeCapture)


def test_stale_ceiling_timer_is_ignored() -> None:
    state = recording()

    new_state, _ = reduce(state, ceiling(run_id=0))

    assert new_state.state is State.RECORDING


def test_device_failure_while_recording_aborts() -> None:
    state, cmds = reduce(recording(), capture_failed(FailureKind.PERMISSION_DENIED))

    assert state.state is State.IDLE
    assert state.last_error is not None
    assert state.last_error.kind is FailureKind.PERMISSION_DENIED
    assert of_type(cmds, ReleaseCapture)


def test_device_failure_for_old_run_is_ignored() -> None:
    state, _ = reduce(recording(), capture_failed(FailureKind.NO_DEVICE, run_id=0))

    assert state.state is State.RECORDING


# ---------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------

def test_finalized_sample_starts_identification() -> None:
    state, _ = reduce(recording(), stop_requested())

    state, cmds = reduce(state, finalized())

    assert state.finalizing is False
    assert state.active_runs.identify == 1
    (start,) = of_type(cmds, StartIdentify)
    assert start.run_id == 1
    assert not start.sample.is_empty
    assert [t.timer_id for t in of_type(cmds, StartTimer)] == [TIMER_IDENTIFY]


def test_empty_sample_aborts_as_weak_signal() -> None:
    state, _ = reduce(recording(), stop_requested())

    state, cmds = reduce(state, finalized(sample=AudioSample.from_pcm16(b"")))

    assert state.state is State.IDLE
    assert state.last_error is not None
    assert state.last_error.kind is FailureKind.SIGNAL_TOO_WEAK
    assert not of_type(cmds, StartIdentify)


def test_cancel_while_finalizing_releases_capture_only() -> None:
    state, _ = reduce(recording(), stop_requested())

    state, cmds = reduce(state, cancel_requested())

    assert state.state is State.IDLE
    assert of_type(cmds, ReleaseCapture) == [ReleaseCapture(run_id=1)]
    assert not of_type(cmds, CancelIdentify)

    # The sample that was in flight arrives after the cancel
    state, cmds = reduce(state, finalized())
    assert state.state is State.IDLE
    assert not of_type(cmds, StartIdentify)


# ---------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------

def test_cancel_while_recording_returns_to_idle_without_error() -> None:
    state, cmds = reduce(recording(), cancel_requested())

    assert state.state is State.IDLE
    assert state.last_error is None
    assert of_type(cmds, ReleaseCapture)
    assert messages(cmds, S2C_STATE) == [{"state": "IDLE", "error": None}]


def test_cancel_in_idle_is_idempotent() -> None:
    state = OrchestratorState()

    once, cmds_once = reduce(state, cancel_requested())
    twice, cmds_twice = reduce(once, cancel_requested())

    assert once == state == twice
    assert decisions(cmds_once) == decisions(cmds_twice) == ["ignore"]
    assert not messages(cmds_once, S2C_STATE)


def test_cancel_in_idle_clears_error() -> None:
    state, _ = reduce(recording(level=1.0), stop_requested())
    assert state.last_error is not None

    state, cmds = reduce(state, cancel_requested())

    assert state.last_error is None
    assert messages(cmds, S2C_STATE) == [{"state": "IDLE", "error": None}]


def test_capture_after_error_clears_error() -> None:
    state, _ = reduce(recording(level=1.0), stop_requested())

    state, cmds = reduce(state, capture_requested(ts_ms=9_000))

    assert state.state is State.RECORDING
    assert state.last_error is None
    assert messages(cmds, S2C_STATE) == [{"state": "RECORDING", "error": None}]


def test_late_identification_after_cancel_is_dropped() -> None:
    state, _ = reduce(recording(), stop_requested())
    state, _ = reduce(state, finalized())
    state, cmds = reduce(state, cancel_requested())

    assert of_type(cmds, CancelIdentify) == [CancelIdentify(run_id=1)]

    state, cmds = reduce(state, identified(run_id=1))

    assert state.state is State.IDLE
    assert state.identification is None
    assert decisions(cmds) == ["ignore"]
