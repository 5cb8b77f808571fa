# pylint: disable=missing-module-docstring,missing-function-docstring
from audio.quality import SignalQualityGate


def test_fresh_gate_rejects() -> None:
    assert SignalQualityGate().accepts() is False


def test_running_max_decides_not_last_reading() -> None:
    gate = SignalQualityGate()
    for level in (3.0, 22.0, 4.0, 2.0):
        gate, _ = gate.observe(level)

    assert gate.running_max == 22.0
    assert gate.last_level == 2.0
    assert gate.samples_seen == 4
    assert gate.accepts() is True


def test_reject_threshold_is_inclusive() -> None:
    gate, _ = SignalQualityGate().observe(15.0)
    assert gate.accepts() is True

    gate, _ = SignalQualityGate().observe(14.9)
    assert gate.accepts() is False


def test_advisory_is_per_reading() -> None:
    gate, advisory = SignalQualityGate().observe(30.0)
    assert advisory is False

    _, advisory = gate.observe(9.9)
    assert advisory is True


def test_advisory_and_reject_are_independent() -> None:
    # 12 is above the advisory threshold but below the reject threshold
    gate, advisory = SignalQualityGate().observe(12.0)

    assert advisory is False
    assert gate.accepts() is False


def test_readings_are_clamped() -> None:
    gate, _ = SignalQualityGate().observe(250.0)
    assert gate.running_max == 100.0

    gate, advisory = SignalQualityGate().observe(-5.0)
    assert gate.last_level == 0.0
    assert advisory is True


def test_observe_does_not_mutate() -> None:
    gate = SignalQualityGate()
    gate.observe(50.0)

    assert gate.snapshot() == {"running_max": 0.0, "samples_seen": 0, "last_level": 0.0}
