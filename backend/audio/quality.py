"""
Signal quality gate.

Two independent thresholds over [0, 100] readings:
- advisory: a single live reading below QUALITY_ADVISORY_THRESHOLD is
  surfaced as a non-blocking warning while recording
- reject: evaluated once at stop time against the running MAXIMUM, so a
  brief loud moment anywhere in the sample is enough to pass

The gate is an immutable value so the reducer can carry it in state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from constants import (
    QUALITY_ADVISORY_THRESHOLD,
    QUALITY_LEVEL_MAX,
    QUALITY_LEVEL_MIN,
    QUALITY_REJECT_THRESHOLD,
)


@dataclass(frozen=True)
class SignalQualityGate:
    running_max: float = QUALITY_LEVEL_MIN
    samples_seen: int = 0
    last_level: float = QUALITY_LEVEL_MIN

    def observe(self, level: float) -> tuple[SignalQualityGate, bool]:
        """
        Fold one reading into the gate.

        Returns:
            (next_gate, advisory) where advisory is True when this reading
            alone is below the advisory threshold.
        """
        clamped = max(QUALITY_LEVEL_MIN, min(QUALITY_LEVEL_MAX, float(level)))
        next_gate = replace(
            self,
            running_max=max(self.running_max, clamped),
            samples_seen=self.samples_seen + 1,
            last_level=clamped,
        )
        return next_gate, clamped < QUALITY_ADVISORY_THRESHOLD

    def accepts(self) -> bool:
        return self.running_max >= QUALITY_REJECT_THRESHOLD

    def snapshot(self) -> dict[str, float | int]:
        return {
            "running_max": self.running_max,
            "samples_seen": self.samples_seen,
            "last_level": self.last_level,
        }
