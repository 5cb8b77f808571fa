"""
Authoritative capture state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    High-level deterministic control states for a single capture session.

    There is no separate error state: a failed session is IDLE with
    OrchestratorState.last_error set.
    """

    IDLE = "IDLE"
    RECORDING = "RECORDING"
    ANALYZING = "ANALYZING"
    PLAYING = "PLAYING"
