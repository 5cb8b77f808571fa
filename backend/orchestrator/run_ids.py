"""
Run ID container for versioned activities.

Rules:
- Run IDs are monotonic integers.
- They are owned and incremented ONLY by the orchestrator reducer.
- A result is current only if its run_id equals the active one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from orchestrator.enums.service import Service


@dataclass(frozen=True)
class RunIds:
    """
    Immutable container for active run IDs per service.

    Semantics:
    - A value of 0 means "no run has been started yet".
    - Once a run ID is incremented, it is never reused.
    """

    capture: int = 0
    identify: int = 0
    enrich: int = 0
    lyrics: int = 0

    def get(self, service: Service) -> int:
        return getattr(self, service.value.lower())

    def bump(self, service: Service) -> RunIds:
        field_name = service.value.lower()
        return replace(self, **{field_name: getattr(self, field_name) + 1})

    def to_json(self) -> dict[str, int]:
        return {
            "capture": self.capture,
            "identify": self.identify,
            "enrich": self.enrich,
            "lyrics": self.lyrics,
        }
