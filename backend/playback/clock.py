"""
Playback clock: wall-clock origin for "elapsed song time".

The song is playing in the room, not through this system, so the position
is an estimate made once per identification:

    origin_ms = now_ms - (in_song_offset_ms + latency_compensation_ms)
    elapsed_s(t_ms) = (t_ms - origin_ms) / 1000

There is deliberately no drift correction: the origin is never revised
after it is established.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import LATENCY_COMPENSATION_MS


@dataclass(frozen=True)
class PlaybackClock:
    """Immutable clock anchored at a wall-clock origin in milliseconds."""
    origin_ms: int

    @staticmethod
    def establish(
        in_song_offset_ms: int,
        now_ms: int,
        latency_compensation_ms: int = LATENCY_COMPENSATION_MS,
    ) -> PlaybackClock:
        return PlaybackClock(
            origin_ms=now_ms - (in_song_offset_ms + latency_compensation_ms)
        )

    def elapsed_ms(self, now_ms: int) -> int:
        return now_ms - self.origin_ms

    def elapsed_seconds(self, now_ms: int) -> float:
        """
        Estimated song position at now_ms.

        May be negative if now_ms precedes the origin (clock skew).
        """
        return self.elapsed_ms(now_ms) / 1000.0
