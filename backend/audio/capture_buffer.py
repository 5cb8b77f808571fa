"""
Bounded capture buffer with canonical depth measurement.

Requirements:
- Depth measured in seconds (not frame count)
- Hard upper bound at the capture ceiling
- Frames beyond the ceiling are dropped (NEWEST), never the start of the
  recording
- Deterministic, synchronous behavior
"""

from __future__ import annotations
from collections import deque
from typing import Deque, Optional

from audio.frames import AudioFrame
from constants import CAPTURE_CEILING_S


class CaptureBuffer:
    """
    Append-only frame buffer for one recording.

    Drop rules:
    - enqueue beyond max_depth_s drops the NEW frame and counts it
    """

    def __init__(self, *, max_depth_s: float = CAPTURE_CEILING_S) -> None:
        if max_depth_s <= 0:
            raise ValueError("max_depth_s must be > 0")

        self._max_depth_s: float = max_depth_s
        self._frames: Deque[AudioFrame] = deque()
        self._depth_s: float = 0.0
        self.dropped: int = 0

    # -------------------------
    # Core operations
    # -------------------------

    def append(self, frame: AudioFrame) -> bool:
        """
        Append a frame.

        Returns:
            True if stored
            False if dropped (ceiling reached)
        """
        if self._depth_s + frame.duration_s > self._max_depth_s + 1e-9:
            self.dropped += 1
            return False

        self._frames.append(frame)
        self._depth_s += frame.duration_s
        return True

    def clear(self) -> None:
        """
        Drop all frames without counting them as drops.

        Used on release and cancellation.
        """
        self._frames.clear()
        self._depth_s = 0.0
        self.dropped = 0

    def pcm_bytes(self) -> bytes:
        return b"".join(frame.pcm_bytes for frame in self._frames)

    def tail_pcm(self, num_bytes: int) -> bytes:
        """Most recent num_bytes of PCM, for level readings."""
        chunks: list[bytes] = []
        remaining = num_bytes
        for frame in reversed(self._frames):
            if remaining <= 0:
                break
            chunks.append(frame.pcm_bytes[-remaining:])
            remaining -= len(frame.pcm_bytes)
        return b"".join(reversed(chunks))

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        return len(self._frames)

    def is_empty(self) -> bool:
        return not self._frames

    def depth_seconds(self) -> float:
        """Sum of stored frame durations."""
        return self._depth_s

    def peek_latest(self) -> Optional[AudioFrame]:
        return self._frames[-1] if self._frames else None

    def snapshot(self) -> dict[str, float | int]:
        """
        Lightweight snapshot for logging / metrics.
        """
        return {
            "frames": len(self._frames),
            "depth_s": self.depth_seconds(),
            "dropped": self.dropped,
        }
