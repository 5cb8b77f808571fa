"""
Lyric transcript primitives.

Pure data containers only.
No parsing, no I/O, no timing logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LyricLine:
    """
    One timestamped lyric line.

    time_s:
        Non-negative offset into the song, in seconds.

    text:
        Display text. Empty string marks an instrumental gap.
    """
    time_s: float
    text: str

    def to_json(self) -> dict[str, Any]:
        return {"time": self.time_s, "text": self.text}

    @staticmethod
    def from_json(data: dict[str, Any]) -> LyricLine:
        return LyricLine(time_s=float(data["time"]), text=str(data.get("text", "")))


@dataclass(frozen=True)
class Transcript:
    """
    Ordered lyric lines for a song.

    Order is playback order as delivered by the source; times are expected
    to be non-decreasing but this is not enforced.

    available=False means no synced transcript exists for the song, which is
    a valid terminal outcome rather than an error.
    """
    lines: tuple[LyricLine, ...] = ()
    available: bool = True

    @staticmethod
    def unavailable() -> Transcript:
        return Transcript(lines=(), available=False)

    def __len__(self) -> int:
        return len(self.lines)

    def to_json(self) -> list[dict[str, Any]]:
        return [line.to_json() for line in self.lines]

    @staticmethod
    def from_json(data: list[dict[str, Any]]) -> Transcript:
        return Transcript(lines=tuple(LyricLine.from_json(item) for item in data))
