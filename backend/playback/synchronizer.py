"""
Line synchronizer: maps elapsed song time to the active lyric line.

Invariant:
    active_line_index is the greatest i with lines[i].time_s <= elapsed,
    or -1 when no line has started yet.

The scan is linear over the whole transcript and never stops early, so
the invariant also holds for an unordered source.

Scroll offsets follow the rendered tape: every line occupies
line_height * rows plus a fixed gap, and the active line is centered, so

    offset(i) = sum_{j < i} (height(j) + gap) + height(i) / 2
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from constants import LAYOUT_CHARS_PER_ROW, LAYOUT_LINE_GAP, LAYOUT_LINE_HEIGHT
from transcript.models import LyricLine


NO_ACTIVE_LINE = -1


@dataclass(frozen=True)
class SyncState:
    """Recomputed every tick; never persisted."""
    elapsed_song_time_s: float = 0.0
    active_line_index: int = NO_ACTIVE_LINE
    scroll_offset: float = 0.0


@dataclass(frozen=True)
class LineLayout:
    """Minimal text layout model for scroll positioning."""
    line_height: float = LAYOUT_LINE_HEIGHT
    line_gap: float = LAYOUT_LINE_GAP
    chars_per_row: int = LAYOUT_CHARS_PER_ROW

    def height(self, line: LyricLine) -> float:
        # Empty lines render a gap marker and still take one row.
        rows = max(1, math.ceil(len(line.text) / self.chars_per_row))
        return self.line_height * rows

    def scroll_offset(self, lines: Sequence[LyricLine], index: int) -> float:
        if index < 0 or index >= len(lines):
            return 0.0
        preceding = sum(self.height(line) + self.line_gap for line in lines[:index])
        return preceding + self.height(lines[index]) / 2


def active_line_index(lines: Sequence[LyricLine], elapsed_s: float) -> int:
    active = NO_ACTIVE_LINE
    for i, line in enumerate(lines):
        if line.time_s <= elapsed_s:
            active = i
    return active


class LineSynchronizer:
    """
    Stateless stepper; the caller owns the previous SyncState.

    step() reports changed=True exactly when the active index moved, so
    repeated ticks within one line produce no downstream work.
    """

    def __init__(self, layout: LineLayout | None = None) -> None:
        self._layout = layout or LineLayout()

    def step(
        self,
        previous: SyncState,
        lines: Sequence[LyricLine],
        elapsed_s: float,
    ) -> tuple[SyncState, bool]:
        index = active_line_index(lines, elapsed_s)

        if index == previous.active_line_index:
            return (
                SyncState(
                    elapsed_song_time_s=elapsed_s,
                    active_line_index=index,
                    scroll_offset=previous.scroll_offset,
                ),
                False,
            )

        return (
            SyncState(
                elapsed_song_time_s=elapsed_s,
                active_line_index=index,
                scroll_offset=self._layout.scroll_offset(lines, index),
            ),
            True,
        )
