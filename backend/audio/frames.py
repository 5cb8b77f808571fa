"""
Capture frame primitive.

One frame is one 20 ms slice of PCM16 mono audio as it arrived, either
from the client over /ws or from the local device callback.
"""

from __future__ import annotations
from dataclasses import dataclass

from constants import AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLE_WIDTH_BYTES


@dataclass(frozen=True)
class AudioFrame:
    """
    sequence_num:
        Sender-assigned counter, starting at 1. Gap detection and logs only.

    pcm_bytes:
        PCM16 little-endian mono at 16 kHz.

    ts_ms:
        Wall-clock arrival time. Never used for control decisions.
    """
    sequence_num: int
    pcm_bytes: bytes
    ts_ms: int

    @property
    def num_samples(self) -> int:
        return len(self.pcm_bytes) // AUDIO_SAMPLE_WIDTH_BYTES

    @property
    def duration_s(self) -> float:
        return self.num_samples / AUDIO_SAMPLE_RATE_HZ
