# backend/protocol/binary.py
"""
Binary framing helpers for capture audio transport.

Client → Server (mic), one message per frame:
    4 bytes   seq_num (u32, little-endian)
    640 bytes PCM16 mono 16 kHz audio (20 ms)

Usage example:

    frame = decode_c2s_frame(payload, ts_ms=now_ms)

    result = check_sequence_gap(last_seq=prev_seq, current_seq=frame.sequence_num)
    if result.gap:
        log_event({
            "event_type": "SEQ_GAP_DETECTED",
            "expected": result.expected,
            "actual": result.actual,
            "gap_size": result.gap_size,
        })
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from audio.frames import AudioFrame
from constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    C2S_FRAME_BYTES_TOTAL,
    C2S_SEQ_NUM_BYTES,
    SEQ_NUM_MAX,
    SEQ_NUM_START,
)


# -------------------------
# Exceptions
# -------------------------

class BinaryProtocolError(Exception):
    """Base class for binary protocol errors."""


class InvalidFrameLength(BinaryProtocolError):
    """
    Binary audio frame does not match the expected byte length.

    The frame is unsafe to process and must be dropped.
    """


class InvalidSequenceNumber(BinaryProtocolError):
    """Sequence number outside [SEQ_NUM_START, SEQ_NUM_MAX]."""


# -------------------------
# Low-level helpers
# -------------------------

def _u32_le(value: int) -> bytes:
    return struct.pack("<I", value)


def _read_u32_le(buf: bytes, offset: int = 0) -> int:
    return struct.unpack_from("<I", buf, offset)[0]


def is_seq_next(prev: int, current: int) -> bool:
    """
    True if `current` follows `prev`, accounting for u32 wraparound.
    """
    if prev == SEQ_NUM_MAX:
        return current == SEQ_NUM_START
    return current == prev + 1


# -------------------------
# Client → Server (mic)
# -------------------------

def decode_c2s_frame(payload: bytes, *, ts_ms: int) -> AudioFrame:
    if len(payload) != C2S_FRAME_BYTES_TOTAL:
        raise InvalidFrameLength(
            f"C2S frame length {len(payload)} != {C2S_FRAME_BYTES_TOTAL}"
        )

    seq = _read_u32_le(payload, 0)
    if seq < SEQ_NUM_START:
        raise InvalidSequenceNumber(f"Invalid seq_num: {seq}")

    return AudioFrame(
        sequence_num=seq,
        pcm_bytes=payload[C2S_SEQ_NUM_BYTES:],
        ts_ms=ts_ms,
    )


def encode_c2s_frame(*, sequence_num: int, pcm_bytes: bytes) -> bytes:
    """Client-side encoder (console tools, tests)."""
    if sequence_num < SEQ_NUM_START or sequence_num > SEQ_NUM_MAX:
        raise InvalidSequenceNumber(f"Invalid seq_num: {sequence_num}")

    if len(pcm_bytes) != AUDIO_BYTES_PER_FRAME_PCM:
        raise InvalidFrameLength(
            f"PCM length {len(pcm_bytes)} != {AUDIO_BYTES_PER_FRAME_PCM}"
        )

    return _u32_le(sequence_num) + pcm_bytes


# -------------------------
# Sequence gap detection
# -------------------------

@dataclass(frozen=True)
class SeqCheckResult:
    gap: bool
    expected: int
    actual: int

    @property
    def gap_size(self) -> int:
        """
        Number of frames skipped (0 if no gap).

        Handles wraparound.
        """
        if not self.gap:
            return 0

        if self.actual > self.expected:
            return self.actual - self.expected

        return (SEQ_NUM_MAX - self.expected + 1) + (self.actual - SEQ_NUM_START)


def check_sequence_gap(
    *,
    last_seq: Optional[int],
    current_seq: int,
) -> SeqCheckResult:
    """
    Check whether `current_seq` follows `last_seq`.

    Pure function; never raises.
    """
    if last_seq is None or is_seq_next(last_seq, current_seq):
        return SeqCheckResult(gap=False, expected=current_seq, actual=current_seq)

    expected = SEQ_NUM_START if last_seq == SEQ_NUM_MAX else last_seq + 1
    return SeqCheckResult(gap=True, expected=expected, actual=current_seq)
