"""
Audio input sources.

A source owns the physical (or remote) input stream for one recording and
the CaptureBuffer it fills. The runtime drives it:

    open()           acquire the stream; raises DeviceError
    current_level()  [0, 100] reading over the most recent audio
    finalize()       stop the stream, return the captured AudioSample
    close()          stop the stream, discard audio (idempotent)

Sources never decide state transitions.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable

from audio.capture_buffer import CaptureBuffer
from audio.frames import AudioFrame
from audio.levels import level_from_pcm
from audio.sample import AudioSample
from constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
    LEVEL_FFT_SIZE,
)
from observability.logger import log_event
from protocol.messages import S2C_CLOSE_MIC, S2C_OPEN_MIC
from orchestrator.errors import FailureKind


# Browser getUserMedia error names -> failure kind
MIC_ERROR_KINDS: dict[str, FailureKind] = {
    "NotAllowedError": FailureKind.PERMISSION_DENIED,
    "SecurityError": FailureKind.PERMISSION_DENIED,
    "NotFoundError": FailureKind.NO_DEVICE,
    "OverconstrainedError": FailureKind.NO_DEVICE,
}


def mic_error_kind(name: str | None) -> FailureKind:
    return MIC_ERROR_KINDS.get(name or "", FailureKind.DEVICE_UNAVAILABLE)


class AudioSource(ABC):
    """Base class: buffer bookkeeping shared by every source."""

    def __init__(self) -> None:
        self._buffer = CaptureBuffer()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def buffer(self) -> CaptureBuffer:
        return self._buffer

    async def open(self) -> None:
        if self._open:
            return
        self._buffer.clear()
        await self._start()
        self._open = True

    def close(self) -> None:
        if self._open:
            self._open = False
            self._stop()
        self._buffer.clear()

    def finalize(self) -> AudioSample:
        pcm = self._buffer.pcm_bytes()
        snapshot = self._buffer.snapshot()
        self.close()
        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "CAPTURE_FINALIZED",
            "buffer": snapshot,
        })
        return AudioSample.from_pcm16(pcm)

    def current_level(self) -> float:
        return level_from_pcm(
            self._buffer.tail_pcm(LEVEL_FFT_SIZE * AUDIO_SAMPLE_WIDTH_BYTES)
        )

    def ingest(self, frame: AudioFrame) -> bool:
        """Store a frame; frames outside an open capture are dropped."""
        if not self._open:
            return False
        return self._buffer.append(frame)

    @abstractmethod
    async def _start(self) -> None:
        ...

    @abstractmethod
    def _stop(self) -> None:
        ...


class ClientStreamSource(AudioSource):
    """
    Remote microphone: the client owns the device and streams frames.

    Opening asks the client to start streaming; device errors come back
    from the client as MIC_ERROR messages, handled by the gateway.
    """

    def __init__(self, send_control: Callable[[dict[str, Any]], None]) -> None:
        super().__init__()
        self._send_control = send_control

    async def _start(self) -> None:
        self._send_control({
            "type": S2C_OPEN_MIC,
            "sample_rate_hz": AUDIO_SAMPLE_RATE_HZ,
            "channels": AUDIO_CHANNELS,
            "frame_bytes": AUDIO_BYTES_PER_FRAME_PCM,
        })

    def _stop(self) -> None:
        self._send_control({"type": S2C_CLOSE_MIC})
