"""
Local input device source (sounddevice / PortAudio).

Kept apart from audio.sources so that importing the client-streaming path
never loads the PortAudio shared library.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

import sounddevice as sd

from audio.frames import AudioFrame
from audio.sources import AudioSource
from constants import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLES_PER_FRAME,
    SEQ_NUM_START,
)
from observability.logger import log_event
from orchestrator.errors import DeviceError, FailureKind


class MicrophoneSource(AudioSource):
    """
    The PortAudio callback runs on its own thread; blocks are handed to the
    event loop with call_soon_threadsafe so the buffer is only touched from
    the loop.
    """

    def __init__(self, device: Optional[int | str] = None) -> None:
        super().__init__()
        self._device = device
        self._stream: sd.RawInputStream | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._seq = SEQ_NUM_START

    async def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._seq = SEQ_NUM_START

        try:
            sd.check_input_settings(
                device=self._device,
                channels=AUDIO_CHANNELS,
                dtype="int16",
                samplerate=AUDIO_SAMPLE_RATE_HZ,
            )
        except ValueError as e:
            raise DeviceError(FailureKind.NO_DEVICE, str(e)) from e
        except sd.PortAudioError as e:
            raise DeviceError(FailureKind.DEVICE_UNAVAILABLE, str(e)) from e

        try:
            stream = sd.RawInputStream(
                samplerate=AUDIO_SAMPLE_RATE_HZ,
                blocksize=AUDIO_SAMPLES_PER_FRAME,
                channels=AUDIO_CHANNELS,
                dtype="int16",
                device=self._device,
                callback=self._callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise DeviceError(FailureKind.DEVICE_UNAVAILABLE, str(e)) from e

        self._stream = stream

    def _stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "MIC_CLOSE_FAILED",
                "error": str(e),
            })

    def _callback(self, indata, frames, time_info, status) -> None:
        # PortAudio thread
        if status:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "MIC_STATUS",
                "status": str(status),
            })
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._on_block, bytes(indata))

    def _on_block(self, pcm_bytes: bytes) -> None:
        frame = AudioFrame(
            sequence_num=self._seq,
            pcm_bytes=pcm_bytes,
            ts_ms=int(time.time() * 1000),
        )
        self._seq += 1
        self.ingest(frame)
