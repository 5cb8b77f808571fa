"""
AudioSample: the immutable payload handed to the identification service.
"""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass

from constants import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
    SAMPLE_EXTENSION_DEFAULT,
    SAMPLE_EXTENSIONS,
    SAMPLE_MIME_WAV,
)


@dataclass(frozen=True)
class AudioSample:
    """
    payload:
        Container bytes (WAV for locally encoded captures).

    mime:
        Declared encoding, e.g. "audio/wav" or "audio/webm;codecs=opus".
    """
    payload: bytes
    mime: str

    @property
    def is_empty(self) -> bool:
        return len(self.payload) == 0

    @property
    def file_extension(self) -> str:
        """Upload file extension derived from the declared MIME type."""
        for fragment, extension in SAMPLE_EXTENSIONS:
            if fragment in self.mime:
                return extension
        return SAMPLE_EXTENSION_DEFAULT

    def __repr__(self) -> str:
        return f"AudioSample(mime={self.mime!r}, bytes={len(self.payload)})"

    @staticmethod
    def from_pcm16(
        pcm_bytes: bytes,
        *,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
    ) -> AudioSample:
        """
        Wrap raw PCM16 mono audio in a WAV container.

        Empty PCM yields an empty sample (no header), which callers treat as
        "nothing captured".
        """
        if not pcm_bytes:
            return AudioSample(payload=b"", mime=SAMPLE_MIME_WAV)

        buf = io.BytesIO()
        with wave.open(buf, "wb") as wav:
            wav.setnchannels(AUDIO_CHANNELS)
            wav.setsampwidth(AUDIO_SAMPLE_WIDTH_BYTES)
            wav.setframerate(sample_rate_hz)
            wav.writeframes(pcm_bytes)
        return AudioSample(payload=buf.getvalue(), mime=SAMPLE_MIME_WAV)
