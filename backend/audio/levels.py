"""
Amplitude readings for the signal quality gate.

A reading mirrors what a browser AnalyserNode reports for a 256-point FFT:
- Blackman-windowed magnitude spectrum of the most recent 256 samples
- Each bin mapped from [LEVEL_MIN_DB, LEVEL_MAX_DB] onto a byte [0, 255]
- Level = mean byte value scaled to [0, 100]

Runtime-safe, source-agnostic utilities. No state.
"""
import numpy as np

from constants import (
    LEVEL_FFT_SIZE,
    LEVEL_MAX_DB,
    LEVEL_MIN_DB,
    QUALITY_LEVEL_MAX,
    QUALITY_LEVEL_MIN,
)

_WINDOW = np.blackman(LEVEL_FFT_SIZE).astype(np.float32)


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; drop the dangling byte.
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / 32768.0


def frequency_bytes(samples: np.ndarray) -> np.ndarray:
    """
    Byte-scaled magnitude spectrum (LEVEL_FFT_SIZE // 2 bins).

    Shorter input is left-padded with silence.
    """
    window = samples[-LEVEL_FFT_SIZE:]
    if window.shape[0] < LEVEL_FFT_SIZE:
        window = np.concatenate(
            [np.zeros(LEVEL_FFT_SIZE - window.shape[0], dtype=np.float32), window]
        )

    spectrum = np.abs(np.fft.rfft(window * _WINDOW))[: LEVEL_FFT_SIZE // 2]
    magnitude = spectrum / LEVEL_FFT_SIZE

    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(magnitude)

    scaled = 255.0 * (db - LEVEL_MIN_DB) / (LEVEL_MAX_DB - LEVEL_MIN_DB)
    return np.clip(np.nan_to_num(scaled, neginf=0.0), 0.0, 255.0)


def level_from_pcm(pcm_bytes: bytes) -> float:
    """Normalized [0, 100] amplitude reading for the tail of a PCM buffer."""
    if not pcm_bytes:
        return QUALITY_LEVEL_MIN

    samples = pcm16le_to_float32(pcm_bytes)
    if samples.size == 0:
        return QUALITY_LEVEL_MIN

    average = float(np.mean(frequency_bytes(samples)))
    level = average / 255.0 * QUALITY_LEVEL_MAX
    return max(QUALITY_LEVEL_MIN, min(QUALITY_LEVEL_MAX, level))
