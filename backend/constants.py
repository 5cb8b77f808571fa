"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for every timing and threshold value in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 mono @ 16kHz, 20ms frames)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_BYTES_PER_FRAME_PCM: Final[int] = AUDIO_SAMPLES_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES

# =============================================================================
# Binary WebSocket Frame Format
# =============================================================================
# Client → Server (mic audio): 4B seq_num + PCM frame
C2S_SEQ_NUM_BYTES: Final[int] = 4
C2S_FRAME_BYTES_TOTAL: Final[int] = C2S_SEQ_NUM_BYTES + AUDIO_BYTES_PER_FRAME_PCM

SEQ_NUM_START: Final[int] = 1
SEQ_NUM_MAX: Final[int] = 2**32 - 1  # u32 wraparound

# =============================================================================
# Capture Lifecycle
# =============================================================================

# Hard upper bound on a single recording, whether or not STOP arrives.
CAPTURE_CEILING_MS: Final[int] = 6_000
CAPTURE_CEILING_S: Final[float] = CAPTURE_CEILING_MS / 1000.0

# =============================================================================
# Signal Quality Gate
# =============================================================================

QUALITY_SAMPLE_INTERVAL_MS: Final[int] = 200

# Readings are normalized to [0, 100].
QUALITY_LEVEL_MIN: Final[float] = 0.0
QUALITY_LEVEL_MAX: Final[float] = 100.0

# Live reading below this surfaces a non-blocking warning.
QUALITY_ADVISORY_THRESHOLD: Final[float] = 10.0

# Running maximum below this at stop time rejects the sample.
QUALITY_REJECT_THRESHOLD: Final[float] = 15.0

# Level meter analysis window (mirrors a 256-point browser analyser)
LEVEL_FFT_SIZE: Final[int] = 256
LEVEL_MIN_DB: Final[float] = -100.0
LEVEL_MAX_DB: Final[float] = -30.0

# =============================================================================
# Identification / Lookups
# =============================================================================

IDENTIFY_TIMEOUT_MS: Final[int] = 15_000
ENRICH_TIMEOUT_MS: Final[int] = 15_000
LYRICS_TIMEOUT_MS: Final[int] = 15_000

# Per-request HTTP bound used by the collaborator clients
HTTP_TIMEOUT_S: Final[float] = 15.0

# Genre names that flip the mood to "aggressive"
AGGRESSIVE_GENRE_PATTERN: Final[str] = r"metal|rock|punk|grunge|industrial|rap|hip-hop"

ENRICH_TEASER_CHARS: Final[int] = 180

# =============================================================================
# Playback Clock
# =============================================================================

# Capture + upload + identification round-trip
LATENCY_COMPENSATION_MS: Final[int] = 1_500

# =============================================================================
# Line Synchronizer
# =============================================================================

SYNC_TICK_MS: Final[int] = 100

# Layout model used for scroll offsets (pixels)
LAYOUT_LINE_HEIGHT: Final[float] = 40.0
LAYOUT_LINE_GAP: Final[float] = 24.0
LAYOUT_CHARS_PER_ROW: Final[int] = 32

# =============================================================================
# Transcript Cache
# =============================================================================

CACHE_KEY_PREFIX: Final[str] = "lyric_cache_v1_"

# =============================================================================
# Sample Encoding
# =============================================================================

SAMPLE_MIME_WAV: Final[str] = "audio/wav"

# MIME fragment -> upload file extension (first match wins)
SAMPLE_EXTENSIONS: Final[Tuple[Tuple[str, str], ...]] = (
    ("mp4", "mp4"),
    ("ogg", "ogg"),
    ("wav", "wav"),
)
SAMPLE_EXTENSION_DEFAULT: Final[str] = "webm"

