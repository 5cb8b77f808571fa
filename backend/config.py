"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No timing constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CACHE_PATH = Path.home() / ".cache" / "lyric-sync" / "transcripts.json"


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the gateway, which builds adapters from it.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Identification (ACRCloud)
    # ------------------------------------------------------------------

    acr_host: str | None
    acr_access_key: str | None
    acr_secret: str | None

    # ------------------------------------------------------------------
    # Enrichment (Genius)
    # ------------------------------------------------------------------

    genius_access_token: str | None

    # ------------------------------------------------------------------
    # Lyrics (LRCLIB) + cache
    # ------------------------------------------------------------------

    lrclib_base_url: str
    lyrics_cache_path: Path | None

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    # "client" (browser streams frames) or "microphone" (local device)
    audio_source: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def has_acr_credentials(self) -> bool:
        return bool(self.acr_host and self.acr_access_key and self.acr_secret)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Credentials are optional here; adapters report a credentials
        failure at call time when they are missing.

        LYRICS_CACHE_PATH="" disables the persistent cache (memory only).
        """
        cache_path_raw = os.environ.get("LYRICS_CACHE_PATH")
        if cache_path_raw is None:
            cache_path: Path | None = DEFAULT_CACHE_PATH
        elif cache_path_raw.strip() == "":
            cache_path = None
        else:
            cache_path = Path(cache_path_raw).expanduser()

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            acr_host=os.environ.get("ACR_HOST"),
            acr_access_key=os.environ.get("ACR_ACCESS_KEY"),
            acr_secret=os.environ.get("ACR_SECRET"),

            genius_access_token=os.environ.get("GENIUS_ACCESS_TOKEN"),

            lrclib_base_url=os.environ.get("LRCLIB_BASE_URL", "https://lrclib.net"),
            lyrics_cache_path=cache_path,

            audio_source=os.environ.get("AUDIO_SOURCE", "client"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
