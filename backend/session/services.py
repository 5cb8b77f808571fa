"""
Process-wide service clients.

Built once at startup and shared by every session. Each session wraps
them in its own run-scoped adapters.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from adapters.enrich.genius import GeniusClient
from adapters.identify.acrcloud import ACRCloudClient
from adapters.lyrics.lrclib import LrcLibClient, TranscriptResolver
from config import AppConfig
from observability.logger import log_event
from transcript.cache import TranscriptCache
from transcript.store import JsonFileStore, KeyValueStore, MemoryStore


@dataclass(frozen=True)
class SessionServices:
    identify_client: ACRCloudClient
    genius_client: GeniusClient
    transcript_resolver: TranscriptResolver


def build_cache_store(config: AppConfig) -> KeyValueStore:
    if config.lyrics_cache_path is None:
        return MemoryStore()
    return JsonFileStore(config.lyrics_cache_path)


def build_services(
    config: AppConfig,
    *,
    http: requests.Session | None = None,
    store: KeyValueStore | None = None,
) -> SessionServices:
    """Build the shared clients from configuration."""
    http = http or requests.Session()
    store = store if store is not None else build_cache_store(config)

    if not config.has_acr_credentials:
        log_event({
            "event_type": "ACR_CREDENTIALS_MISSING",
            "message": "identification will fail until ACR_* is set",
        })
    if not config.genius_access_token:
        log_event({
            "event_type": "GENIUS_TOKEN_MISSING",
            "message": "enrichment disabled",
        })

    return SessionServices(
        identify_client=ACRCloudClient(
            host=config.acr_host,
            access_key=config.acr_access_key,
            secret=config.acr_secret,
            session=http,
        ),
        genius_client=GeniusClient(
            access_token=config.genius_access_token,
            session=http,
        ),
        transcript_resolver=TranscriptResolver(
            client=LrcLibClient(config.lrclib_base_url, session=http),
            cache=TranscriptCache(store),
        ),
    )
