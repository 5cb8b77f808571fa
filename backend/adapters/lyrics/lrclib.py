"""
LRCLIB transcript lookup with cache.

Resolution order for (artist, title):
1. TranscriptCache hit → done, no network
2. GET /api/get (exact metadata match)
3. On any failure of 2: GET /api/search, first candidate with syncedLyrics
4. Nothing found → Transcript.unavailable() (not cached)

Only a parse with at least one line is cached. A failure of the search
step raises TranscriptError.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import requests

from adapters.base import EmitEvent, RunTaskAdapter
from adapters.identify.base import IdentificationResult
from adapters.lyrics.base import (
    SOURCE_CACHE,
    SOURCE_GET,
    SOURCE_NONE,
    SOURCE_SEARCH,
    TranscriptLookupAdapter,
)
from constants import HTTP_TIMEOUT_S
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.service import Service
from orchestrator.errors import TranscriptError
from orchestrator.events import EventType, TranscriptFailed, TranscriptResolved
from transcript.cache import TranscriptCache
from transcript.models import Transcript
from transcript.parser import parse_lrc

LRCLIB_BASE_URL = "https://lrclib.net"
USER_AGENT = "lyric-sync/0.1"


class LrcLibClient:
    def __init__(
        self,
        base_url: str = LRCLIB_BASE_URL,
        *,
        session: requests.Session | None = None,
        user_agent: str = USER_AGENT,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self._headers = {"User-Agent": user_agent}
        self._timeout_s = timeout_s

    def get(self, artist: str, title: str) -> Optional[dict[str, Any]]:
        """
        Exact lookup. Returns None on 404.

        Raises:
            requests.RequestException, ValueError
        """
        r = self.session.get(
            f"{self.base_url}/api/get",
            params={"artist_name": artist, "track_name": title},
            headers=self._headers,
            timeout=self._timeout_s,
        )
        if r.status_code == 404:
            return None
        r.raise_for_status()
        data = r.json()
        return data if isinstance(data, dict) else None

    def search(self, query: str) -> list[dict[str, Any]]:
        """
        Fuzzy search.

        Raises:
            requests.RequestException, ValueError
        """
        r = self.session.get(
            f"{self.base_url}/api/search",
            params={"q": query},
            headers=self._headers,
            timeout=self._timeout_s,
        )
        r.raise_for_status()
        data = r.json()
        return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


def _synced_transcript(item: Optional[dict[str, Any]]) -> Optional[Transcript]:
    """Parsed transcript of a record's syncedLyrics, or None if it has none."""
    if not item:
        return None
    synced = item.get("syncedLyrics")
    if not isinstance(synced, str) or not synced.strip():
        return None
    transcript = parse_lrc(synced)
    if len(transcript) == 0:
        return None
    return transcript


class TranscriptResolver:
    """Blocking resolution pipeline (cache → exact → search)."""

    def __init__(self, *, client: LrcLibClient, cache: TranscriptCache) -> None:
        self._client = client
        self._cache = cache

    def resolve(self, artist: str, title: str) -> tuple[Transcript, str]:
        """
        Returns:
            (transcript, source) where source is cache | get | search | none

        Raises:
            TranscriptError: the search step failed
        """
        cached = self._cache.lookup(artist, title)
        if cached is not None:
            return cached, SOURCE_CACHE

        try:
            transcript = _synced_transcript(self._client.get(artist, title))
        except (requests.RequestException, ValueError) as e:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "LYRICS_GET_FAILED",
                "artist": artist,
                "title": title,
                "error": str(e),
            })
            transcript = None

        if transcript is not None:
            self._remember(artist, title, transcript)
            return transcript, SOURCE_GET

        try:
            candidates = self._client.search(f"{title} {artist}".strip())
        except (requests.RequestException, ValueError) as e:
            raise TranscriptError(f"search failed: {e}") from e

        for item in candidates:
            transcript = _synced_transcript(item)
            if transcript is not None:
                self._remember(artist, title, transcript)
                return transcript, SOURCE_SEARCH

        return Transcript.unavailable(), SOURCE_NONE

    def _remember(self, artist: str, title: str, transcript: Transcript) -> None:
        """A failed cache write is logged; the resolved transcript still stands."""
        try:
            self._cache.store(artist, title, transcript)
        except OSError as e:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "LYRICS_CACHE_WRITE_FAILED",
                "artist": artist,
                "title": title,
                "error": str(e),
            })


class LrcLibTranscriptAdapter(RunTaskAdapter, TranscriptLookupAdapter):
    def __init__(
        self,
        *,
        emit_event: EmitEvent,
        resolver: TranscriptResolver,
        session_id: str,
    ) -> None:
        super().__init__(emit_event=emit_event, session_id=session_id)
        self._resolver = resolver

    async def start_lookup(self, *, run_id: int, result: IdentificationResult) -> None:
        self._spawn(run_id, self._run(run_id, result))

    async def _run(self, run_id: int, result: IdentificationResult) -> None:
        try:
            with timed(
                "lyrics_latency",
                session_id=self._session_id,
                details={"run_id": run_id},
            ) as info:
                transcript, source = await asyncio.to_thread(
                    self._resolver.resolve, result.artist_name, result.title
                )
                info["source"] = source
        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = str(exc) if isinstance(exc, TranscriptError) else f"{type(exc).__name__}: {exc}"
            log_event({
                "ts_ms": self._now_ms(),
                "event_type": "LYRICS_CALL_FAILED",
                "session_id": self._session_id,
                "run_id": run_id,
                "error": reason,
            })
            await self._emit_event(
                TranscriptFailed(
                    event_type=EventType.TRANSCRIPT_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.LYRICS,
                    run_id=run_id,
                    reason=reason,
                )
            )
            return

        await self._emit_event(
            TranscriptResolved(
                event_type=EventType.TRANSCRIPT_RESOLVED,
                ts_ms=self._now_ms(),
                service=Service.LYRICS,
                run_id=run_id,
                transcript=transcript,
                source=source,
            )
        )
