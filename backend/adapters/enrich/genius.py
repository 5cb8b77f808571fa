"""Genius song metadata (search, then song details)."""

from __future__ import annotations

import asyncio
from typing import Any

import requests

from adapters.base import EmitEvent, RunTaskAdapter
from adapters.enrich.base import EnrichAdapter, Enrichment, enrichment_query
from adapters.identify.base import IdentificationResult
from constants import HTTP_TIMEOUT_S
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.service import Service
from orchestrator.errors import EnrichmentError
from orchestrator.events import EnrichmentFailed, EnrichmentResolved, EventType

GENIUS_API_URL = "https://api.genius.com"


class GeniusClient:
    def __init__(
        self,
        *,
        access_token: str | None,
        base_url: str = GENIUS_API_URL,
        session: requests.Session | None = None,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self._access_token:
            raise EnrichmentError("enrichment access token not configured")

        try:
            r = self._session.get(
                f"{self._base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {self._access_token}"},
                timeout=self._timeout_s,
            )
            r.raise_for_status()
            body = r.json()
        except requests.RequestException as e:
            raise EnrichmentError(f"{path}: {e}") from e
        except ValueError as e:
            raise EnrichmentError(f"{path}: response is not JSON") from e

        response = body.get("response") if isinstance(body, dict) else None
        if not isinstance(response, dict):
            raise EnrichmentError(f"{path}: missing response block")
        return response

    def search_song_id(self, query: str) -> int | None:
        """First hit's song id, or None when there are no hits."""
        hits = self._get("/search", {"q": query}).get("hits") or []
        if not hits:
            return None
        try:
            return int(hits[0]["result"]["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise EnrichmentError(f"unexpected search hit shape: {e}") from e

    def song(self, song_id: int) -> Enrichment:
        song = self._get(f"/songs/{song_id}", {"text_format": "plain"}).get("song")
        if not isinstance(song, dict):
            raise EnrichmentError(f"song {song_id}: missing song block")

        description = song.get("description") or {}
        try:
            return Enrichment(
                song_id=int(song.get("id") or song_id),
                title=str(song.get("title") or ""),
                artist=str((song.get("primary_artist") or {}).get("name") or ""),
                artwork_url=str(song.get("song_art_image_url") or ""),
                description=str(description.get("plain") or ""),
                url=str(song.get("url") or ""),
                release_date=str(song.get("release_date_for_display") or ""),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise EnrichmentError(f"song {song_id}: unexpected shape: {e}") from e

    def lookup(self, query: str) -> Enrichment | None:
        song_id = self.search_song_id(query)
        if song_id is None:
            return None
        return self.song(song_id)


class GeniusEnrichAdapter(RunTaskAdapter, EnrichAdapter):
    def __init__(
        self,
        *,
        emit_event: EmitEvent,
        client: GeniusClient,
        session_id: str,
    ) -> None:
        super().__init__(emit_event=emit_event, session_id=session_id)
        self._client = client

    async def start_enrichment(self, *, run_id: int, result: IdentificationResult) -> None:
        self._spawn(run_id, self._run(run_id, result))

    async def _run(self, run_id: int, result: IdentificationResult) -> None:
        query = enrichment_query(result)
        try:
            with timed(
                "enrich_latency",
                session_id=self._session_id,
                details={"run_id": run_id, "query": query},
            ):
                enrichment = await asyncio.to_thread(self._client.lookup, query)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = str(exc) if isinstance(exc, EnrichmentError) else f"{type(exc).__name__}: {exc}"
            log_event({
                "ts_ms": self._now_ms(),
                "event_type": "ENRICH_CALL_FAILED",
                "session_id": self._session_id,
                "run_id": run_id,
                "error": reason,
            })
            await self._emit_event(
                EnrichmentFailed(
                    event_type=EventType.ENRICHMENT_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.ENRICH,
                    run_id=run_id,
                    reason=reason,
                )
            )
            return

        await self._emit_event(
            EnrichmentResolved(
                event_type=EventType.ENRICHMENT_RESOLVED,
                ts_ms=self._now_ms(),
                service=Service.ENRICH,
                run_id=run_id,
                enrichment=enrichment,
            )
        )
