"""
Transcript cache keyed by normalized (artist, title).

Semantics:
- get(key) -> Transcript | None
- put(key, transcript): last write wins, no merge
- No eviction and no invalidation; entries live as long as the store

Known limitation: distinct songs whose artist/title normalize to the same
string share an entry. The versioned key prefix allows a future format
change to start from a clean namespace.
"""

from __future__ import annotations

import json
import re

from constants import CACHE_KEY_PREFIX
from observability.logger import log_event
from transcript.models import Transcript
from transcript.store import KeyValueStore

_WHITESPACE_RE = re.compile(r"\s+")


def cache_key(artist: str, title: str) -> str:
    """Lowercase and strip all whitespace from "artist_title"."""
    composite = f"{artist}_{title}"
    return CACHE_KEY_PREFIX + _WHITESPACE_RE.sub("", composite).lower()


class TranscriptCache:
    """Serializes transcripts to JSON strings over a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get(self, key: str) -> Transcript | None:
        raw = self._store.get(key)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
            return Transcript.from_json(data)
        except (ValueError, TypeError, KeyError) as e:
            # A corrupt entry reads as a miss; the next successful lookup
            # overwrites it.
            log_event({
                "event_type": "CACHE_ENTRY_CORRUPT",
                "key": key,
                "error": f"{type(e).__name__}: {e}",
            })
            return None

    def put(self, key: str, transcript: Transcript) -> None:
        self._store.set(
            key,
            json.dumps(transcript.to_json(), ensure_ascii=False, separators=(",", ":")),
        )

    def lookup(self, artist: str, title: str) -> Transcript | None:
        return self.get(cache_key(artist, title))

    def store(self, artist: str, title: str, transcript: Transcript) -> None:
        self.put(cache_key(artist, title), transcript)
