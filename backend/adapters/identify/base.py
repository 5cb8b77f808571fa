"""
Identification adapter contract.

This module defines the result type, status classification and the
*interface only*: no HTTP, no timers, no orchestration decisions.

Key invariants:
- Run IDs are owned by the orchestrator. Adapters never generate or mutate
  run IDs.
- The adapter emits IDENTIFY_* events; it does not call the reducer.
- cancel(run_id) is idempotent.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from audio.sample import AudioSample
from constants import AGGRESSIVE_GENRE_PATTERN
from orchestrator.errors import FailureKind, IdentificationError

_AGGRESSIVE_RE = re.compile(AGGRESSIVE_GENRE_PATTERN, re.IGNORECASE)

MOOD_AGGRESSIVE = "aggressive"
MOOD_SOFT = "soft"

# Collaborator status code -> failure kind (0 is a match)
STATUS_KINDS: dict[int, FailureKind] = {
    1001: FailureKind.NO_MATCH,
    2004: FailureKind.UNREACHABLE,
    3001: FailureKind.TIMEOUT,
    3000: FailureKind.MALFORMED,
}


@dataclass(frozen=True)
class IdentificationResult:
    """
    Read-only identification outcome.

    artist_name is the first listed artist.
    """
    title: str
    artist_name: str
    in_song_offset_ms: int
    artists: tuple[str, ...] = ()
    genres: tuple[str, ...] = ()
    mood: str = MOOD_SOFT

    def to_json(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist_name,
            "artists": list(self.artists),
            "in_song_offset_ms": self.in_song_offset_ms,
            "genres": list(self.genres),
            "mood": self.mood,
        }


def mood_for_genres(genres: Iterable[str]) -> str:
    for genre in genres:
        if _AGGRESSIVE_RE.search(genre):
            return MOOD_AGGRESSIVE
    return MOOD_SOFT


def classify_status(code: int) -> FailureKind:
    """Map a non-zero collaborator status code to a failure kind."""
    return STATUS_KINDS.get(code, FailureKind.UNKNOWN)


def parse_identify_response(payload: dict[str, Any]) -> IdentificationResult:
    """
    Convert the collaborator's JSON body into a result.

    Raises:
        IdentificationError: for every non-match outcome.
    """
    status = payload.get("status") or {}
    try:
        code = int(status.get("code", -1))
    except (TypeError, ValueError):
        code = -1
    msg = str(status.get("msg", ""))

    if code != 0:
        raise IdentificationError(classify_status(code), msg, status_code=code)

    music = (payload.get("metadata") or {}).get("music") or []
    if not music:
        raise IdentificationError(FailureKind.NO_MATCH, "no music block", status_code=0)

    best = music[0]
    artists = tuple(
        str(a.get("name", "")) for a in best.get("artists") or [] if a.get("name")
    )
    genres = tuple(
        str(g.get("name", "")) for g in best.get("genres") or [] if g.get("name")
    )

    return IdentificationResult(
        title=str(best.get("title", "")),
        artist_name=artists[0] if artists else "",
        in_song_offset_ms=int(best.get("play_offset_ms") or 0),
        artists=artists,
        genres=genres,
        mood=mood_for_genres(genres),
    )


class IdentifyAdapter(ABC):
    """
    Abstract interface for an identification adapter.

    Implementations:
    - Start one identification per run_id via start_identify()
    - Emit exactly one IdentifySucceeded / IdentifyFailed per run, unless
      cancelled
    """

    @abstractmethod
    async def start_identify(self, *, run_id: int, sample: AudioSample) -> None:
        """Start the call and return immediately (do NOT await the result)."""
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, run_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def force_reset(self) -> None:
        raise NotImplementedError
