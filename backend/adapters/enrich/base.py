"""
Enrichment adapter contract.

Enrichment is independently failable: no match and failure both leave the
session on its way to PLAYING with no artwork or description.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from adapters.identify.base import IdentificationResult
from constants import ENRICH_TEASER_CHARS

_BRACKETED_RE = re.compile(r"\[.*?\]")


@dataclass(frozen=True)
class Enrichment:
    song_id: int
    title: str
    artist: str
    artwork_url: str = ""
    description: str = ""
    url: str = ""
    release_date: str = ""

    @property
    def teaser(self) -> str:
        """Description without bracketed notes, cut to ENRICH_TEASER_CHARS."""
        return _BRACKETED_RE.sub("", self.description)[:ENRICH_TEASER_CHARS]

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.song_id,
            "title": self.title,
            "artist": self.artist,
            "artwork_url": self.artwork_url,
            "description": self.description,
            "teaser": self.teaser,
            "url": self.url,
            "release_date": self.release_date,
        }


def enrichment_query(result: IdentificationResult) -> str:
    return f"{result.title} {result.artist_name}".strip()


class EnrichAdapter(ABC):
    """
    Implementations emit exactly one EnrichmentResolved / EnrichmentFailed
    per run, unless cancelled.
    """

    @abstractmethod
    async def start_enrichment(self, *, run_id: int, result: IdentificationResult) -> None:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, run_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def force_reset(self) -> None:
        raise NotImplementedError
