"""
Transcript-lookup adapter contract.

"No synced lyrics" is a resolved outcome (Transcript.unavailable()), not
an error. Failures resolve to the same UI state in the reducer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from adapters.identify.base import IdentificationResult

SOURCE_CACHE = "cache"
SOURCE_GET = "get"
SOURCE_SEARCH = "search"
SOURCE_NONE = "none"


class TranscriptLookupAdapter(ABC):
    """
    Implementations emit exactly one TranscriptResolved / TranscriptFailed
    per run, unless cancelled.
    """

    @abstractmethod
    async def start_lookup(self, *, run_id: int, result: IdentificationResult) -> None:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, run_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def force_reset(self) -> None:
        raise NotImplementedError
