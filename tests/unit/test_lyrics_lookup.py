# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

import pytest
import requests

from adapters.identify.base import IdentificationResult
from adapters.lyrics.base import SOURCE_CACHE, SOURCE_GET, SOURCE_NONE, SOURCE_SEARCH
from adapters.lyrics.lrclib import LrcLibClient, LrcLibTranscriptAdapter, TranscriptResolver
from orchestrator.errors import TranscriptError
from orchestrator.events import TranscriptFailed, TranscriptResolved
from transcript.cache import TranscriptCache
from transcript.models import LyricLine, Transcript
from transcript.store import MemoryStore

from http_fakes import FakeResponse, FakeSession

SYNCED = "[00:40.00]first\n[00:50.00]second\n"
PARSED = Transcript(lines=(LyricLine(40.0, "first"), LyricLine(50.0, "second")))


class ReadOnlyStore(MemoryStore):
    def set(self, key: str, value: str) -> None:
        raise PermissionError("cache directory is read-only")


def resolver(
    session: FakeSession, store: MemoryStore | None = None
) -> tuple[TranscriptResolver, TranscriptCache]:
    cache = TranscriptCache(store if store is not None else MemoryStore())
    client = LrcLibClient("https://lrclib.test", session=session)
    return TranscriptResolver(client=client, cache=cache), cache


def test_exact_match_is_parsed_and_cached() -> None:
    session = FakeSession({"/api/get": FakeResponse(200, {"syncedLyrics": SYNCED})})
    pipeline, cache = resolver(session)

    transcript, source = pipeline.resolve("Band", "Song")

    assert source == SOURCE_GET
    assert transcript == PARSED
    assert cache.lookup("Band", "Song") == PARSED
    assert session.calls[0][2]["params"] == {"artist_name": "Band", "track_name": "Song"}
    assert session.calls[0][2]["headers"]["User-Agent"].startswith("lyric-sync")
    assert "User-Agent" not in session.headers


def test_cache_hit_skips_network() -> None:
    session = FakeSession()
    pipeline, cache = resolver(session)
    cache.store("Band", "Song", PARSED)

    transcript, source = pipeline.resolve("band ", "SONG")

    assert source == SOURCE_CACHE
    assert transcript == PARSED
    assert session.calls == []


def test_not_found_falls_back_to_search() -> None:
    session = FakeSession({
        "/api/get": FakeResponse(404, {}),
        "/api/search": FakeResponse(200, [
            {"syncedLyrics": None, "plainLyrics": "words"},
            {"syncedLyrics": SYNCED},
        ]),
    })
    pipeline, _ = resolver(session)

    transcript, source = pipeline.resolve("Band", "Song")

    assert source == SOURCE_SEARCH
    assert transcript == PARSED
    assert session.calls[1][2]["params"] == {"q": "Song Band"}


@pytest.mark.parametrize(
    "get_reply",
    [FakeResponse(500, {}), requests.Timeout("slow"), FakeResponse(200, text="oops")],
)
def test_exact_failure_falls_back_to_search(get_reply: object) -> None:
    session = FakeSession({
        "/api/get": get_reply,
        "/api/search": FakeResponse(200, [{"syncedLyrics": SYNCED}]),
    })
    pipeline, _ = resolver(session)

    _, source = pipeline.resolve("Band", "Song")

    assert source == SOURCE_SEARCH


def test_search_failure_raises() -> None:
    session = FakeSession({
        "/api/get": FakeResponse(404, {}),
        "/api/search": requests.ConnectionError("down"),
    })
    pipeline, _ = resolver(session)

    with pytest.raises(TranscriptError):
        pipeline.resolve("Band", "Song")


def test_nothing_synced_is_unavailable_and_not_cached() -> None:
    session = FakeSession({
        "/api/get": FakeResponse(200, {"syncedLyrics": "", "plainLyrics": "words"}),
        "/api/search": FakeResponse(200, [{"syncedLyrics": "no stamps here"}]),
    })
    pipeline, cache = resolver(session)

    transcript, source = pipeline.resolve("Band", "Song")

    assert source == SOURCE_NONE
    assert not transcript.available
    assert cache.lookup("Band", "Song") is None


def run_adapter(session: FakeSession, store: MemoryStore | None = None) -> list[object]:
    emitted: list[object] = []

    async def emit(event: object) -> None:
        emitted.append(event)

    async def scenario() -> None:
        pipeline, _ = resolver(session, store)
        adapter = LrcLibTranscriptAdapter(
            emit_event=emit, resolver=pipeline, session_id="sess_test"
        )
        result = IdentificationResult(title="Song", artist_name="Band", in_song_offset_ms=0)
        await adapter.start_lookup(run_id=3, result=result)
        for _ in range(100):
            if not adapter.is_active(3):
                break
            await asyncio.sleep(0.01)

    asyncio.run(scenario())
    return emitted


def test_adapter_reports_source() -> None:
    emitted = run_adapter(
        FakeSession({"/api/get": FakeResponse(200, {"syncedLyrics": SYNCED})})
    )

    assert len(emitted) == 1
    assert isinstance(emitted[0], TranscriptResolved)
    assert emitted[0].run_id == 3
    assert emitted[0].source == SOURCE_GET


def test_adapter_reports_search_failure() -> None:
    emitted = run_adapter(FakeSession({"/api/search": requests.ConnectionError("down")}))

    assert len(emitted) == 1
    assert isinstance(emitted[0], TranscriptFailed)


def test_cache_write_failure_still_returns_lyrics() -> None:
    session = FakeSession({"/api/get": FakeResponse(200, {"syncedLyrics": SYNCED})})
    pipeline, cache = resolver(session, ReadOnlyStore())

    transcript, source = pipeline.resolve("Band", "Song")

    assert source == SOURCE_GET
    assert transcript == PARSED
    assert cache.lookup("Band", "Song") is None


def test_adapter_resolves_when_cache_is_read_only() -> None:
    emitted = run_adapter(
        FakeSession({"/api/get": FakeResponse(200, {"syncedLyrics": SYNCED})}),
        ReadOnlyStore(),
    )

    assert len(emitted) == 1
    assert isinstance(emitted[0], TranscriptResolved)
    assert emitted[0].transcript == PARSED


def test_adapter_reports_unexpected_error_as_failure() -> None:
    emitted = run_adapter(FakeSession({"/api/get": RuntimeError("boom")}))

    assert len(emitted) == 1
    assert isinstance(emitted[0], TranscriptFailed)
    assert emitted[0].run_id == 3
    assert "RuntimeError" in emitted[0].reason
