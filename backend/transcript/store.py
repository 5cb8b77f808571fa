"""
String-keyed, string-valued persistence for the transcript cache.

The cache only needs get/set; the medium is swappable:
- MemoryStore: process-local dict (tests, ephemeral sessions)
- JsonFileStore: one JSON object on disk, rewritten atomically on every set
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from observability.logger import log_event


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """
    JSON-file-backed store.

    The whole mapping is loaded once on construction and written back on
    every set() via write-to-temp + os.replace, so a crash mid-write never
    leaves a truncated file behind.

    An unreadable or corrupt file is logged and treated as empty; the next
    set() overwrites it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._data: dict[str, str] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        # Lookups run on worker threads; serialize writers.
        with self._lock:
            self._data[key] = value
            self._flush()

    def __len__(self) -> int:
        return len(self._data)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            log_event({
                "event_type": "CACHE_LOAD_FAILED",
                "path": str(self._path),
                "error": str(e),
            })
            return {}

        if not isinstance(raw, dict):
            log_event({
                "event_type": "CACHE_LOAD_FAILED",
                "path": str(self._path),
                "error": f"expected object, got {type(raw).__name__}",
            })
            return {}

        return {str(k): str(v) for k, v in raw.items()}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=".transcripts-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
