"""
Key-value persistence for settings blobs.

Each record is a JSON document stored under a fixed key. Reads never
raise: a missing or unreadable record comes back as None and the caller
substitutes its defaults.

Directory structure (JsonFileStore):
    ./data/
        gym-announcement-timers.json
        speech-settings.json
        hourly-announcement.json
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for JSON blob stores."""

    def load(self, key: str) -> Any | None:
        """Return the decoded record, or None if absent or corrupt."""
        ...

    def save(self, key: str, value: Any) -> None:
        """Persist a JSON-serializable record."""
        ...


class MemoryStore:
    """Process-local store. Values are JSON round-tripped on save."""

    def __init__(self, initial: dict[str, str] | None = None):
        # Raw JSON text per key, so corrupt payloads can be simulated
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, key: str) -> Any | None:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt record %r: %s", key, e)
            return None

    def save(self, key: str, value: Any) -> None:
        raw = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self._data[key] = raw

    def raw(self, key: str) -> str | None:
        """Stored JSON text for a key."""
        with self._lock:
            return self._data.get(key)


class JsonFileStore:
    """File-based store, one ``<key>.json`` file per record.

    Writes go to a temporary file first and replace the target, so a
    crash mid-write leaves the previous record intact.

    Example:
        store = JsonFileStore("./data")
        store.save("speech-settings", {"engine": "murf", "volume": 1})
        store.load("speech-settings")
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def load(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with self._lock, open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable record %s: %s", path, e)
            return None

    def save(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with self._lock:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)


__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore"]
