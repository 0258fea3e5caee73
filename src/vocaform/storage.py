"""
Persistence port and two reference implementations.

The engine is storage-agnostic: anything with save(key, snapshot_json)
and load(key) works. Failures are signalled by raising; the auto-save
manager wraps them into PersistenceError.
"""
from __future__ import annotations

import os
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class PersistencePort(Protocol):
    def save(self, key: str, snapshot_json: str) -> None:
        ...

    def load(self, key: str) -> Optional[str]:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryStore:
    """
    Process-local key/value store.

    Thread-safe. Used by tests and by callers that persist elsewhere
    through the on_save callback.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}

    def save(self, key: str, snapshot_json: str) -> None:
        with self._lock:
            self._data[key] = snapshot_json

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        """
        Return a copy of all keys currently stored.
        """
        with self._lock:
            return sorted(self._data)


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStore:
    """
    One JSON file per key inside a directory.

    Writes go to a temporary file first and are renamed into place so a
    crash never leaves a partially written snapshot behind.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def save(self, key: str, snapshot_json: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(snapshot_json, encoding="utf-8")
        os.replace(tmp, path)

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
