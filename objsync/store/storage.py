"""
Durable key/value primitive.

Values are opaque bytes addressed by a key. FileStorage keeps one file per
key under a directory; InMemoryStorage is the test double.

Invariants:
    - write_object replaces the value atomically (readers never observe a
      partially written file)
    - read_object returns None for a missing key; delete of a missing key is
      a no-op
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStorage(Protocol):
    """Protocol for durable key/value storage."""

    @abstractmethod
    def read_object(self, key: str) -> bytes | None:
        ...

    @abstractmethod
    def write_object(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class FileStorage:
    """One file per key in ``directory``.

    Args:
        directory: Directory holding the files (created on first write)
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        # Sanitize key to prevent path traversal
        safe_key = "".join(c for c in key if c.isalnum() or c in "-_.")
        if not safe_key or safe_key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / safe_key

    def read_object(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write_object(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass


class InMemoryStorage:
    """Dictionary-backed storage for tests."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def read_object(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def write_object(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())
