"""
In-memory ObjectStore for testing.

Stores the encoded snapshot (not the live object), so ``get`` returns a new
instance exactly like the durable stores do.

Invariants:
    - All data is lost on process exit
    - Same replace-on-set semantics as the durable stores

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the ObjectStore protocol
"""

from __future__ import annotations

from typing import Any

from .base import SnapshotCodec, StoredObjectSnapshot


class InMemoryObjectStore:
    """Single-object store kept in memory.

    Attributes:
        fail_on_set: Exception raised by the next ``set`` calls (simulates
            a failing backend)
        set_calls: Number of ``set`` calls, successful or not
        delete_calls: Number of ``delete`` calls
    """

    def __init__(self, class_name: str, registry: Any) -> None:
        self._codec = SnapshotCodec(class_name, registry)
        self._snapshot: StoredObjectSnapshot | None = None
        self.fail_on_set: BaseException | None = None
        self.set_calls = 0
        self.delete_calls = 0

    @property
    def snapshot(self) -> StoredObjectSnapshot | None:
        return self._snapshot

    async def get(self) -> Any | None:
        if self._snapshot is None:
            return None
        return self._codec.from_snapshot(self._snapshot)

    async def set(self, obj: Any) -> None:
        self.set_calls += 1
        if self.fail_on_set is not None:
            raise self.fail_on_set
        self._snapshot = self._codec.to_snapshot(obj)

    async def exists(self) -> bool:
        return self._snapshot is not None

    async def delete(self) -> None:
        self.delete_calls += 1
        self._snapshot = None
