"""
Coalesced pending operations for one save cycle.

An OperationSet maps field names to exactly one pending operation. Each
``put`` merges the new operation with whatever is already pending for the
field, so the set always holds the net intent of every mutation made since
it was created.

Invariants:
    - One operation per key, merged in call order
    - Iteration order is insertion order (deterministic encoding)
    - ``merge_set(other)`` treats ``other`` as more recent
"""

from __future__ import annotations

import uuid as uuid_module
from collections.abc import Iterator, Mapping
from typing import Any

from .base import FieldOperation
from .operations import SetOperation

UUID_KEY = "__uuid"
SAVE_EVENTUALLY_KEY = "__isSaveEventually"


class OperationSet(Mapping):
    """Ordered mapping of field name to pending operation.

    Attributes:
        uuid: Stable identity of this set (survives persistence)
        is_save_eventually: Whether the set was queued for offline save
    """

    def __init__(self, uuid: str | None = None, is_save_eventually: bool = False) -> None:
        self.uuid = uuid or str(uuid_module.uuid4())
        self.is_save_eventually = is_save_eventually
        self._operations: dict[str, FieldOperation] = {}

    def put(self, key: str, operation: FieldOperation) -> FieldOperation:
        """Merge ``operation`` into the pending operation for ``key``.

        Returns:
            The merged operation now stored for ``key``

        Raises:
            InvalidOperationError: If the operations cannot be combined
        """
        merged = operation.merge_with_previous(self._operations.get(key))
        self._operations[key] = merged
        return merged

    def replace(self, key: str, operation: FieldOperation) -> None:
        """Store ``operation`` for ``key`` without merging."""
        self._operations[key] = operation

    def remove(self, key: str) -> FieldOperation | None:
        return self._operations.pop(key, None)

    def clear(self) -> None:
        self._operations.clear()

    def merge_set(self, other: OperationSet) -> None:
        """Merge a more recent set into this one, field by field."""
        for key, operation in other.items():
            self.put(key, operation)

    def copy(self) -> OperationSet:
        result = OperationSet(self.uuid, self.is_save_eventually)
        result._operations = dict(self._operations)
        return result

    def encode(self, encoder: Any) -> dict[str, Any]:
        """Encode as a save request body (no bookkeeping keys)."""
        return {key: operation.encode(encoder) for key, operation in self._operations.items()}

    def to_rest(self, encoder: Any) -> dict[str, Any]:
        """Encode for local persistence, including identity keys."""
        result = self.encode(encoder)
        result[UUID_KEY] = self.uuid
        if self.is_save_eventually:
            result[SAVE_EVENTUALLY_KEY] = True
        return result

    @classmethod
    def from_rest(cls, data: dict[str, Any], decoder: Any) -> OperationSet:
        """Rebuild a set persisted with ``to_rest``.

        Plain (non-operation) values decode to SetOperation.
        """
        fields = dict(data)
        result = cls(
            uuid=fields.pop(UUID_KEY, None),
            is_save_eventually=bool(fields.pop(SAVE_EVENTUALLY_KEY, False)),
        )
        for key, value in fields.items():
            decoded = decoder.decode(value)
            if isinstance(decoded, FieldOperation):
                result.replace(key, decoded)
            else:
                result.replace(key, SetOperation(decoded))
        return result

    def __getitem__(self, key: str) -> FieldOperation:
        return self._operations[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"OperationSet(uuid={self.uuid!r}, operations={self._operations!r})"
