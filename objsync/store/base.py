"""
Base protocol for stores holding one distinguished object.

Every store persists at most one object and hands back a fresh instance on
``get``.

Invariants:
    - set replaces any previously stored object (never stacks)
    - get after set returns an object with the same class and id
    - delete is idempotent

How to change safely:
    - Protocol changes require updating every implementation
      (FileObjectStore, SqliteObjectStore, InMemoryObjectStore)
"""

from __future__ import annotations

import json
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..codec.current_coder import CurrentObjectCoder
from ..codec.decoder import Decoder
from ..codec.encoder import PointerEncoder
from ..model.state import ObjectState


@dataclass(frozen=True)
class StoredObjectSnapshot:
    """Durable representation of the stored object.

    Attributes:
        class_name: Class name of the stored object
        encoded_state: Snapshot produced by CurrentObjectCoder
        is_current: Whether the snapshot is still the current object
    """

    class_name: str
    encoded_state: dict[str, Any] = field(default_factory=dict)
    is_current: bool = True

    @property
    def object_id(self) -> str | None:
        return (self.encoded_state.get("data") or {}).get("objectId")

    def to_json(self) -> str:
        return json.dumps(self.encoded_state, separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_json(cls, class_name: str, text: str, is_current: bool = True) -> StoredObjectSnapshot:
        return cls(class_name=class_name, encoded_state=json.loads(text), is_current=is_current)


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for single-object stores."""

    @abstractmethod
    async def get(self) -> Any | None:
        """Stored object, or None."""
        ...

    @abstractmethod
    async def set(self, obj: Any) -> None:
        """Replace the stored object with ``obj``."""
        ...

    @abstractmethod
    async def exists(self) -> bool:
        ...

    @abstractmethod
    async def delete(self) -> None:
        ...


class SnapshotCodec:
    """Converts objects to snapshots and back for one class name."""

    def __init__(self, class_name: str, registry: Any, coder: CurrentObjectCoder | None = None) -> None:
        self.class_name = class_name
        self.registry = registry
        self.coder = coder or CurrentObjectCoder()

    def to_snapshot(self, obj: Any) -> StoredObjectSnapshot:
        encoded = self.coder.encode(obj.state, PointerEncoder(allow_unsaved=True))
        return StoredObjectSnapshot(class_name=obj.class_name, encoded_state=encoded)

    def to_state(self, snapshot: StoredObjectSnapshot) -> ObjectState:
        return self.coder.decode(
            snapshot.encoded_state,
            Decoder(self.registry),
            class_name=snapshot.class_name or self.class_name,
        )

    def from_snapshot(self, snapshot: StoredObjectSnapshot) -> Any:
        return self.registry.from_state(self.to_state(snapshot))
