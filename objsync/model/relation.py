"""
Many-to-many relation values.

A Relation is the locally known view of a relation field: the target class
plus every object this client knows to be part of it. The owning object is
held as an ObjectRef and resolved on demand through the type registry, so a
relation never keeps its parent alive.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ..errors import SyncError
from .refs import ObjectRef

if TYPE_CHECKING:
    from ..registry import ObjectTypeRegistry


class Relation:
    """Value of a relation field.

    Relations are treated as immutable: ``with_added`` and ``with_removed``
    return new instances.

    Attributes:
        target_class: Class name of the related objects (None until known)
        parent: Owning object reference
        key: Field name of the relation in the owning object
        known_objects: Related objects known locally, in insertion order
    """

    def __init__(
        self,
        target_class: str | None = None,
        parent: ObjectRef | None = None,
        key: str | None = None,
        known_objects: Iterable[ObjectRef] = (),
    ) -> None:
        self.target_class = target_class
        self.parent = parent
        self.key = key
        self.known_objects: tuple[ObjectRef, ...] = tuple(
            _dedupe(ObjectRef.of(o) for o in known_objects)
        )

    def ensure_parent_and_key(self, parent: ObjectRef, key: str) -> Relation:
        """Bind this relation to its owner, returning the bound relation.

        Raises:
            SyncError: If the relation is already bound elsewhere
        """
        if self.parent is not None and self.parent != parent:
            raise SyncError(
                "Internal error. One Relation retrieved from two different objects.",
                code="RELATION_STATE",
            )
        if self.key is not None and self.key != key:
            raise SyncError(
                "Internal error. One Relation retrieved from two different keys.",
                code="RELATION_STATE",
            )
        if self.parent == parent and self.key == key:
            return self
        return Relation(self.target_class, parent, key, self.known_objects)

    def resolve_parent(self, registry: ObjectTypeRegistry) -> Any:
        """Instantiate the owning object through the registry."""
        if self.parent is None:
            return None
        return registry.create_without_data(self.parent.class_name, self.parent.object_id)

    def with_added(self, objects: Iterable[ObjectRef], target_class: str | None = None) -> Relation:
        known = list(self.known_objects)
        for ref in objects:
            if ref not in known:
                known.append(ref)
        return Relation(target_class or self.target_class, self.parent, self.key, known)

    def with_removed(self, objects: Iterable[ObjectRef], target_class: str | None = None) -> Relation:
        removed = set(objects)
        known = [ref for ref in self.known_objects if ref not in removed]
        return Relation(target_class or self.target_class, self.parent, self.key, known)

    def encode(self, encoder: Any) -> dict[str, Any]:
        return {
            "__type": "Relation",
            "className": self.target_class,
            "objects": [encoder.encode(ref) for ref in self.known_objects],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relation):
            return NotImplemented
        return (
            self.target_class == other.target_class
            and self.parent == other.parent
            and self.key == other.key
            and set(self.known_objects) == set(other.known_objects)
        )

    def __hash__(self) -> int:
        return hash((self.target_class, self.parent, self.key, frozenset(self.known_objects)))

    def __repr__(self) -> str:
        return (
            f"Relation(target_class={self.target_class!r}, parent={self.parent!r}, "
            f"key={self.key!r}, known_objects={list(self.known_objects)!r})"
        )


def _dedupe(refs: Iterable[ObjectRef]) -> list[ObjectRef]:
    result: list[ObjectRef] = []
    for ref in refs:
        if ref not in result:
            result.append(ref)
    return result
