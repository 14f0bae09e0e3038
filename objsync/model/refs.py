"""
Object references for objsync.

An ObjectRef identifies a remote object by value (class name + object id).
It is what the operation algebra stores whenever an operand points at
another object, so operations never hold live instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ObjectRef:
    """Pointer to a remote object.

    Attributes:
        class_name: Backend class of the target object
        object_id: Server-assigned id (None until the object is saved)
    """

    class_name: str
    object_id: str | None = None

    @classmethod
    def of(cls, value: Any) -> ObjectRef:
        """Build a reference from an ObjectRef or any object exposing
        ``class_name`` and ``object_id``."""
        if isinstance(value, ObjectRef):
            return value
        if is_pointer_like(value):
            return cls(value.class_name, value.object_id)
        raise TypeError(f"Cannot reference a value of type {type(value).__name__}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire pointer representation."""
        return {
            "__type": "Pointer",
            "className": self.class_name,
            "objectId": self.object_id,
        }

    def __str__(self) -> str:
        return f"{self.class_name}:{self.object_id}"


def is_pointer_like(value: Any) -> bool:
    """Whether ``value`` identifies a remote object."""
    return hasattr(value, "class_name") and hasattr(value, "object_id")


def object_id_of(value: Any) -> str | None:
    """Object id of a pointer-like value, None for anything else."""
    if is_pointer_like(value):
        return value.object_id
    return None
