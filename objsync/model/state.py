"""
Server-confirmed state of an object.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


@dataclass
class ObjectState:
    """Last known server state of an object.

    Attributes:
        class_name: Backend class name
        object_id: Server-assigned id (None for new objects)
        created_at: Creation time reported by the server
        updated_at: Last update time reported by the server
        data: Field values (decoded)
        is_complete: Whether all fields have been fetched
    """

    class_name: str
    object_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict)
    is_complete: bool = False

    def copy(self) -> ObjectState:
        """Deep copy of this state."""
        return replace(self, data=copy.deepcopy(self.data))

    def keys(self) -> list[str]:
        return list(self.data.keys())

    def get(self, key: str) -> Any:
        return self.data.get(key)
