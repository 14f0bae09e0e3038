"""
Locally mutable objects backed by the remote store.

A SyncObject holds the last server-confirmed ObjectState plus a queue of
OperationSets. The last set in the queue accumulates new local mutations;
``start_save`` seals it and opens a fresh one, so mutations made while a
save is in flight never leak into the request body.

Invariants:
    - The queue always holds at least one set (the accumulating one)
    - Estimated data == server data with every queued set applied in order
    - A failed save folds its set into the next one (merge_set), so no
      mutation is lost and ordering is preserved

How to change safely:
    - All mutation goes through _perform_operation so the queue and the
      estimated data never diverge
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any

from .errors import InvalidOperationError
from .model.refs import ObjectRef
from .model.relation import Relation
from .model.state import ObjectState
from .ops.base import FieldOperation
from .ops.operation_set import OperationSet
from .ops.operations import (
    AddOperation,
    AddUniqueOperation,
    DeleteOperation,
    IncrementOperation,
    RelationOperation,
    RemoveOperation,
    SetOperation,
)

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({"objectId", "createdAt", "updatedAt", "className"})


class SyncObject:
    """An object whose mutations are tracked as field operations.

    Example:
        >>> score = SyncObject("GameScore")
        >>> score.put("player", "alice")
        >>> score.increment("score", 10)
        >>> score.is_dirty()
        True
    """

    def __init__(self, class_name: str, object_id: str | None = None) -> None:
        if not class_name:
            raise ValueError("class_name is required")
        self._lock = threading.RLock()
        self._state = ObjectState(class_name=class_name, object_id=object_id)
        self._operation_set_queue: list[OperationSet] = [OperationSet()]
        self._estimated_data: dict[str, Any] = {}
        self._deleted = False

    @classmethod
    def from_state(cls, state: ObjectState) -> SyncObject:
        obj = cls(state.class_name, state.object_id)
        obj.merge_from_server(state)
        return obj

    # -- identity -------------------------------------------------------

    @property
    def class_name(self) -> str:
        return self._state.class_name

    @property
    def object_id(self) -> str | None:
        return self._state.object_id

    @property
    def created_at(self):
        return self._state.created_at

    @property
    def updated_at(self):
        return self._state.updated_at

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.class_name, self.object_id)

    @property
    def state(self) -> ObjectState:
        """Copy of the last server-confirmed state."""
        with self._lock:
            return self._state.copy()

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def is_data_available(self) -> bool:
        return self._state.is_complete

    # -- reads ----------------------------------------------------------

    def get(self, key: str) -> Any:
        """Estimated value of ``key`` (server value with pending ops applied)."""
        with self._lock:
            value = self._estimated_data.get(key)
            if isinstance(value, Relation):
                value = self._bind_relation(value, key)
                self._estimated_data[key] = value
            return value

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._estimated_data.keys())

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._estimated_data

    def is_dirty(self, key: str | None = None) -> bool:
        """Whether there are unsaved mutations (optionally for one key)."""
        with self._lock:
            current = self._current_operations()
            if key is None:
                return len(current) > 0 or self._state.object_id is None
            return key in current

    @property
    def pending_operations(self) -> OperationSet:
        """Copy of the accumulating operation set."""
        with self._lock:
            return self._current_operations().copy()

    # -- mutations ------------------------------------------------------

    def put(self, key: str, value: Any) -> None:
        _check_key(key)
        self._perform_operation(key, SetOperation(value))

    def remove(self, key: str) -> None:
        with self._lock:
            if key in self._estimated_data or key in self._current_operations():
                self._perform_operation(key, DeleteOperation())

    def increment(self, key: str, amount: Any = 1) -> None:
        self._perform_operation(key, IncrementOperation(amount))

    def add(self, key: str, value: Any) -> None:
        self.add_all(key, [value])

    def add_all(self, key: str, values: Iterable[Any]) -> None:
        self._perform_operation(key, AddOperation(values))

    def add_unique(self, key: str, value: Any) -> None:
        self.add_all_unique(key, [value])

    def add_all_unique(self, key: str, values: Iterable[Any]) -> None:
        self._perform_operation(key, AddUniqueOperation(values))

    def remove_all(self, key: str, values: Iterable[Any]) -> None:
        self._perform_operation(key, RemoveOperation(values))

    def relation(self, key: str) -> Relation:
        """Relation stored under ``key``, creating an empty one if absent."""
        with self._lock:
            value = self.get(key)
            if isinstance(value, Relation):
                return value
            if value is not None:
                raise InvalidOperationError(f"Field {key} is not a relation", key=key)
            relation = Relation(parent=self.ref, key=key)
            self._estimated_data[key] = relation
            return relation

    def add_relation(self, key: str, objects: Iterable[Any]) -> None:
        self._perform_operation(key, RelationOperation.add(objects))

    def remove_relation(self, key: str, objects: Iterable[Any]) -> None:
        self._perform_operation(key, RelationOperation.remove(objects))

    def _perform_operation(self, key: str, operation: FieldOperation) -> None:
        with self._lock:
            current = self._current_operations()
            merged = operation.merge_with_previous(current.get(key))
            new_value = operation.apply(self._estimated_data.get(key), key)
            current.replace(key, merged)
            _store(self._estimated_data, key, new_value)

    # -- save / fetch / delete lifecycle --------------------------------

    def start_save(self) -> OperationSet:
        """Seal the accumulating set and return it for sending."""
        with self._lock:
            operations = self._current_operations()
            self._operation_set_queue.append(OperationSet())
            return operations

    def handle_save_result(
        self,
        result: ObjectState | None,
        operations: OperationSet,
    ) -> None:
        """Settle a save started with ``start_save``.

        Args:
            result: Server state returned by the save, or None if it failed
            operations: The set returned by ``start_save``
        """
        with self._lock:
            index = self._index_of(operations)
            self._operation_set_queue.pop(index)

            if result is None:
                # the failed set is older than everything still queued after it
                following = self._operation_set_queue[index]
                operations.merge_set(following)
                self._operation_set_queue[index] = operations
                logger.debug(
                    "Save failed, operations re-queued",
                    extra={"class_name": self.class_name, "keys": list(operations.keys())},
                )
                return

            data = dict(self._state.data)
            for key, operation in operations.items():
                _store(data, key, operation.apply(data.get(key), key))
            merged_state = self._state.copy()
            merged_state.data = data
            self._state = merged_state
            self._merge_server_fields(result)
            self._rebuild_estimated_data()

    def handle_fetch_result(self, result: ObjectState) -> None:
        """Replace server state with a freshly fetched one."""
        with self._lock:
            self._state = ObjectState(
                class_name=self.class_name,
                object_id=self._state.object_id,
                created_at=self._state.created_at,
                updated_at=self._state.updated_at,
            )
            self._merge_server_fields(result)
            self._state.is_complete = True
            self._rebuild_estimated_data()

    def handle_delete_result(self) -> None:
        with self._lock:
            self._deleted = True

    def merge_from_server(self, state: ObjectState) -> None:
        """Overlay server-provided fields onto the current state."""
        with self._lock:
            self._merge_server_fields(state)
            if state.is_complete:
                self._state.is_complete = True
            self._rebuild_estimated_data()

    def _merge_server_fields(self, state: ObjectState) -> None:
        if state.object_id is not None:
            self._state.object_id = state.object_id
        if state.created_at is not None:
            self._state.created_at = state.created_at
        if state.updated_at is not None:
            self._state.updated_at = state.updated_at
        elif state.created_at is not None and self._state.updated_at is None:
            self._state.updated_at = state.created_at
        self._state.data.update(state.data)

    # -- internals ------------------------------------------------------

    def _current_operations(self) -> OperationSet:
        return self._operation_set_queue[-1]

    def _index_of(self, operations: OperationSet) -> int:
        for index, queued in enumerate(self._operation_set_queue):
            if queued is operations:
                return index
        raise ValueError("Operation set is not queued on this object")

    def _rebuild_estimated_data(self) -> None:
        data = dict(self._state.data)
        for operations in self._operation_set_queue:
            for key, operation in operations.items():
                _store(data, key, operation.apply(data.get(key), key))
        self._estimated_data = data

    def _bind_relation(self, relation: Relation, key: str) -> Relation:
        if relation.parent is None or relation.parent.object_id is None:
            return Relation(relation.target_class, self.ref, key, relation.known_objects)
        return relation.ensure_parent_and_key(self.ref, key)

    def __deepcopy__(self, memo: dict[int, Any]) -> SyncObject:
        # pointers inside copied state keep referring to the live instance
        return self

    def __repr__(self) -> str:
        return f"SyncObject({self.class_name!r}, object_id={self.object_id!r})"


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("key must be a non-empty string")
    if key in RESERVED_KEYS:
        raise ValueError(f"{key} is a reserved key")


def _store(data: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        data.pop(key, None)
    else:
        data[key] = value
