"""
Concrete field operations.

Merge table (rows: new operation, columns: previous operation):

              None   Delete        Set(v)             same kind
    Set       self   self          self               self
    Delete    self   self          self               self
    Increment self   Set(n)        Set(v + n)         Increment(a + b)
    Add       self   Set(list)     Set(v + list)      Add(prev + list)
    AddUnique self   Set(list)     Set(apply(v))      AddUnique(apply(prev))
    Remove    self   Set([])       Set(apply(v))      Remove(prev + list)
    Relation  self   error         error              merged adds/removes

Any other combination raises InvalidOperationError.

Ordered sequences are always produced as ``list``; tuples are accepted as
input and normalized. Booleans are not numbers for Increment.
"""

from __future__ import annotations

from collections.abc import Iterable
from numbers import Number
from typing import Any, ClassVar

from ..errors import InvalidOperationError
from ..model.refs import ObjectRef, is_pointer_like, object_id_of
from ..model.relation import Relation
from .base import OP_KEY, FieldOperation

INVALID_AFTER_PREVIOUS = "Operation is invalid after previous operation."


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _as_list(value: Any) -> list[Any] | None:
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def _unique(values: Iterable[Any]) -> list[Any]:
    result: list[Any] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


class SetOperation(FieldOperation):
    """Replace the field value."""

    op_name: ClassVar[str] = "Set"

    def __init__(self, value: Any) -> None:
        normalized = _as_list(value)
        self._value = normalized if normalized is not None else value

    @property
    def value(self) -> Any:
        return self._value

    def encode(self, encoder: Any) -> Any:
        return encoder.encode(self._value)

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        return self

    def apply(self, old_value: Any, key: str | None) -> Any:
        if isinstance(self._value, list):
            return list(self._value)
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SetOperation):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash((self.op_name, repr(self._value)))

    def __repr__(self) -> str:
        return f"SetOperation({self._value!r})"


class DeleteOperation(FieldOperation):
    """Remove the field."""

    op_name: ClassVar[str] = "Delete"

    def encode(self, encoder: Any) -> dict[str, Any]:
        return {OP_KEY: self.op_name}

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        return self

    def apply(self, old_value: Any, key: str | None) -> Any:
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeleteOperation):
            return NotImplemented
        return True

    def __hash__(self) -> int:
        return hash(self.op_name)

    def __repr__(self) -> str:
        return "DeleteOperation()"


class IncrementOperation(FieldOperation):
    """Add a numeric amount to the field."""

    op_name: ClassVar[str] = "Increment"

    def __init__(self, amount: Any) -> None:
        if not _is_number(amount):
            raise InvalidOperationError("You cannot increment by a non-number.")
        self._amount = amount

    @property
    def amount(self) -> Any:
        return self._amount

    def encode(self, encoder: Any) -> dict[str, Any]:
        return {OP_KEY: self.op_name, "amount": self._amount}

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(self._amount)
        if isinstance(previous, SetOperation):
            old = previous.value
            if not _is_number(old):
                raise InvalidOperationError("You cannot increment a non-number.")
            return SetOperation(old + self._amount)
        if isinstance(previous, IncrementOperation):
            return IncrementOperation(previous.amount + self._amount)
        raise InvalidOperationError(INVALID_AFTER_PREVIOUS)

    def apply(self, old_value: Any, key: str | None) -> Any:
        if old_value is None:
            return self._amount
        if not _is_number(old_value):
            raise InvalidOperationError("You cannot increment a non-number.", key=key)
        return old_value + self._amount

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IncrementOperation):
            return NotImplemented
        return self._amount == other._amount

    def __hash__(self) -> int:
        return hash((self.op_name, self._amount))

    def __repr__(self) -> str:
        return f"IncrementOperation({self._amount!r})"


class _ListOperation(FieldOperation):
    """Shared storage for operations carrying a list of operands."""

    def __init__(self, objects: Iterable[Any]) -> None:
        self._objects: tuple[Any, ...] = tuple(objects)

    @property
    def objects(self) -> list[Any]:
        return list(self._objects)

    def encode(self, encoder: Any) -> dict[str, Any]:
        return {OP_KEY: self.op_name, "objects": encoder.encode(list(self._objects))}

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return list(self._objects) == list(other._objects)  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((self.op_name, repr(self._objects)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._objects)!r})"


class AddOperation(_ListOperation):
    """Append objects to an array field."""

    op_name: ClassVar[str] = "Add"

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(list(self._objects))
        if isinstance(previous, SetOperation):
            old = _as_list(previous.value)
            if old is None:
                raise InvalidOperationError("You can only add an item to a list.")
            return SetOperation(old + list(self._objects))
        if isinstance(previous, AddOperation):
            return AddOperation(previous.objects + list(self._objects))
        raise InvalidOperationError(INVALID_AFTER_PREVIOUS)

    def apply(self, old_value: Any, key: str | None) -> Any:
        if old_value is None:
            return list(self._objects)
        old = _as_list(old_value)
        if old is None:
            raise InvalidOperationError("Operation is invalid after previous operation.", key=key)
        return old + list(self._objects)


class AddUniqueOperation(_ListOperation):
    """Append objects to an array field, skipping ones already present.

    A pointer-like operand replaces an existing element with the same
    object id instead of being appended.
    """

    op_name: ClassVar[str] = "AddUnique"

    def __init__(self, objects: Iterable[Any]) -> None:
        super().__init__(_unique(objects))

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(list(self._objects))
        if isinstance(previous, SetOperation):
            old = _as_list(previous.value)
            if old is None:
                raise InvalidOperationError("You can only add an item to a list.")
            return SetOperation(self.apply(old, None))
        if isinstance(previous, AddUniqueOperation):
            return AddUniqueOperation(self.apply(previous.objects, None))
        raise InvalidOperationError(INVALID_AFTER_PREVIOUS)

    def apply(self, old_value: Any, key: str | None) -> Any:
        if old_value is None:
            return list(self._objects)
        old = _as_list(old_value)
        if old is None:
            raise InvalidOperationError("Operation is invalid after previous operation.", key=key)

        result = list(old)
        positions: dict[str, int] = {}
        for index, existing in enumerate(result):
            existing_id = object_id_of(existing)
            if existing_id is not None:
                positions[existing_id] = index

        for obj in self._objects:
            obj_id = object_id_of(obj)
            if obj_id is not None and obj_id in positions:
                result[positions[obj_id]] = obj
            elif obj not in result:
                if obj_id is not None:
                    positions[obj_id] = len(result)
                result.append(obj)
        return result


class RemoveOperation(_ListOperation):
    """Remove every occurrence of the given objects from an array field.

    Pointer-like operands also remove elements carrying the same object id.
    """

    op_name: ClassVar[str] = "Remove"

    def __init__(self, objects: Iterable[Any]) -> None:
        super().__init__(_unique(objects))

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation([])
        if isinstance(previous, SetOperation):
            old = _as_list(previous.value)
            if old is None:
                raise InvalidOperationError("You can only remove an item from a list.")
            return SetOperation(self.apply(old, None))
        if isinstance(previous, RemoveOperation):
            return RemoveOperation(previous.objects + list(self._objects))
        raise InvalidOperationError(INVALID_AFTER_PREVIOUS)

    def apply(self, old_value: Any, key: str | None) -> Any:
        if old_value is None:
            return []
        old = _as_list(old_value)
        if old is None:
            raise InvalidOperationError("Operation is invalid after previous operation.", key=key)

        removed_ids = {
            object_id_of(obj)
            for obj in self._objects
            if is_pointer_like(obj) and object_id_of(obj) is not None
        }
        result = []
        for existing in old:
            if existing in self._objects:
                continue
            existing_id = object_id_of(existing)
            if existing_id is not None and existing_id in removed_ids:
                continue
            result.append(existing)
        return result


class RelationOperation(FieldOperation):
    """Add objects to and/or remove objects from a relation field.

    Every operand must belong to the same target class. An operation built
    from no objects at all is invalid.
    """

    op_name: ClassVar[str] = "Relation"
    ADD_TAG: ClassVar[str] = "AddRelation"
    REMOVE_TAG: ClassVar[str] = "RemoveRelation"
    BATCH_TAG: ClassVar[str] = "Batch"

    def __init__(
        self,
        to_add: Iterable[Any] = (),
        to_remove: Iterable[Any] = (),
        target_class: str | None = None,
    ) -> None:
        adds = _unique(ObjectRef.of(o) for o in to_add)
        removes = _unique(ObjectRef.of(o) for o in to_remove)

        classes = {ref.class_name for ref in adds + removes}
        if len(classes) > 1:
            raise InvalidOperationError("All objects in a relation must be of the same class.")
        if target_class is None:
            if not classes:
                raise InvalidOperationError("Cannot create a RelationOperation with no objects.")
            target_class = classes.pop()
        elif classes and target_class not in classes:
            raise InvalidOperationError("Related object must be of class " + target_class + ".")

        self._target_class = target_class
        self._to_add: tuple[ObjectRef, ...] = tuple(adds)
        self._to_remove: tuple[ObjectRef, ...] = tuple(removes)

    @classmethod
    def add(cls, objects: Iterable[Any]) -> RelationOperation:
        return cls(to_add=objects)

    @classmethod
    def remove(cls, objects: Iterable[Any]) -> RelationOperation:
        return cls(to_remove=objects)

    @property
    def target_class(self) -> str:
        return self._target_class

    @property
    def relations_to_add(self) -> list[ObjectRef]:
        return list(self._to_add)

    @property
    def relations_to_remove(self) -> list[ObjectRef]:
        return list(self._to_remove)

    def encode(self, encoder: Any) -> dict[str, Any]:
        adds = None
        removes = None
        if self._to_add:
            adds = {OP_KEY: self.ADD_TAG, "objects": [encoder.encode(r) for r in self._to_add]}
        if self._to_remove:
            removes = {
                OP_KEY: self.REMOVE_TAG,
                "objects": [encoder.encode(r) for r in self._to_remove],
            }
        if adds is not None and removes is not None:
            return {OP_KEY: self.BATCH_TAG, "ops": [adds, removes]}
        if adds is not None:
            return adds
        if removes is not None:
            return removes
        raise InvalidOperationError("A RelationOperation was created without any data.")

    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            raise InvalidOperationError("You can't modify a relation after deleting it.")
        if not isinstance(previous, RelationOperation):
            raise InvalidOperationError(INVALID_AFTER_PREVIOUS)
        if previous.target_class != self._target_class:
            raise InvalidOperationError(
                "Related object must be of class " + previous.target_class
                + ", but " + self._target_class + " was passed in."
            )

        adds = list(previous._to_add)
        removes = list(previous._to_remove)
        for ref in self._to_add:
            if ref in removes:
                removes.remove(ref)
            if ref not in adds:
                adds.append(ref)
        for ref in self._to_remove:
            if ref in adds:
                adds.remove(ref)
            if ref not in removes:
                removes.append(ref)
        return RelationOperation(adds, removes, target_class=self._target_class)

    def apply(self, old_value: Any, key: str | None) -> Any:
        if old_value is None:
            relation = Relation(self._target_class, key=key)
        elif isinstance(old_value, Relation):
            relation = old_value
            if relation.target_class is not None and relation.target_class != self._target_class:
                raise InvalidOperationError(
                    "Related object must be of class " + relation.target_class
                    + ", but " + self._target_class + " was passed in.",
                    key=key,
                )
        else:
            raise InvalidOperationError("Operation is invalid after previous operation.", key=key)

        return relation.with_added(self._to_add, self._target_class).with_removed(self._to_remove)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelationOperation):
            return NotImplemented
        return (
            self._target_class == other._target_class
            and set(self._to_add) == set(other._to_add)
            and set(self._to_remove) == set(other._to_remove)
        )

    def __hash__(self) -> int:
        return hash((self._target_class, frozenset(self._to_add), frozenset(self._to_remove)))

    def __repr__(self) -> str:
        return (
            f"RelationOperation(target_class={self._target_class!r}, "
            f"to_add={list(self._to_add)!r}, to_remove={list(self._to_remove)!r})"
        )
