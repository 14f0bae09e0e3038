"""
Base type for field operations.

A field operation is an immutable description of one pending mutation to a
single field. Every operation can:
- encode itself to a transport-neutral structure tagged with ``__op``
- merge with the previously pending operation on the same field
- apply itself to an old field value to estimate the new value

Invariants:
    - merge_with_previous and apply are pure (no I/O, no mutation of inputs)
    - B.merge_with_previous(A).apply(v) == B.apply(A.apply(v)) for every
      pair where B is a valid successor of A
    - Incompatible combinations raise InvalidOperationError

How to change safely:
    - New variants must be added to the decoder in ops/codec.py
    - Never change an existing wire tag
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ..errors import InvalidOperationError

OP_KEY = "__op"


class FieldOperation(ABC):
    """A pending mutation to a single field."""

    op_name: ClassVar[str]

    @abstractmethod
    def encode(self, encoder: Any) -> Any:
        """Encode to a JSON-compatible structure.

        Args:
            encoder: Encoder used for nested values (pointers, dates, ...)
        """
        ...

    @abstractmethod
    def merge_with_previous(self, previous: FieldOperation | None) -> FieldOperation:
        """Combine with the operation that was pending before this one.

        Args:
            previous: Earlier pending operation on the same field, or None

        Returns:
            A single operation equivalent to ``previous`` followed by ``self``

        Raises:
            InvalidOperationError: If the two operations cannot be combined
        """
        ...

    @abstractmethod
    def apply(self, old_value: Any, key: str | None) -> Any:
        """Estimate the field value after this operation.

        Args:
            old_value: Current field value (None when absent)
            key: Field name

        Returns:
            New field value

        Raises:
            InvalidOperationError: If the old value has an incompatible shape
        """
        ...


def try_merge(
    operation: FieldOperation,
    previous: FieldOperation | None,
) -> tuple[FieldOperation | None, InvalidOperationError | None]:
    """Merge without raising.

    Returns:
        Tuple of (merged operation, None) on success or (None, error) when
        the combination is invalid.
    """
    try:
        return operation.merge_with_previous(previous), None
    except InvalidOperationError as e:
        return None, e
