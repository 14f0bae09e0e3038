"""
Wire decoding for field operations.

The set of operation tags is closed: decoding is one dispatch over the
``__op`` tag. An unknown tag means the server speaks a newer protocol than
this client and raises OperationDecodeError.

Invariants:
    - ``Batch`` entries are replayed in order and folded into one net
      operation with merge_with_previous
    - Operand values are decoded with the caller's decoder
"""

from __future__ import annotations

from typing import Any

from ..errors import InvalidOperationError, OperationDecodeError
from .base import OP_KEY, FieldOperation
from .operations import (
    AddOperation,
    AddUniqueOperation,
    DeleteOperation,
    IncrementOperation,
    RelationOperation,
    RemoveOperation,
)

OPERATION_TAGS = (
    DeleteOperation.op_name,
    IncrementOperation.op_name,
    AddOperation.op_name,
    AddUniqueOperation.op_name,
    RemoveOperation.op_name,
    RelationOperation.ADD_TAG,
    RelationOperation.REMOVE_TAG,
    RelationOperation.BATCH_TAG,
)


def is_encoded_operation(value: Any) -> bool:
    """Whether ``value`` is a wire-encoded operation."""
    return isinstance(value, dict) and OP_KEY in value


def decode_operation(encoded: dict[str, Any], decoder: Any) -> FieldOperation:
    """Decode one wire-encoded operation.

    Args:
        encoded: Mapping carrying an ``__op`` tag
        decoder: Decoder for operand values

    Returns:
        The decoded operation

    Raises:
        OperationDecodeError: If the tag is not recognized
        InvalidOperationError: If the operands are invalid for the tag
    """
    op = encoded.get(OP_KEY)

    if op == DeleteOperation.op_name:
        return DeleteOperation()
    if op == IncrementOperation.op_name:
        return IncrementOperation(decoder.decode(encoded.get("amount")))
    if op == AddOperation.op_name:
        return AddOperation(_decode_objects(encoded, decoder))
    if op == AddUniqueOperation.op_name:
        return AddUniqueOperation(_decode_objects(encoded, decoder))
    if op == RemoveOperation.op_name:
        return RemoveOperation(_decode_objects(encoded, decoder))
    if op == RelationOperation.ADD_TAG:
        return RelationOperation.add(_decode_objects(encoded, decoder))
    if op == RelationOperation.REMOVE_TAG:
        return RelationOperation.remove(_decode_objects(encoded, decoder))
    if op == RelationOperation.BATCH_TAG:
        result: FieldOperation | None = None
        for item in encoded.get("ops") or []:
            result = decode_operation(item, decoder).merge_with_previous(result)
        if result is None:
            raise InvalidOperationError("Batch operation contains no operations.")
        return result

    raise OperationDecodeError(op)


def _decode_objects(encoded: dict[str, Any], decoder: Any) -> list[Any]:
    objects = decoder.decode(encoded.get("objects"))
    if objects is None:
        return []
    if not isinstance(objects, list):
        raise InvalidOperationError(f"Operation {encoded.get(OP_KEY)} expects a list of objects.")
    return objects
