"""
Field operation algebra.

Operations are immutable values; OperationSet coalesces them per field and
``decode_operation`` turns wire structures back into operations.
"""

from .base import OP_KEY, FieldOperation, try_merge
from .codec import OPERATION_TAGS, decode_operation, is_encoded_operation
from .operation_set import OperationSet
from .operations import (
    AddOperation,
    AddUniqueOperation,
    DeleteOperation,
    IncrementOperation,
    RelationOperation,
    RemoveOperation,
    SetOperation,
)

__all__ = [
    "OP_KEY",
    "OPERATION_TAGS",
    "AddOperation",
    "AddUniqueOperation",
    "DeleteOperation",
    "FieldOperation",
    "IncrementOperation",
    "OperationSet",
    "RelationOperation",
    "RemoveOperation",
    "SetOperation",
    "decode_operation",
    "is_encoded_operation",
    "try_merge",
]
