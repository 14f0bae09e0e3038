"""
Encoders turn local values into JSON-compatible structures.

The base Encoder knows every value type except related objects, which it
refuses. PointerEncoder writes them as pointers.
"""

from __future__ import annotations

import base64
from datetime import datetime
from typing import Any

from ..errors import EncodingError
from ..model.refs import ObjectRef, is_pointer_like
from ..model.relation import Relation
from ..ops.base import FieldOperation
from .dates import format_date


class Encoder:
    """Base encoder for wire values."""

    def encode(self, value: Any) -> Any:
        """Encode ``value``.

        Raises:
            EncodingError: If the value has no wire representation
        """
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, FieldOperation):
            return value.encode(self)
        if isinstance(value, Relation):
            return value.encode(self)
        if isinstance(value, datetime):
            return self.encode_date(value)
        if isinstance(value, (bytes, bytearray)):
            return {
                "__type": "Bytes",
                "base64": base64.b64encode(bytes(value)).decode("ascii"),
            }
        if isinstance(value, dict):
            result = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise EncodingError(
                        f"Object keys must be strings, got {type(key).__name__}",
                        value_type=type(key).__name__,
                    )
                result[key] = self.encode(item)
            return result
        if isinstance(value, (list, tuple)):
            return [self.encode(item) for item in value]
        if isinstance(value, ObjectRef) or is_pointer_like(value):
            return self.encode_related_object(value)

        raise EncodingError(
            f"Invalid type for encoding: {type(value).__name__}",
            value_type=type(value).__name__,
        )

    def encode_date(self, value: datetime) -> dict[str, Any]:
        return {"__type": "Date", "iso": format_date(value)}

    def encode_related_object(self, value: Any) -> dict[str, Any]:
        raise EncodingError(
            "Related objects cannot be encoded here",
            value_type=type(value).__name__,
        )


class PointerEncoder(Encoder):
    """Encodes related objects as pointers.

    Args:
        allow_unsaved: Encode objects without an id as pointers with a null
            ``objectId`` instead of raising
    """

    def __init__(self, allow_unsaved: bool = False) -> None:
        self.allow_unsaved = allow_unsaved

    def encode_related_object(self, value: Any) -> dict[str, Any]:
        ref = ObjectRef.of(value)
        if ref.object_id is None and not self.allow_unsaved:
            raise EncodingError(
                "Unable to encode an association with an unsaved object",
                value_type=ref.class_name,
            )
        return ref.to_dict()
