"""
Decoder turning wire JSON back into local values.

Recognized structures:
- ``{"__op": ...}``: field operation (see ops/codec.py)
- ``{"__type": "Date" | "Bytes" | "Pointer" | "Relation" | "Object"}``
- any other mapping or list: decoded recursively

An unknown ``__type`` decodes to None, so fields added by a newer server do
not break older clients.
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from ..model.refs import ObjectRef
from ..model.relation import Relation
from ..model.state import ObjectState
from ..ops.base import OP_KEY
from ..ops.codec import decode_operation
from .dates import parse_date

if TYPE_CHECKING:
    from ..registry import ObjectTypeRegistry

KEY_CLASS_NAME = "className"
KEY_OBJECT_ID = "objectId"
KEY_CREATED_AT = "createdAt"
KEY_UPDATED_AT = "updatedAt"


class Decoder:
    """Decodes wire values.

    Args:
        registry: Type registry used to instantiate pointers and objects.
            Without one, pointers decode to ObjectRef and full objects to
            ObjectState.
    """

    def __init__(self, registry: ObjectTypeRegistry | None = None) -> None:
        self.registry = registry

    def decode(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self.decode(item) for item in value]
        if not isinstance(value, dict):
            return value

        if OP_KEY in value:
            return decode_operation(value, self)

        type_name = value.get("__type")
        if type_name is None:
            return {key: self.decode(item) for key, item in value.items()}

        if type_name == "Date":
            return parse_date(value["iso"])
        if type_name == "Bytes":
            return base64.b64decode(value["base64"])
        if type_name == "Pointer":
            return self.decode_pointer(value[KEY_CLASS_NAME], value.get(KEY_OBJECT_ID))
        if type_name == "Relation":
            return Relation(
                target_class=value.get(KEY_CLASS_NAME),
                known_objects=[ObjectRef.of(self.decode(o)) for o in value.get("objects") or []],
            )
        if type_name == "Object":
            fields = {k: v for k, v in value.items() if k != "__type"}
            state = self.decode_state(fields)
            if self.registry is not None:
                return self.registry.from_state(state)
            return state

        return None

    def decode_pointer(self, class_name: str, object_id: str | None) -> Any:
        if self.registry is not None:
            return self.registry.create_without_data(class_name, object_id)
        return ObjectRef(class_name, object_id)

    def decode_state(self, data: dict[str, Any], class_name: str | None = None) -> ObjectState:
        """Decode a server object payload into an ObjectState.

        Args:
            data: Server payload (``objectId``, ``createdAt``, ... plus fields)
            class_name: Class name when the payload does not carry one
        """
        fields = dict(data)
        name = fields.pop(KEY_CLASS_NAME, None) or class_name
        if name is None:
            raise ValueError("Object payload has no class name")
        state = ObjectState(
            class_name=name,
            object_id=fields.pop(KEY_OBJECT_ID, None),
            created_at=self._decode_date(fields.pop(KEY_CREATED_AT, None)),
            updated_at=self._decode_date(fields.pop(KEY_UPDATED_AT, None)),
        )
        state.data = {key: self.decode(item) for key, item in fields.items()}
        return state

    def _decode_date(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return parse_date(value)
        return self.decode(value)
