"""
Disk format for the current object.

Layout:
    {
        "classname": "<class name>",
        "data": {
            <encoded fields>,
            "objectId": "...",
            "createdAt": "<wire date>",
            "updatedAt": "<wire date>"
        }
    }

Decoding also accepts the older top-level keys ``id``, ``created_at``,
``updated_at`` and ``pointers`` (field -> [class name, object id]).
"""

from __future__ import annotations

from typing import Any

from ..model.state import ObjectState
from .dates import format_date, parse_date
from .decoder import KEY_CREATED_AT, KEY_OBJECT_ID, KEY_UPDATED_AT, Decoder
from .encoder import Encoder

KEY_CLASS_NAME = "classname"
KEY_DATA = "data"

KEY_OLD_OBJECT_ID = "id"
KEY_OLD_CREATED_AT = "created_at"
KEY_OLD_UPDATED_AT = "updated_at"
KEY_OLD_POINTERS = "pointers"


class CurrentObjectCoder:
    """Encodes and decodes object state snapshots for local persistence."""

    def encode(self, state: ObjectState, encoder: Encoder) -> dict[str, Any]:
        data = {key: encoder.encode(value) for key, value in state.data.items()}
        if state.created_at is not None:
            data[KEY_CREATED_AT] = format_date(state.created_at)
        if state.updated_at is not None:
            data[KEY_UPDATED_AT] = format_date(state.updated_at)
        if state.object_id is not None:
            data[KEY_OBJECT_ID] = state.object_id
        return {KEY_DATA: data, KEY_CLASS_NAME: state.class_name}

    def decode(
        self,
        json_data: dict[str, Any],
        decoder: Decoder,
        class_name: str | None = None,
    ) -> ObjectState:
        """Decode a snapshot.

        Args:
            json_data: Snapshot produced by ``encode`` (or the older format)
            decoder: Decoder for field values
            class_name: Class name to use when the snapshot does not name one

        Raises:
            ValueError: If no class name is available
        """
        name = json_data.get(KEY_CLASS_NAME) or class_name
        if name is None:
            raise ValueError("Snapshot has no class name")
        state = ObjectState(class_name=name)

        if KEY_OLD_OBJECT_ID in json_data:
            state.object_id = json_data[KEY_OLD_OBJECT_ID]
        if json_data.get(KEY_OLD_CREATED_AT):
            state.created_at = parse_date(json_data[KEY_OLD_CREATED_AT])
        if json_data.get(KEY_OLD_UPDATED_AT):
            state.updated_at = parse_date(json_data[KEY_OLD_UPDATED_AT])
        for key, pointer in (json_data.get(KEY_OLD_POINTERS) or {}).items():
            state.data[key] = decoder.decode_pointer(pointer[0], pointer[1])

        for key, value in (json_data.get(KEY_DATA) or {}).items():
            if key == KEY_OBJECT_ID:
                state.object_id = value
            elif key == KEY_CREATED_AT:
                state.created_at = parse_date(value)
            elif key == KEY_UPDATED_AT:
                state.updated_at = parse_date(value)
            else:
                state.data[key] = decoder.decode(value)

        state.is_complete = True
        return state
