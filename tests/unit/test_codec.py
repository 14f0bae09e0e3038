"""
Unit tests for wire encoding and decoding.

Tests cover:
- Operation decoding (every tag, Batch folding, unknown tags)
- Encoder value types and pointer rules
- Decoder value types and registry-backed pointers
- Wire date format
- Current object snapshot format (current and older layouts)
"""

from datetime import datetime, timedelta, timezone

import pytest

from objsync.codec.current_coder import CurrentObjectCoder
from objsync.codec.dates import format_date, parse_date
from objsync.codec.decoder import Decoder
from objsync.codec.encoder import Encoder, PointerEncoder
from objsync.errors import EncodingError, InvalidOperationError, OperationDecodeError
from objsync.model.refs import ObjectRef
from objsync.model.relation import Relation
from objsync.model.state import ObjectState
from objsync.object import SyncObject
from objsync.ops import (
    AddOperation,
    AddUniqueOperation,
    DeleteOperation,
    IncrementOperation,
    RelationOperation,
    RemoveOperation,
    decode_operation,
)
from objsync.registry import ObjectTypeRegistry

ALICE = ObjectRef("Player", "alice")
BOB = ObjectRef("Player", "bob")


class TestDecodeOperation:
    """Tests for decode_operation."""

    def test_delete(self):
        assert decode_operation({"__op": "Delete"}, Decoder()) == DeleteOperation()

    def test_increment(self):
        assert decode_operation({"__op": "Increment", "amount": 3}, Decoder()) == IncrementOperation(3)

    def test_list_operations(self):
        decoder = Decoder()

        assert decode_operation({"__op": "Add", "objects": [1, 2]}, decoder) == AddOperation([1, 2])
        assert decode_operation({"__op": "AddUnique", "objects": [1]}, decoder) == AddUniqueOperation([1])
        assert decode_operation({"__op": "Remove", "objects": [1]}, decoder) == RemoveOperation([1])

    def test_operands_are_decoded(self):
        encoded = {
            "__op": "Add",
            "objects": [{"__type": "Date", "iso": "2015-06-01T12:30:45.123Z"}],
        }

        operation = decode_operation(encoded, Decoder())

        assert operation.objects[0] == datetime(2015, 6, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)

    def test_add_relation(self):
        encoded = {"__op": "AddRelation", "objects": [ALICE.to_dict()]}

        assert decode_operation(encoded, Decoder()) == RelationOperation.add([ALICE])

    def test_batch_folds_relation_ops(self):
        encoded = {
            "__op": "Batch",
            "ops": [
                {"__op": "AddRelation", "objects": [ALICE.to_dict()]},
                {"__op": "RemoveRelation", "objects": [BOB.to_dict()]},
            ],
        }

        operation = decode_operation(encoded, Decoder())

        assert operation.relations_to_add == [ALICE]
        assert operation.relations_to_remove == [BOB]

    def test_encoded_batch_decodes_to_same_operation(self):
        operation = RelationOperation(to_add=[ALICE], to_remove=[BOB])

        encoded = operation.encode(PointerEncoder())

        assert decode_operation(encoded, Decoder()) == operation

    def test_empty_batch_is_invalid(self):
        with pytest.raises(InvalidOperationError):
            decode_operation({"__op": "Batch", "ops": []}, Decoder())

    def test_unknown_tag(self):
        with pytest.raises(OperationDecodeError) as exc_info:
            decode_operation({"__op": "Multiply", "amount": 2}, Decoder())
        assert exc_info.value.op_name == "Multiply"

    def test_objects_must_be_list(self):
        with pytest.raises(InvalidOperationError):
            decode_operation({"__op": "Add", "objects": 5}, Decoder())


class TestEncoder:
    """Tests for Encoder and PointerEncoder."""

    def test_primitives_pass_through(self):
        encoder = Encoder()
        for value in (None, "text", True, 3, 2.5):
            assert encoder.encode(value) == value

    def test_nested_structures(self):
        encoded = Encoder().encode({"a": [1, (2, 3)], "b": {"c": b"hi"}})

        assert encoded == {"a": [1, [2, 3]], "b": {"c": {"__type": "Bytes", "base64": "aGk="}}}

    def test_date(self):
        value = datetime(2015, 6, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

        assert Encoder().encode(value) == {"__type": "Date", "iso": "2015-06-01T12:30:45.123Z"}

    def test_non_string_keys_raise(self):
        with pytest.raises(EncodingError):
            Encoder().encode({1: "x"})

    def test_unsupported_type_raises(self):
        with pytest.raises(EncodingError) as exc_info:
            Encoder().encode(object())
        assert exc_info.value.value_type == "object"

    def test_base_encoder_refuses_related_objects(self):
        with pytest.raises(EncodingError):
            Encoder().encode(ALICE)

    def test_pointer(self):
        encoded = PointerEncoder().encode(SyncObject("Player", "alice"))

        assert encoded == {"__type": "Pointer", "className": "Player", "objectId": "alice"}

    def test_unsaved_pointer_raises(self):
        with pytest.raises(EncodingError):
            PointerEncoder().encode(SyncObject("Player"))

    def test_unsaved_pointer_allowed(self):
        encoded = PointerEncoder(allow_unsaved=True).encode(SyncObject("Player"))
        assert encoded["objectId"] is None

    def test_relation(self):
        relation = Relation("Player", known_objects=[ALICE])

        assert PointerEncoder().encode(relation) == {
            "__type": "Relation",
            "className": "Player",
            "objects": [ALICE.to_dict()],
        }


class TestDecoder:
    """Tests for Decoder."""

    def test_pointer_without_registry(self):
        assert Decoder().decode(ALICE.to_dict()) == ALICE

    def test_pointer_with_registry(self):
        decoded = Decoder(ObjectTypeRegistry()).decode(ALICE.to_dict())

        assert isinstance(decoded, SyncObject)
        assert decoded.object_id == "alice"
        assert not decoded.is_data_available

    def test_bytes(self):
        assert Decoder().decode({"__type": "Bytes", "base64": "aGk="}) == b"hi"

    def test_relation(self):
        decoded = Decoder().decode(
            {"__type": "Relation", "className": "Player", "objects": [ALICE.to_dict()]}
        )

        assert decoded == Relation("Player", known_objects=[ALICE])

    def test_embedded_object(self):
        decoded = Decoder(ObjectTypeRegistry()).decode(
            {"__type": "Object", "className": "Player", "objectId": "alice", "name": "Alice"}
        )

        assert decoded.object_id == "alice"
        assert decoded.get("name") == "Alice"

    def test_unknown_type_is_none(self):
        assert Decoder().decode({"__type": "GeoPolygon", "coordinates": []}) is None

    def test_nested(self):
        decoded = Decoder().decode({"list": [{"x": {"__type": "Bytes", "base64": ""}}]})
        assert decoded == {"list": [{"x": b""}]}

    def test_decode_state(self):
        state = Decoder().decode_state(
            {"objectId": "s1", "createdAt": "2015-06-01T00:00:00.000Z", "score": 3},
            class_name="GameScore",
        )

        assert state.class_name == "GameScore"
        assert state.object_id == "s1"
        assert state.created_at == datetime(2015, 6, 1, tzinfo=timezone.utc)
        assert state.data == {"score": 3}

    def test_decode_state_requires_class_name(self):
        with pytest.raises(ValueError):
            Decoder().decode_state({"objectId": "s1"})


class TestDates:
    """Tests for the wire date format."""

    def test_format_truncates_to_milliseconds(self):
        value = datetime(2015, 6, 1, 12, 30, 45, 999999, tzinfo=timezone.utc)
        assert format_date(value) == "2015-06-01T12:30:45.999Z"

    def test_format_naive_is_utc(self):
        assert format_date(datetime(2015, 6, 1)) == "2015-06-01T00:00:00.000Z"

    def test_format_converts_to_utc(self):
        value = datetime(2015, 6, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_date(value) == "2015-06-01T00:00:00.000Z"

    def test_parse(self):
        parsed = parse_date("2015-06-01T12:30:45.123Z")

        assert parsed == datetime(2015, 6, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)
        assert parsed.tzinfo is not None

    @pytest.mark.parametrize(
        "text,microsecond",
        [
            ("2015-06-01T12:30:45.1Z", 100000),
            ("2015-06-01T12:30:45.12Z", 120000),
            ("2015-06-01T12:30:45.1234Z", 123400),
            ("2015-06-01T12:30:45.123456789Z", 123456),
            ("2015-06-01T12:30:45Z", 0),
        ],
    )
    def test_parse_any_fraction_precision(self, text, microsecond):
        assert parse_date(text) == datetime(2015, 6, 1, 12, 30, 45, microsecond, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_date("yesterday")


class TestCurrentObjectCoder:
    """Tests for the current object snapshot format."""

    def test_encode_layout(self):
        state = ObjectState(
            class_name="_User",
            object_id="u1",
            created_at=datetime(2015, 6, 1, tzinfo=timezone.utc),
            data={"username": "alice"},
        )

        encoded = CurrentObjectCoder().encode(state, PointerEncoder())

        assert encoded == {
            "classname": "_User",
            "data": {
                "username": "alice",
                "createdAt": "2015-06-01T00:00:00.000Z",
                "objectId": "u1",
            },
        }

    def test_decode_current_layout(self):
        state = CurrentObjectCoder().decode(
            {
                "classname": "_User",
                "data": {
                    "objectId": "u1",
                    "updatedAt": "2015-06-02T00:00:00.000Z",
                    "username": "alice",
                },
            },
            Decoder(),
        )

        assert state.class_name == "_User"
        assert state.object_id == "u1"
        assert state.updated_at == datetime(2015, 6, 2, tzinfo=timezone.utc)
        assert state.data == {"username": "alice"}
        assert state.is_complete

    def test_decode_older_layout(self):
        state = CurrentObjectCoder().decode(
            {
                "id": "u1",
                "created_at": "2015-06-01T00:00:00.000Z",
                "pointers": {"team": ["Team", "t1"]},
                "data": {"username": "alice"},
            },
            Decoder(),
            class_name="_User",
        )

        assert state.object_id == "u1"
        assert state.created_at == datetime(2015, 6, 1, tzinfo=timezone.utc)
        assert state.data == {"team": ObjectRef("Team", "t1"), "username": "alice"}

    def test_decode_without_class_name(self):
        with pytest.raises(ValueError):
            CurrentObjectCoder().decode({"data": {}}, Decoder())
