import dataclasses
import json

import pytest

from recordbridge.errors import NamingError, SchemaError, SchemaParseError
from recordbridge.schema import (
    ArraySchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    PrimitiveSchema,
    RecordSchema,
    UnionSchema,
    encode_schema,
    parse_schema,
    parse_schema_json,
    schema_label,
)

USER_SCHEMA = {
    "type": "record",
    "name": "User",
    "namespace": "com.example",
    "doc": "A user.",
    "fields": [
        {"name": "id", "type": "long"},
        {"name": "name", "type": "string", "doc": "Display name"},
        {"name": "email", "type": ["null", "string"]},
        {"name": "tags", "type": {"type": "array", "items": "string"}},
        {"name": "scores", "type": {"type": "map", "values": "double"}},
        {
            "name": "suit",
            "type": {"type": "enum", "name": "Suit", "symbols": ["SPADES", "HEARTS"]},
        },
        {"name": "hash", "type": {"type": "fixed", "name": "MD5", "size": 16}},
    ],
}


def test_primitive_names() -> None:
    for kind in ["null", "boolean", "int", "long", "float", "double", "string", "bytes"]:
        assert parse_schema(kind) == PrimitiveSchema(kind=kind)  # type: ignore[arg-type]
        assert parse_schema({"type": kind}) == PrimitiveSchema(kind=kind)  # type: ignore[arg-type]


def test_logical_type_annotation_keeps_underlying_kind() -> None:
    schema = parse_schema({"type": "long", "logicalType": "timestamp-millis"})
    assert schema == PrimitiveSchema(kind="long")


def test_invalid_primitive_kind() -> None:
    with pytest.raises(SchemaError):
        PrimitiveSchema(kind="decimal")  # type: ignore[arg-type]


def test_record_schema() -> None:
    schema = parse_schema(USER_SCHEMA)
    assert isinstance(schema, RecordSchema)
    assert schema.name == "User"
    assert schema.namespace == "com.example"
    assert schema.fullname == "com.example.User"
    assert schema.doc == "A user."
    assert schema.field_names == [
        "id",
        "name",
        "email",
        "tags",
        "scores",
        "suit",
        "hash",
    ]

    fields = {f.name: f.schema for f in schema.fields}
    assert fields["id"] == PrimitiveSchema(kind="long")
    assert fields["email"] == UnionSchema(
        branches=(PrimitiveSchema(kind="null"), PrimitiveSchema(kind="string"))
    )
    assert fields["tags"] == ArraySchema(items=PrimitiveSchema(kind="string"))
    assert fields["scores"] == MapSchema(values=PrimitiveSchema(kind="double"))
    assert fields["suit"] == EnumSchema(
        name="Suit", symbols=("SPADES", "HEARTS"), namespace="com.example"
    )
    assert fields["hash"] == FixedSchema(name="MD5", size=16, namespace="com.example")

    name_field = schema.field("name")
    assert name_field is not None
    assert name_field.doc == "Display name"
    assert schema.field("missing") is None


def test_dotted_name_sets_namespace() -> None:
    schema = parse_schema(
        {"type": "record", "name": "org.acme.Event", "namespace": "ignored", "fields": []}
    )
    assert isinstance(schema, RecordSchema)
    assert schema.name == "Event"
    assert schema.namespace == "org.acme"


def test_named_type_reference() -> None:
    schema = parse_schema(
        {
            "type": "record",
            "name": "Pair",
            "namespace": "ns",
            "fields": [
                {"name": "left", "type": {"type": "fixed", "name": "Id", "size": 4}},
                {"name": "right", "type": "Id"},
                {"name": "other", "type": "ns.Id"},
            ],
        }
    )
    assert isinstance(schema, RecordSchema)
    left, right, other = (f.schema for f in schema.fields)
    assert left is right
    assert left is other


def test_recursive_record() -> None:
    schema = parse_schema(
        {
            "type": "record",
            "name": "Node",
            "fields": [
                {"name": "value", "type": "int"},
                {"name": "next", "type": ["null", "Node"]},
            ],
        }
    )
    assert isinstance(schema, RecordSchema)
    next_schema = schema.fields[1].schema
    assert isinstance(next_schema, UnionSchema)
    assert next_schema.branches[1] is schema
    # repr and hash must not recurse forever
    assert "Node" in repr(schema)
    assert hash(schema) == hash(schema)
    assert encode_schema(schema) == {
        "type": "record",
        "name": "Node",
        "fields": [
            {"name": "value", "type": "int"},
            {"name": "next", "type": ["null", "Node"]},
        ],
    }


def test_named_types_from_previous_parse() -> None:
    address = parse_schema(
        {"type": "record", "name": "Address", "fields": [{"name": "city", "type": "string"}]}
    )
    assert isinstance(address, RecordSchema)
    person = parse_schema(
        {"type": "record", "name": "Person", "fields": [{"name": "home", "type": "Address"}]},
        named_types={"Address": address},
    )
    assert isinstance(person, RecordSchema)
    assert person.fields[0].schema is address


def test_encode_parse_is_stable() -> None:
    encoded = encode_schema(parse_schema(USER_SCHEMA))
    assert encode_schema(parse_schema(encoded)) == encoded
    assert encoded["fields"][5]["type"]["symbols"] == ["SPADES", "HEARTS"]


def test_parse_schema_json() -> None:
    schema = parse_schema_json(json.dumps(USER_SCHEMA))
    assert isinstance(schema, RecordSchema)
    assert schema.fullname == "com.example.User"


def test_descriptors_are_immutable() -> None:
    schema = parse_schema(USER_SCHEMA)
    assert isinstance(schema, RecordSchema)
    with pytest.raises(dataclasses.FrozenInstanceError):
        schema.name = "Other"  # type: ignore[misc]
    with pytest.raises(dataclasses.FrozenInstanceError):
        schema.fields[0].name = "other"  # type: ignore[misc]
    assert isinstance(schema.fields, tuple)


def test_descriptors_are_hashable() -> None:
    schemas = {
        PrimitiveSchema(kind="string"),
        PrimitiveSchema(kind="string"),
        ArraySchema(items=PrimitiveSchema(kind="int")),
        ArraySchema(items=PrimitiveSchema(kind="int")),
    }
    assert len(schemas) == 2


@pytest.mark.parametrize(
    "document",
    [
        "decimal",
        "UnknownRef",
        42,
        {"name": "NoType"},
        {"type": "record", "fields": []},
        {"type": "record", "name": "R"},
        {"type": "enum", "name": "E"},
        {"type": "fixed", "name": "F"},
        {"type": "array"},
        {"type": "map"},
        {"type": "record", "name": "R", "fields": [{"name": "a"}]},
        [
            {"type": "fixed", "name": "F", "size": 1},
            {"type": "fixed", "name": "F", "size": 2},
        ],
    ],
)
def test_invalid_documents(document: object) -> None:
    with pytest.raises(SchemaError):
        parse_schema(document)


def test_invalid_json() -> None:
    with pytest.raises(SchemaParseError, match="not valid JSON"):
        parse_schema_json("{not json")


def test_invalid_names() -> None:
    with pytest.raises(NamingError):
        parse_schema({"type": "record", "name": "1Bad", "fields": []})
    with pytest.raises(NamingError):
        parse_schema(
            {"type": "record", "name": "R", "fields": [{"name": "a-b", "type": "int"}]}
        )
    with pytest.raises(NamingError):
        parse_schema({"type": "enum", "name": "E", "symbols": ["ok", "not ok"]})


def test_duplicate_fields() -> None:
    with pytest.raises(SchemaError, match="Duplicate field"):
        parse_schema(
            {
                "type": "record",
                "name": "R",
                "fields": [{"name": "a", "type": "int"}, {"name": "a", "type": "long"}],
            }
        )


def test_duplicate_enum_symbols() -> None:
    with pytest.raises(SchemaError, match="Duplicate symbols"):
        EnumSchema(name="E", symbols=("A", "A"))


def test_invalid_fixed_size() -> None:
    with pytest.raises(SchemaError):
        FixedSchema(name="F", size=-1)


def test_union_rules() -> None:
    with pytest.raises(SchemaError, match="Duplicate branch"):
        parse_schema(["string", "string"])
    with pytest.raises(SchemaError, match="other unions"):
        UnionSchema(
            branches=(UnionSchema(branches=(PrimitiveSchema(kind="null"),)),)
        )
    # Two named branches of one kind are fine when their names differ.
    union = parse_schema(
        [
            {"type": "record", "name": "A", "fields": []},
            {"type": "record", "name": "B", "fields": []},
        ]
    )
    assert isinstance(union, UnionSchema)
    assert union.null_index is None
    assert parse_schema(["string", "null"]).null_index == 1  # type: ignore[union-attr]


def test_schema_label() -> None:
    schema = parse_schema(USER_SCHEMA)
    assert schema_label(schema) == "record com.example.User"
    assert schema_label(ArraySchema(items=MapSchema(values=PrimitiveSchema(kind="int")))) == (
        "array<map<int>>"
    )
    assert schema_label(PrimitiveSchema(kind="bytes")) == "bytes"
