"""
Schema descriptors for Avro-style records.

Descriptors are immutable once `parse_schema()` returns them, so a single
descriptor can be shared by conversions running concurrently.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Literal, Mapping

from .errors import SchemaError, SchemaParseError
from .validation import (
    validate_enum_symbol,
    validate_field_name,
    validate_namespace,
    validate_type_name,
)

PrimitiveKind = Literal[
    "null",
    "boolean",
    "int",
    "long",
    "float",
    "double",
    "string",
    "bytes",
]

SchemaKind = Literal[
    "null",
    "boolean",
    "int",
    "long",
    "float",
    "double",
    "string",
    "bytes",
    "fixed",
    "enum",
    "array",
    "map",
    "record",
    "union",
]

PRIMITIVE_KINDS: tuple[str, ...] = (
    "null",
    "boolean",
    "int",
    "long",
    "float",
    "double",
    "string",
    "bytes",
)
NAMED_KINDS: tuple[str, ...] = ("fixed", "enum", "record")
COMPOSITE_KINDS: tuple[str, ...] = ("array", "map", "record")
SCHEMA_KINDS: tuple[str, ...] = PRIMITIVE_KINDS + (
    "fixed",
    "enum",
    "array",
    "map",
    "record",
    "union",
)


def _make_fullname(name: str, namespace: str | None) -> str:
    return f"{namespace}.{name}" if namespace else name


def _split_fullname(
    name: str, namespace: str | None
) -> tuple[str, str | None]:
    if "." in name:
        namespace, _, name = name.rpartition(".")
    return name, namespace or None


@dataclasses.dataclass(frozen=True)
class PrimitiveSchema:
    kind: PrimitiveKind

    def __post_init__(self) -> None:
        if self.kind not in PRIMITIVE_KINDS:
            raise SchemaError(f"Not a primitive schema kind: {self.kind!r}")

    def encode(self, seen: set[str] | None = None) -> Any:
        return self.kind


@dataclasses.dataclass(frozen=True)
class FixedSchema:
    name: str
    size: int
    namespace: str | None = None
    kind: Literal["fixed"] = "fixed"

    def __post_init__(self) -> None:
        if not isinstance(self.size, int) or self.size < 0:
            raise SchemaError(f"Invalid size for fixed {self.name}: {self.size!r}")

    @property
    def fullname(self) -> str:
        return _make_fullname(self.name, self.namespace)

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        if self.fullname in seen:
            return self.fullname
        seen.add(self.fullname)
        result: dict[str, Any] = {"type": "fixed", "name": self.name, "size": self.size}
        if self.namespace:
            result["namespace"] = self.namespace
        return result


@dataclasses.dataclass(frozen=True)
class EnumSchema:
    name: str
    symbols: tuple[str, ...]
    namespace: str | None = None
    kind: Literal["enum"] = "enum"

    def __post_init__(self) -> None:
        if len(set(self.symbols)) != len(self.symbols):
            raise SchemaError(f"Duplicate symbols in enum {self.name}: {self.symbols}")

    @property
    def fullname(self) -> str:
        return _make_fullname(self.name, self.namespace)

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        if self.fullname in seen:
            return self.fullname
        seen.add(self.fullname)
        result: dict[str, Any] = {
            "type": "enum",
            "name": self.name,
            "symbols": list(self.symbols),
        }
        if self.namespace:
            result["namespace"] = self.namespace
        return result


@dataclasses.dataclass(frozen=True)
class ArraySchema:
    items: "Schema"
    kind: Literal["array"] = "array"

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        return {"type": "array", "items": self.items.encode(seen)}


@dataclasses.dataclass(frozen=True)
class MapSchema:
    values: "Schema"
    kind: Literal["map"] = "map"

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        return {"type": "map", "values": self.values.encode(seen)}


@dataclasses.dataclass(frozen=True)
class FieldSchema:
    name: str
    schema: "Schema"
    doc: str | None = None

    def encode(self, seen: set[str] | None = None) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "type": self.schema.encode(seen)}
        if self.doc is not None:
            result["doc"] = self.doc
        return result


# Records compare and hash by identity: a record may reach itself through its
# fields, so structural equality and repr would not terminate.
@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class RecordSchema:
    name: str
    fields: tuple[FieldSchema, ...]
    namespace: str | None = None
    doc: str | None = None
    kind: Literal["record"] = "record"

    def __post_init__(self) -> None:
        self._check_fields(self.fields)

    def _check_fields(self, fields: tuple[FieldSchema, ...]) -> None:
        names = [f.name for f in fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaError(
                f"Duplicate field names in record {self.fullname}: {duplicates}"
            )

    def _bind_fields(self, fields: tuple[FieldSchema, ...]) -> None:
        """Set the fields of a record whose fields may refer back to it. Only
        used while the record is being parsed."""
        self._check_fields(fields)
        object.__setattr__(self, "fields", fields)

    @property
    def fullname(self) -> str:
        return _make_fullname(self.name, self.namespace)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldSchema | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __repr__(self) -> str:
        return f"RecordSchema(name={self.fullname!r}, fields={self.field_names!r})"

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        if self.fullname in seen:
            return self.fullname
        seen.add(self.fullname)
        result: dict[str, Any] = {"type": "record", "name": self.name}
        if self.namespace:
            result["namespace"] = self.namespace
        if self.doc is not None:
            result["doc"] = self.doc
        result["fields"] = [f.encode(seen) for f in self.fields]
        return result


@dataclasses.dataclass(frozen=True)
class UnionSchema:
    branches: tuple["Schema", ...]
    kind: Literal["union"] = "union"

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for branch in self.branches:
            if branch.kind == "union":
                raise SchemaError("Unions may not immediately contain other unions")
            key = branch.fullname if branch.kind in NAMED_KINDS else branch.kind  # type: ignore[union-attr]
            if key in seen:
                raise SchemaError(f"Duplicate branch in union: {key}")
            seen.add(key)

    @property
    def null_index(self) -> int | None:
        for i, branch in enumerate(self.branches):
            if branch.kind == "null":
                return i
        return None

    def encode(self, seen: set[str] | None = None) -> Any:
        seen = set() if seen is None else seen
        return [branch.encode(seen) for branch in self.branches]


Schema = (
    PrimitiveSchema
    | FixedSchema
    | EnumSchema
    | ArraySchema
    | MapSchema
    | RecordSchema
    | UnionSchema
)

NamedSchema = FixedSchema | EnumSchema | RecordSchema


def schema_label(schema: Any) -> str:
    """A short human-readable label of a schema for error messages."""
    kind = getattr(schema, "kind", None)
    if kind in NAMED_KINDS:
        return f"{kind} {schema.fullname}"
    if kind == "array":
        return f"array<{schema_label(schema.items)}>"
    if kind == "map":
        return f"map<{schema_label(schema.values)}>"
    return str(kind)


def matches_name(schema: NamedSchema, name: str) -> bool:
    """Whether `name` (short or full) names the given schema."""
    return name == schema.fullname or name == schema.name


class _SchemaParser:
    """Decodes Avro JSON schema documents, resolving named type references."""

    _names: dict[str, NamedSchema]

    def __init__(self, names: Mapping[str, NamedSchema] | None = None):
        self._names = dict(names) if names else {}

    def parse(self, obj: Any, namespace: str | None = None) -> Schema:
        if isinstance(obj, str):
            return self._parse_name(obj, namespace)
        if isinstance(obj, list):
            return UnionSchema(
                branches=tuple(self.parse(branch, namespace) for branch in obj)
            )
        if isinstance(obj, Mapping):
            return self._parse_complex(obj, namespace)
        raise SchemaParseError(f"Unsupported schema document: {obj!r}")

    def _parse_name(self, name: str, namespace: str | None) -> Schema:
        if name in PRIMITIVE_KINDS:
            return PrimitiveSchema(kind=name)  # type: ignore[arg-type]
        candidates = [name] if "." in name else [_make_fullname(name, namespace), name]
        for candidate in candidates:
            named = self._names.get(candidate)
            if named is not None:
                return named
        raise SchemaParseError(f"Unknown type name: {name!r}")

    def _register(self, schema: NamedSchema) -> None:
        if schema.fullname in self._names:
            raise SchemaParseError(f"Type {schema.fullname} is defined twice")
        self._names[schema.fullname] = schema

    def _named(
        self, obj: Mapping[str, Any], namespace: str | None
    ) -> tuple[str, str | None]:
        if "name" not in obj:
            raise SchemaParseError(f"Named type without a name: {dict(obj)!r}")
        if "namespace" in obj and obj["namespace"]:
            validate_namespace(obj["namespace"])
            namespace = obj["namespace"]
        validate_type_name(obj["name"])
        return _split_fullname(obj["name"], namespace)

    def _parse_complex(self, obj: Mapping[str, Any], namespace: str | None) -> Schema:
        type_name = obj.get("type")
        if type_name is None:
            raise SchemaParseError(f"Schema without a type: {dict(obj)!r}")
        if not isinstance(type_name, str):
            # e.g. {"type": ["null", "string"]}
            return self.parse(type_name, namespace)

        if type_name in ("record", "error"):
            name, namespace = self._named(obj, namespace)
            record = RecordSchema(
                name=name, fields=(), namespace=namespace, doc=obj.get("doc")
            )
            self._register(record)
            raw_fields = obj.get("fields")
            if not isinstance(raw_fields, list):
                raise SchemaParseError(f"Record {record.fullname} needs a field list")
            record._bind_fields(
                tuple(self._parse_field(f, namespace) for f in raw_fields)
            )
            return record

        if type_name == "enum":
            name, namespace = self._named(obj, namespace)
            symbols = obj.get("symbols")
            if not isinstance(symbols, list):
                raise SchemaParseError(f"Enum {name} needs a symbol list")
            for symbol in symbols:
                validate_enum_symbol(symbol)
            enum_schema = EnumSchema(
                name=name, symbols=tuple(symbols), namespace=namespace
            )
            self._register(enum_schema)
            return enum_schema

        if type_name == "fixed":
            name, namespace = self._named(obj, namespace)
            if "size" not in obj:
                raise SchemaParseError(f"Fixed {name} needs a size")
            fixed = FixedSchema(name=name, size=obj["size"], namespace=namespace)
            self._register(fixed)
            return fixed

        if type_name == "array":
            if "items" not in obj:
                raise SchemaParseError("Array schema needs `items`")
            return ArraySchema(items=self.parse(obj["items"], namespace))

        if type_name == "map":
            if "values" not in obj:
                raise SchemaParseError("Map schema needs `values`")
            return MapSchema(values=self.parse(obj["values"], namespace))

        # {"type": "string"}, {"type": "long", "logicalType": ...}, {"type": "Ref"}
        return self._parse_name(type_name, namespace)

    def _parse_field(self, obj: Any, namespace: str | None) -> FieldSchema:
        if not isinstance(obj, Mapping) or "name" not in obj or "type" not in obj:
            raise SchemaParseError(f"Invalid field definition: {obj!r}")
        validate_field_name(obj["name"])
        return FieldSchema(
            name=obj["name"],
            schema=self.parse(obj["type"], namespace),
            doc=obj.get("doc"),
        )


def parse_schema(
    obj: Any, named_types: Mapping[str, NamedSchema] | None = None
) -> Schema:
    """
    Decode an Avro schema document (already loaded from JSON) into a descriptor.

    Args:
        obj: A type name, a union list or a complex type object.
        named_types: Previously parsed named types that `obj` may refer to, by full name.
    """
    return _SchemaParser(named_types).parse(obj)


def parse_schema_json(text: str) -> Schema:
    """Decode an Avro schema from its JSON text."""
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaParseError(f"Schema is not valid JSON: {e}") from e
    return parse_schema(obj)


def encode_schema(schema: Schema) -> Any:
    """Encode a descriptor back to its Avro JSON form."""
    return schema.encode(set())
