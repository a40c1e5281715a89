"""
Utilities to convert between external record values and canonical values.
"""

from __future__ import annotations

import collections.abc
import os
import warnings
from typing import Any

import numpy as np

from .errors import (
    AmbiguousUnionBranch,
    FixedLengthMismatch,
    IncompatibleValue,
    MissingField,
    NoMatchingUnionBranch,
    UnknownEnumSymbol,
    UnknownSchemaKind,
    UnrecognizedArrayRepresentation,
    UnrecognizedBytesRepresentation,
    UnrecognizedMapKey,
)
from .schema import (
    COMPOSITE_KINDS,
    NAMED_KINDS,
    ArraySchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    RecordSchema,
    Schema,
    UnionSchema,
    matches_name,
    schema_label,
)
from .setting import DEFAULT_SETTINGS, ConverterSettings
from .shape import (
    ARRAY_SHAPES,
    BYTES_SHAPES,
    MISSING,
    TYPE_NAME_KEY,
    ExternalShape,
    UnionBranch,
    carried_type_name,
    classify_shape,
    describe_as_text,
    describe_map_key,
    read_window,
    record_accessor_for,
    type_name_of,
    window_length,
)
from .value import CanonicalRecord, CanonicalValue


class ChildFieldPath:
    """Context manager to append a field to field_path on enter and pop it on exit."""

    _field_path: list[str]
    _field_name: str

    def __init__(self, field_path: list[str], field_name: str):
        self._field_path: list[str] = field_path
        self._field_name = field_name

    def __enter__(self) -> ChildFieldPath:
        self._field_path.append(self._field_name)
        return self

    def __exit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        self._field_path.pop()


def _path(field_path: list[str]) -> str:
    return "".join(field_path)


_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)

# Warnings are attributed to the first frame outside the conversion modules.
_WARNING_SKIP_FILES = tuple(
    os.path.join(os.path.dirname(__file__), name)
    for name in ("convert.py", "converter.py", "partition.py")
)


def to_canonical(
    value: Any, schema: Schema, settings: ConverterSettings | None = None
) -> CanonicalValue:
    """
    Convert an external value to a canonical value, following its schema.

    Args:
        value: The value as materialized by a record deserializer.
        schema: The schema of the value.
        settings: Optional settings; the defaults apply when omitted.

    Returns:
        A canonical value sharing no storage with `value`.
    """
    return _convert([], value, schema, settings or DEFAULT_SETTINGS)


def _convert(
    field_path: list[str], value: Any, schema: Schema, settings: ConverterSettings
) -> CanonicalValue:
    # Absence is independent of the schema.
    if value is None:
        return None

    kind = getattr(schema, "kind", None)
    if kind in ("null", "boolean", "int", "long", "float", "double"):
        return _unpack_scalar(value)
    if kind in ("string", "enum"):
        return _unpack_text(field_path, value, schema)
    if kind == "bytes":
        return _unpack_bytes(field_path, value)
    if kind == "fixed":
        return _unpack_fixed(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "array":
        return _unpack_array(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "map":
        return _unpack_map(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "record":
        return _unpack_record(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "union":
        return _unpack_union(field_path, value, schema, settings)  # type: ignore[arg-type]
    raise UnknownSchemaKind(kind, _path(field_path))


def _unpack_scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _unpack_text(field_path: list[str], value: Any, schema: Schema) -> str:
    try:
        return describe_as_text(value)
    except UnicodeDecodeError as e:
        raise IncompatibleValue(
            schema_label(schema), type_name_of(value), _path(field_path)
        ) from e


def _read_bytes(field_path: list[str], value: Any) -> bytes:
    """Copy the readable content of a bytes-like value into a new bytes object."""
    shape = classify_shape(value)
    if shape is ExternalShape.BUFFER:
        # Only the window is content: never copy the whole backing array.
        return read_window(value)
    if shape is ExternalShape.FLAT_BYTES:
        return memoryview(value).tobytes()
    raise UnrecognizedBytesRepresentation(type_name_of(value), _path(field_path))


def _unpack_bytes(field_path: list[str], value: Any) -> bytes:
    return _read_bytes(field_path, value)


def _fixed_content(value: Any) -> Any:
    """Generated fixed classes keep their content in a `bytes` attribute."""
    if classify_shape(value) is ExternalShape.RECORD and hasattr(value, "bytes"):
        content = value.bytes
        return content() if callable(content) else content
    return value


def _unpack_fixed(
    field_path: list[str],
    value: Any,
    schema: FixedSchema,
    settings: ConverterSettings,
) -> bytes:
    data = _read_bytes(field_path, _fixed_content(value))
    if settings.validate_fixed_length and len(data) != schema.size:
        raise FixedLengthMismatch(schema.size, len(data), _path(field_path))
    return data


def _unpack_array(
    field_path: list[str],
    value: Any,
    schema: ArraySchema,
    settings: ConverterSettings,
) -> list[Any]:
    shape = classify_shape(value)
    if shape is ExternalShape.PRIMITIVE_ARRAY:
        # Elements are already final scalars.
        return value.tolist()  # type: ignore[no-any-return]
    if shape in (ExternalShape.OBJECT_ARRAY, ExternalShape.ITERABLE):
        with ChildFieldPath(field_path, "[*]"):
            return [_convert(field_path, v, schema.items, settings) for v in value]
    raise UnrecognizedArrayRepresentation(type_name_of(value), _path(field_path))


def _unpack_map(
    field_path: list[str],
    value: Any,
    schema: MapSchema,
    settings: ConverterSettings,
) -> dict[str, Any]:
    if classify_shape(value) is not ExternalShape.ASSOCIATION:
        raise IncompatibleValue(
            schema_label(schema), type_name_of(value), _path(field_path)
        )
    result: dict[str, Any] = {}
    for k, v in value.items():
        key = describe_map_key(k)
        if key is None:
            raise UnrecognizedMapKey(type_name_of(k), _path(field_path))
        if key in result:
            warnings.warn(
                f"Duplicate map key '{key}' at `{_path(field_path)}`; "
                f"the last value wins",
                UserWarning,
                skip_file_prefixes=_WARNING_SKIP_FILES,
            )
        with ChildFieldPath(field_path, f"[{key!r}]"):
            result[key] = _convert(field_path, v, schema.values, settings)
    return result


def _unpack_record(
    field_path: list[str],
    value: Any,
    schema: RecordSchema,
    settings: ConverterSettings,
) -> CanonicalRecord:
    accessor = record_accessor_for(value)
    if accessor is None:
        raise IncompatibleValue(
            schema_label(schema), type_name_of(value), _path(field_path)
        )
    items: list[tuple[str, Any]] = []
    for index, field in enumerate(schema.fields):
        field_value = accessor.field_value(value, field, index)
        if field_value is MISSING:
            raise MissingField(field.name, type_name_of(value), _path(field_path))
        with ChildFieldPath(field_path, f".{field.name}"):
            items.append(
                (field.name, _convert(field_path, field_value, field.schema, settings))
            )
    return CanonicalRecord(items, name=schema.fullname)


def _unpack_union(
    field_path: list[str],
    value: Any,
    schema: UnionSchema,
    settings: ConverterSettings,
) -> CanonicalValue:
    _, branch = resolve_union_branch(value, schema, settings, field_path)
    if isinstance(value, UnionBranch):
        value = value.value
    return _convert(field_path, value, branch, settings)


# ========================= Union resolution =========================


def _byte_length(value: Any) -> int | None:
    shape = classify_shape(value)
    if shape is ExternalShape.BUFFER:
        return window_length(value)
    if shape is ExternalShape.FLAT_BYTES:
        return len(value)
    return None


def _branch_matches(
    value: Any, shape: ExternalShape, branch: Schema, positional_records: bool
) -> bool:
    """Whether a value of the given shape structurally fits a union branch."""
    kind = branch.kind
    if shape is ExternalShape.BOOLEAN:
        return kind == "boolean"
    if shape is ExternalShape.INTEGER:
        return kind in ("int", "long", "float", "double")
    if shape is ExternalShape.FLOATING:
        return kind in ("float", "double")
    if shape is ExternalShape.TEXT:
        if kind == "enum":
            return describe_as_text(value) in branch.symbols  # type: ignore[union-attr]
        return kind == "string"
    if shape in BYTES_SHAPES:
        if kind == "fixed":
            return _byte_length(value) == branch.size  # type: ignore[union-attr]
        return kind == "bytes"
    if shape in ARRAY_SHAPES:
        if kind == "record":
            # Positional records: one element per field.
            return (
                positional_records
                and isinstance(value, (list, tuple))
                and len(value) == len(branch.fields)  # type: ignore[union-attr]
            )
        return kind == "array"
    if shape is ExternalShape.ASSOCIATION:
        return kind in ("map", "record")
    if shape is ExternalShape.RECORD:
        if kind == "fixed":
            content = _fixed_content(value)
            return content is not value and _byte_length(content) == branch.size  # type: ignore[union-attr]
        return kind == "record"
    return False


def resolve_union_branch(
    value: Any,
    schema: UnionSchema,
    settings: ConverterSettings | None = None,
    field_path: list[str] | None = None,
    *,
    positional_records: bool = True,
) -> tuple[int, Schema]:
    """
    Pick the union branch a value belongs to.

    In priority order: an explicit `UnionBranch` index; the null branch for
    None; the non-null branches that structurally fit the value's shape,
    narrowed by the schema name the value carries (if any). Several fitting
    scalar branches resolve to the first one since they all produce the same
    canonical shape. Several fitting composite branches are ambiguous, unless
    the `union_tie_break` setting is "first".

    A list or tuple with one element per field fits a record branch too,
    unless `positional_records` is off.

    Returns:
        The branch index and the branch schema.
    """
    settings = settings or DEFAULT_SETTINGS
    path = _path(field_path or [])
    branches = schema.branches
    labels = [schema_label(b) for b in branches]

    if isinstance(value, UnionBranch):
        if not 0 <= value.index < len(branches):
            raise NoMatchingUnionBranch(labels, f"branch index {value.index}", path)
        return value.index, branches[value.index]

    if value is None:
        null_index = schema.null_index
        if null_index is None:
            raise NoMatchingUnionBranch(labels, "NoneType", path)
        return null_index, branches[null_index]

    shape = classify_shape(value)
    candidates = [
        (i, branch)
        for i, branch in enumerate(branches)
        if branch.kind != "null"
        and _branch_matches(value, shape, branch, positional_records)
    ]

    name = carried_type_name(value)
    if name is not None:
        for i, branch in candidates:
            if branch.kind in NAMED_KINDS and matches_name(branch, name):  # type: ignore[arg-type]
                return i, branch

    if not candidates:
        raise NoMatchingUnionBranch(labels, type_name_of(value), path)
    if len(candidates) == 1:
        return candidates[0]
    if settings.union_tie_break == "first" or all(
        branch.kind not in COMPOSITE_KINDS for _, branch in candidates
    ):
        return candidates[0]
    raise AmbiguousUnionBranch(
        [schema_label(b) for _, b in candidates], type_name_of(value), path
    )


# ========================= Canonical to external =========================


def from_canonical(
    value: Any, schema: Schema, settings: ConverterSettings | None = None
) -> Any:
    """
    Convert a canonical value back to the generic datum a record writer takes.

    Records become dicts keyed by field name in schema order, arrays lists,
    maps dicts, bytes and fixed fresh bytes objects, enums their symbol.
    A record written into a union with several record or map branches
    carries its full name under the `-type` key.
    """
    return _pack([], value, schema, settings or DEFAULT_SETTINGS)


def _incompatible(field_path: list[str], schema: Schema, value: Any) -> IncompatibleValue:
    return IncompatibleValue(schema_label(schema), type_name_of(value), _path(field_path))


def _pack(
    field_path: list[str], value: Any, schema: Schema, settings: ConverterSettings
) -> Any:
    if value is None:
        return None

    value = _unpack_scalar(value)
    kind = getattr(schema, "kind", None)
    if kind == "null":
        raise _incompatible(field_path, schema, value)
    if kind == "boolean":
        if not isinstance(value, bool):
            raise _incompatible(field_path, schema, value)
        return value
    if kind in ("int", "long"):
        return _pack_integer(field_path, value, schema)
    if kind in ("float", "double"):
        return _pack_floating(field_path, value, schema)
    if kind == "string":
        if not isinstance(value, str):
            raise _incompatible(field_path, schema, value)
        return value
    if kind == "enum":
        return _pack_enum(field_path, value, schema)  # type: ignore[arg-type]
    if kind == "bytes":
        return _read_bytes(field_path, value)
    if kind == "fixed":
        return _pack_fixed(field_path, value, schema)  # type: ignore[arg-type]
    if kind == "array":
        return _pack_array(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "map":
        return _pack_map(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "record":
        return _pack_record(field_path, value, schema, settings)  # type: ignore[arg-type]
    if kind == "union":
        return _pack_union(field_path, value, schema, settings)  # type: ignore[arg-type]
    raise UnknownSchemaKind(kind, _path(field_path))


def _pack_integer(field_path: list[str], value: Any, schema: Schema) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _incompatible(field_path, schema, value)
    low, high = _INT32_RANGE if schema.kind == "int" else _INT64_RANGE
    if not low <= value <= high:
        raise _incompatible(field_path, schema, value)
    return value


def _pack_floating(field_path: list[str], value: Any, schema: Schema) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _incompatible(field_path, schema, value)
    try:
        return float(value)
    except OverflowError as e:
        # Integers beyond the double range.
        raise _incompatible(field_path, schema, value) from e


def _pack_enum(field_path: list[str], value: Any, schema: EnumSchema) -> str:
    if not isinstance(value, str):
        raise _incompatible(field_path, schema, value)
    if value not in schema.symbols:
        raise UnknownEnumSymbol(value, schema.fullname, _path(field_path))
    return value


def _pack_fixed(field_path: list[str], value: Any, schema: FixedSchema) -> bytes:
    data = _read_bytes(field_path, value)
    if len(data) != schema.size:
        raise FixedLengthMismatch(schema.size, len(data), _path(field_path))
    return data


def _pack_array(
    field_path: list[str],
    value: Any,
    schema: ArraySchema,
    settings: ConverterSettings,
) -> list[Any]:
    if classify_shape(value) not in ARRAY_SHAPES:
        raise UnrecognizedArrayRepresentation(type_name_of(value), _path(field_path))
    with ChildFieldPath(field_path, "[*]"):
        return [_pack(field_path, v, schema.items, settings) for v in value]


def _pack_map(
    field_path: list[str],
    value: Any,
    schema: MapSchema,
    settings: ConverterSettings,
) -> dict[str, Any]:
    if not isinstance(value, collections.abc.Mapping):
        raise _incompatible(field_path, schema, value)
    result: dict[str, Any] = {}
    for k, v in value.items():
        if not isinstance(k, str):
            raise UnrecognizedMapKey(type_name_of(k), _path(field_path))
        with ChildFieldPath(field_path, f"[{k!r}]"):
            result[k] = _pack(field_path, v, schema.values, settings)
    return result


def _pack_record(
    field_path: list[str],
    value: Any,
    schema: RecordSchema,
    settings: ConverterSettings,
) -> dict[str, Any]:
    if not isinstance(value, collections.abc.Mapping):
        raise _incompatible(field_path, schema, value)
    record: dict[str, Any] = {}
    for field in schema.fields:
        if field.name not in value:
            raise MissingField(field.name, type_name_of(value), _path(field_path))
        with ChildFieldPath(field_path, f".{field.name}"):
            record[field.name] = _pack(
                field_path, value[field.name], field.schema, settings
            )
    return record


def _pack_union(
    field_path: list[str],
    value: Any,
    schema: UnionSchema,
    settings: ConverterSettings,
) -> Any:
    # Canonical lists are always arrays.
    _, branch = resolve_union_branch(
        value, schema, settings, field_path, positional_records=False
    )
    if isinstance(value, UnionBranch):
        value = value.value
    packed = _pack(field_path, value, branch, settings)
    if isinstance(branch, RecordSchema) and packed is not None:
        associative = [b for b in schema.branches if b.kind in ("record", "map")]
        if len(associative) > 1:
            packed[TYPE_NAME_KEY] = branch.fullname
    return packed
