"""
Runtime shapes of external values.

Deserializers materialize the same schema type in different ways: a record
may be a dict, a generated class instance or a plain tuple; bytes may be a
`bytes` object or a window over a larger buffer; an array may be a list or a
numpy array. `classify_shape()` maps a value to one `ExternalShape`, checking
in a fixed priority order, so every unpacker sees the same classification.
"""

from __future__ import annotations

import array
import collections.abc
import dataclasses
from enum import Enum
from typing import Any, Protocol

import numpy as np

from .schema import FieldSchema
from .value import CanonicalRecord

# Key a generic dict record may carry to name its record type, as accepted
# by Avro union writers.
TYPE_NAME_KEY: str = "-type"


class ExternalShape(Enum):
    """The closed set of external representation capabilities."""

    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOATING = "floating"
    TEXT = "text"
    BUFFER = "buffer"
    FLAT_BYTES = "flat_bytes"
    PRIMITIVE_ARRAY = "primitive_array"
    OBJECT_ARRAY = "object_array"
    ITERABLE = "iterable"
    ASSOCIATION = "association"
    RECORD = "record"
    UNRECOGNIZED = "unrecognized"


BYTES_SHAPES = (ExternalShape.BUFFER, ExternalShape.FLAT_BYTES)
ARRAY_SHAPES = (
    ExternalShape.PRIMITIVE_ARRAY,
    ExternalShape.OBJECT_ARRAY,
    ExternalShape.ITERABLE,
)


@dataclasses.dataclass
class ByteBuffer:
    """
    A readable window `[position, limit)` over a larger backing array.

    Only the window is content; bytes outside it are unread or stale.
    Positions count bytes, whatever the item size of the backing array.
    """

    array: bytes | bytearray | memoryview
    position: int = 0
    limit: int | None = None

    def __post_init__(self) -> None:
        size = memoryview(self.array).nbytes
        if self.limit is None:
            self.limit = size
        if not 0 <= self.position <= self.limit <= size:
            raise ValueError(
                f"Invalid buffer window [{self.position}, {self.limit}) "
                f"over {size} bytes"
            )

    def remaining(self) -> int:
        return window_length(self)


def read_window(buffer: Any) -> bytes:
    """Copy the readable window of a buffer-like value into a new bytes object."""
    if isinstance(buffer, memoryview):
        return buffer.tobytes()
    return memoryview(buffer.array).cast("B")[buffer.position : buffer.limit].tobytes()


def window_length(buffer: Any) -> int:
    if isinstance(buffer, memoryview):
        return buffer.nbytes
    return int(buffer.limit - buffer.position)


@dataclasses.dataclass(frozen=True)
class UnionBranch:
    """A value tagged with the index of the union branch it belongs to."""

    index: int
    value: Any


def is_namedtuple_type(t: type) -> bool:
    return isinstance(t, type) and issubclass(t, tuple) and hasattr(t, "_fields")


_BACKING_TYPES = (bytes, bytearray, memoryview, array.array, np.ndarray)


def _is_offset(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_buffer_like(value: Any) -> bool:
    if isinstance(value, (memoryview, ByteBuffer)):
        return True
    # Other window types qualify only with plain integer offsets over bytes.
    return (
        isinstance(getattr(value, "array", None), _BACKING_TYPES)
        and _is_offset(getattr(value, "position", None))
        and _is_offset(getattr(value, "limit", None))
    )


def classify_shape(value: Any) -> ExternalShape:
    """Classify a value into exactly one external shape."""
    if value is None:
        return ExternalShape.NULL
    # Enum before int: IntEnum members are symbols, not numbers.
    if isinstance(value, (str, Enum)):
        return ExternalShape.TEXT
    if isinstance(value, (bool, np.bool_)):
        return ExternalShape.BOOLEAN
    if isinstance(value, (int, np.integer)):
        return ExternalShape.INTEGER
    if isinstance(value, (float, np.floating)):
        return ExternalShape.FLOATING
    if _is_buffer_like(value):
        return ExternalShape.BUFFER
    if isinstance(value, (bytes, bytearray)):
        return ExternalShape.FLAT_BYTES
    if isinstance(value, np.ndarray):
        if value.dtype == np.dtype(object):
            return ExternalShape.OBJECT_ARRAY
        return ExternalShape.PRIMITIVE_ARRAY
    if isinstance(value, array.array):
        return ExternalShape.PRIMITIVE_ARRAY
    if isinstance(value, collections.abc.Mapping):
        return ExternalShape.ASSOCIATION
    if is_namedtuple_type(type(value)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        return ExternalShape.RECORD
    if isinstance(value, collections.abc.Iterable):
        return ExternalShape.ITERABLE
    if hasattr(value, "__dict__") or hasattr(type(value), "__slots__"):
        if not isinstance(value, type) and not callable(value):
            return ExternalShape.RECORD
    return ExternalShape.UNRECOGNIZED


def type_name_of(value: Any) -> str:
    t = type(value)
    return t.__name__ if t.__module__ == "builtins" else f"{t.__module__}.{t.__qualname__}"


def carried_type_name(value: Any) -> str | None:
    """
    The schema name a value carries about itself, if any: the `-type` key of a
    generic dict record, the record name of a converted record, or the class
    name of an enum member or a generated record object.
    """
    if isinstance(value, CanonicalRecord):
        return value.name
    if isinstance(value, collections.abc.Mapping):
        name = value.get(TYPE_NAME_KEY)
        return name if isinstance(name, str) else None
    if isinstance(value, Enum):
        return type(value).__name__
    if classify_shape(value) is ExternalShape.RECORD:
        return type(value).__name__
    return None


def describe_map_key(key: Any) -> str | None:
    """The textual form of a map key, or None if it has none."""
    if isinstance(key, Enum):
        return key.name
    if isinstance(key, str):
        return key
    if isinstance(key, (bytes, bytearray, memoryview)):
        try:
            return bytes(key).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(key, (bool, int, float, complex, np.number, np.bool_)):
        return None
    if key is not None and type(key).__str__ is not object.__str__:
        return str(key)
    return None


def describe_as_text(value: Any) -> str:
    """The textual form of a string or enum value."""
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


# ========================= Record field access =========================


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class RecordAccessor(Protocol):
    """Reads one declared field from an external record value."""

    def field_value(self, record: Any, field: FieldSchema, index: int) -> Any:
        """Return the field's value, or `MISSING` if the record has none."""
        ...


class MappingRecordAccessor:
    """Generic records: a mapping from field name to value."""

    def field_value(self, record: Any, field: FieldSchema, index: int) -> Any:
        return record.get(field.name, MISSING)


class PositionalRecordAccessor:
    """Records stored as a plain sequence of field values in schema order."""

    def field_value(self, record: Any, field: FieldSchema, index: int) -> Any:
        if index < len(record):
            return record[index]
        return MISSING


class AttributeRecordAccessor:
    """Generated classes, dataclasses and NamedTuples: one attribute per field."""

    def field_value(self, record: Any, field: FieldSchema, index: int) -> Any:
        return getattr(record, field.name, MISSING)


MAPPING_ACCESSOR = MappingRecordAccessor()
POSITIONAL_ACCESSOR = PositionalRecordAccessor()
ATTRIBUTE_ACCESSOR = AttributeRecordAccessor()


def record_accessor_for(value: Any) -> RecordAccessor | None:
    """Pick the field access style for a record value; None if it is not record-like."""
    shape = classify_shape(value)
    if shape is ExternalShape.ASSOCIATION:
        return MAPPING_ACCESSOR
    if shape is ExternalShape.RECORD:
        return ATTRIBUTE_ACCESSOR
    if isinstance(value, (list, tuple)):
        return POSITIONAL_ACCESSOR
    return None
