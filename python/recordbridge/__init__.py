"""
Schema-driven conversion between Avro-style record values and canonical
Python values.
"""

from .convert import from_canonical, resolve_union_branch, to_canonical
from .converter import AvroWrapper, Converter, IndexKey, RecordConverter
from .errors import (
    AmbiguousUnionBranch,
    ConversionError,
    FixedLengthMismatch,
    IncompatibleValue,
    MissingField,
    NamingError,
    NoMatchingUnionBranch,
    SchemaError,
    SchemaNotProvided,
    SchemaParseError,
    UnknownEnumSymbol,
    UnknownSchemaKind,
    UnrecognizedArrayRepresentation,
    UnrecognizedBytesRepresentation,
    UnrecognizedMapKey,
)
from .partition import PartitionStats, convert_partition
from .schema import (
    ArraySchema,
    EnumSchema,
    FieldSchema,
    FixedSchema,
    MapSchema,
    PrimitiveSchema,
    RecordSchema,
    Schema,
    UnionSchema,
    encode_schema,
    parse_schema,
    parse_schema_json,
)
from .setting import ConverterSettings
from .shape import ByteBuffer, ExternalShape, UnionBranch, classify_shape
from .value import CanonicalRecord, CanonicalValue, is_canonical

__all__ = [
    # Schema
    "ArraySchema",
    "EnumSchema",
    "FieldSchema",
    "FixedSchema",
    "MapSchema",
    "PrimitiveSchema",
    "RecordSchema",
    "Schema",
    "UnionSchema",
    "encode_schema",
    "parse_schema",
    "parse_schema_json",
    # Values
    "CanonicalRecord",
    "CanonicalValue",
    "is_canonical",
    "ByteBuffer",
    "ExternalShape",
    "UnionBranch",
    "classify_shape",
    # Conversion
    "from_canonical",
    "resolve_union_branch",
    "to_canonical",
    "AvroWrapper",
    "Converter",
    "IndexKey",
    "RecordConverter",
    "ConverterSettings",
    "PartitionStats",
    "convert_partition",
    # Errors
    "AmbiguousUnionBranch",
    "ConversionError",
    "FixedLengthMismatch",
    "IncompatibleValue",
    "MissingField",
    "NamingError",
    "NoMatchingUnionBranch",
    "SchemaError",
    "SchemaNotProvided",
    "SchemaParseError",
    "UnknownEnumSymbol",
    "UnknownSchemaKind",
    "UnrecognizedArrayRepresentation",
    "UnrecognizedBytesRepresentation",
    "UnrecognizedMapKey",
]
