"""
Errors raised while building schemas and converting values.

Conversion errors carry the path of the offending value inside the record
(e.g. `.user.tags[*]`) so a failure can be diagnosed without inspecting the
value again.
"""

from __future__ import annotations


class SchemaError(ValueError):
    """Base class for invalid schema descriptors."""


class SchemaParseError(SchemaError):
    """Raised when a schema document cannot be decoded."""


class NamingError(SchemaError):
    """Exception raised for naming convention violations."""


class ConversionError(ValueError):
    """Base class for failures converting a single record."""

    field_path: str

    def __init__(self, message: str, field_path: str = ""):
        self.field_path = field_path
        where = f" at `{field_path}`" if field_path else ""
        super().__init__(f"{message}{where}")


class UnknownSchemaKind(ConversionError):
    def __init__(self, kind: object, field_path: str = ""):
        self.kind = kind
        super().__init__(f"Unknown schema kind {kind!r}", field_path)


class UnrecognizedBytesRepresentation(ConversionError):
    def __init__(self, actual_type_name: str, field_path: str = ""):
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Cannot read bytes from a value of type `{actual_type_name}`",
            field_path,
        )


class UnrecognizedArrayRepresentation(ConversionError):
    def __init__(self, actual_type_name: str, field_path: str = ""):
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Cannot read an array from a value of type `{actual_type_name}`",
            field_path,
        )


class UnrecognizedMapKey(ConversionError):
    def __init__(self, actual_type_name: str, field_path: str = ""):
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Map key of type `{actual_type_name}` has no textual form", field_path
        )


class MissingField(ConversionError):
    def __init__(self, field_name: str, actual_type_name: str, field_path: str = ""):
        self.field_name = field_name
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Field '{field_name}' is missing in value of type `{actual_type_name}`",
            field_path,
        )


class FixedLengthMismatch(ConversionError):
    def __init__(self, expected: int, actual: int, field_path: str = ""):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Fixed length mismatch: expected {expected} bytes, got {actual}",
            field_path,
        )


class AmbiguousUnionBranch(ConversionError):
    def __init__(
        self, candidates: list[str], actual_type_name: str, field_path: str = ""
    ):
        self.candidates = candidates
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Value of type `{actual_type_name}` matches several union branches "
            f"{candidates} and carries no branch name or index",
            field_path,
        )


class NoMatchingUnionBranch(ConversionError):
    def __init__(self, branches: list[str], actual_type_name: str, field_path: str = ""):
        self.branches = branches
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Value of type `{actual_type_name}` matches none of the union branches "
            f"{branches}",
            field_path,
        )


class SchemaNotProvided(ConversionError):
    def __init__(self, side: str):
        self.side = side
        super().__init__(
            f"No schema for the {side}: neither configured nor embedded in the value"
        )


class UnknownEnumSymbol(ConversionError):
    def __init__(self, symbol: str, enum_name: str, field_path: str = ""):
        self.symbol = symbol
        self.enum_name = enum_name
        super().__init__(f"'{symbol}' is not a symbol of enum {enum_name}", field_path)


class IncompatibleValue(ConversionError):
    def __init__(self, kind: str, actual_type_name: str, field_path: str = ""):
        self.kind = kind
        self.actual_type_name = actual_type_name
        super().__init__(
            f"Value of type `{actual_type_name}` is not compatible with {kind}",
            field_path,
        )
