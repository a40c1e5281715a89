"""
Naming validation for schema identifiers.

Record, enum, fixed and field names follow the Avro naming rules; namespaces
are dot-separated sequences of such names.
"""

import re
from typing import Optional

from .errors import NamingError

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier_name(
    name: str,
    allow_dots: bool = False,
    identifier_type: str = "identifier",
) -> Optional[str]:
    """
    Validate identifier names according to Avro naming rules.

    Args:
        name: The name to validate
        allow_dots: Whether to allow dots in the name (for namespaces and full names)
        identifier_type: Type of identifier for error messages

    Returns:
        None if valid, error message string if invalid
    """
    if not isinstance(name, str):
        return f"{identifier_type} name must be a string, got {type(name).__name__}"

    if not name:
        return f"{identifier_type} name cannot be empty"

    parts = name.split(".") if allow_dots else [name]
    for part in parts:
        if not _IDENTIFIER_PATTERN.match(part):
            if allow_dots:
                allowed = "dot-separated parts of letters, digits and underscores"
            else:
                allowed = "letters, digits and underscores"
            return (
                f"{identifier_type} name '{name}' must start with a letter or "
                f"underscore and contain only {allowed}"
            )

    return None


def validate_field_name(name: str) -> None:
    """Validate record field names."""
    error = validate_identifier_name(name, identifier_type="Field")
    if error:
        raise NamingError(error)


def validate_type_name(name: str) -> None:
    """Validate names of records, enums and fixeds. A full name may carry dots."""
    error = validate_identifier_name(name, allow_dots=True, identifier_type="Type")
    if error:
        raise NamingError(error)


def validate_namespace(namespace: str) -> None:
    error = validate_identifier_name(
        namespace, allow_dots=True, identifier_type="Namespace"
    )
    if error:
        raise NamingError(error)


def validate_enum_symbol(symbol: str) -> None:
    error = validate_identifier_name(symbol, identifier_type="Enum symbol")
    if error:
        raise NamingError(error)
