"""
The canonical value model.

Canonical values are plain Python builtins, so a generic object serializer
(e.g. `pickle`) can consume them directly:

    null -> None, boolean -> bool, int/long -> int, float/double -> float,
    string/enum -> str, bytes/fixed -> bytes, array -> list,
    map -> dict[str, ...], record -> CanonicalRecord
"""

from __future__ import annotations

from typing import Any, Iterable, Union


class CanonicalRecord(dict[str, Any]):
    """
    A converted record: field name to canonical value, in schema field order.

    It compares equal to a plain dict with the same items. `name` keeps the
    full name of the record schema it was produced from, so the value can be
    matched to a union branch when converted back.
    """

    name: str | None

    def __init__(
        self,
        items: Iterable[tuple[str, Any]] = (),
        name: str | None = None,
    ):
        super().__init__(items)
        self.name = name

    def __repr__(self) -> str:
        return f"CanonicalRecord({self.name!r}, {dict.__repr__(self)})"

    def __reduce__(self) -> Any:
        return (CanonicalRecord, (list(self.items()), self.name))


CanonicalValue = Union[
    None,
    bool,
    int,
    float,
    str,
    bytes,
    list["CanonicalValue"],
    dict[str, "CanonicalValue"],
    CanonicalRecord,
]

_SCALAR_TYPES = (bool, int, float, str, bytes)


def is_canonical(value: Any) -> bool:
    """Whether a value is built only from canonical value types."""
    if value is None or type(value) in _SCALAR_TYPES:
        return True
    if type(value) is list:
        return all(is_canonical(v) for v in value)
    if type(value) in (dict, CanonicalRecord):
        return all(
            type(k) is str and is_canonical(v) for k, v in value.items()
        )
    return False
