import dataclasses
import enum
from typing import Any

import numpy as np
import pytest

from recordbridge.convert import resolve_union_branch, to_canonical
from recordbridge.errors import AmbiguousUnionBranch, NoMatchingUnionBranch
from recordbridge.schema import UnionSchema, parse_schema
from recordbridge.setting import ConverterSettings
from recordbridge.shape import ByteBuffer, UnionBranch
from recordbridge.value import CanonicalRecord

OPTIONAL_STRING = parse_schema(["null", "string"])

POINT = {
    "type": "record",
    "name": "Point",
    "namespace": "geo",
    "fields": [{"name": "x", "type": "int"}, {"name": "y", "type": "int"}],
}
SIZE = {
    "type": "record",
    "name": "Size",
    "namespace": "geo",
    "fields": [{"name": "x", "type": "int"}, {"name": "y", "type": "int"}],
}
TWO_RECORDS = parse_schema(["null", POINT, SIZE])


@dataclasses.dataclass
class Size:
    x: int
    y: int


@dataclasses.dataclass
class Unnamed:
    x: int
    y: int


class Suit(enum.Enum):
    SPADES = "s"
    HEARTS = "h"


def _union(document: Any) -> UnionSchema:
    schema = parse_schema(document)
    assert isinstance(schema, UnionSchema)
    return schema


def test_optional_string() -> None:
    assert to_canonical(None, OPTIONAL_STRING) is None
    assert to_canonical("x", OPTIONAL_STRING) == "x"


def test_optional_string_no_match() -> None:
    with pytest.raises(NoMatchingUnionBranch) as exc_info:
        to_canonical(42, OPTIONAL_STRING)
    assert exc_info.value.branches == ["null", "string"]
    assert exc_info.value.actual_type_name == "int"


def test_none_selects_null_branch() -> None:
    union = _union(["string", "null"])
    assert resolve_union_branch(None, union) == (1, union.branches[1])


def test_none_without_null_branch() -> None:
    with pytest.raises(NoMatchingUnionBranch):
        resolve_union_branch(None, _union(["string", "int"]))


def test_first_structural_match() -> None:
    union = _union(["null", "boolean", "string", "bytes", {"type": "array", "items": "int"}])
    assert resolve_union_branch(True, union)[0] == 1
    assert resolve_union_branch("x", union)[0] == 2
    assert resolve_union_branch(b"x", union)[0] == 3
    assert resolve_union_branch(ByteBuffer(b"xyz", 1), union)[0] == 3
    assert resolve_union_branch([1, 2], union)[0] == 4
    assert resolve_union_branch(np.array([1, 2]), union)[0] == 4


def test_bool_is_not_a_number() -> None:
    with pytest.raises(NoMatchingUnionBranch):
        resolve_union_branch(True, _union(["int", "string"]))


def test_numeric_branches_pick_first() -> None:
    union = _union(["null", "int", "long", "double"])
    assert resolve_union_branch(5, union)[0] == 1
    assert resolve_union_branch(np.int64(5), union)[0] == 1
    assert resolve_union_branch(1.5, union)[0] == 3
    assert to_canonical(5, union) == 5


def test_int_widens_to_float_branch() -> None:
    union = _union(["null", "string", "double"])
    assert resolve_union_branch(5, union)[0] == 2


def test_enum_branch_requires_symbol() -> None:
    union = _union(
        ["null", {"type": "enum", "name": "Suit", "symbols": ["SPADES", "HEARTS"]}]
    )
    assert to_canonical("HEARTS", union) == "HEARTS"
    with pytest.raises(NoMatchingUnionBranch):
        to_canonical("CLUBS", union)


def test_enum_member_prefers_enum_branch_by_name() -> None:
    union = _union(
        ["string", {"type": "enum", "name": "Suit", "symbols": ["SPADES", "HEARTS"]}]
    )
    assert resolve_union_branch(Suit.HEARTS, union)[0] == 1
    assert resolve_union_branch("HEARTS", union)[0] == 0


def test_fixed_branch_selected_by_size() -> None:
    union = _union(
        [
            {"type": "fixed", "name": "Short", "size": 2},
            {"type": "fixed", "name": "Long", "size": 4},
            "bytes",
        ]
    )
    assert resolve_union_branch(b"ab", union)[0] == 0
    assert resolve_union_branch(b"abcd", union)[0] == 1
    assert resolve_union_branch(b"abc", union)[0] == 2
    assert resolve_union_branch(ByteBuffer(b"..abcd..", 2, 6), union)[0] == 1


def test_single_record_branch() -> None:
    union = _union(["null", POINT])
    result = to_canonical({"x": 1, "y": 2}, union)
    assert isinstance(result, CanonicalRecord)
    assert result == {"x": 1, "y": 2}
    assert result.name == "geo.Point"


def test_two_record_branches_are_ambiguous() -> None:
    with pytest.raises(AmbiguousUnionBranch) as exc_info:
        to_canonical({"x": 1, "y": 2}, TWO_RECORDS)
    assert exc_info.value.candidates == ["record geo.Point", "record geo.Size"]


def test_map_and_record_branches_are_ambiguous() -> None:
    union = _union(["null", {"type": "map", "values": "int"}, POINT])
    with pytest.raises(AmbiguousUnionBranch):
        to_canonical({"x": 1, "y": 2}, union)


def test_type_key_disambiguates_dict_record() -> None:
    result = to_canonical({"-type": "geo.Size", "x": 1, "y": 2}, TWO_RECORDS)
    assert result.name == "geo.Size"
    assert result == {"x": 1, "y": 2}
    result = to_canonical({"-type": "Point", "x": 1, "y": 2}, TWO_RECORDS)
    assert result.name == "geo.Point"


def test_class_name_disambiguates_record_object() -> None:
    result = to_canonical(Size(x=1, y=2), TWO_RECORDS)
    assert result.name == "geo.Size"
    with pytest.raises(AmbiguousUnionBranch):
        to_canonical(Unnamed(x=1, y=2), TWO_RECORDS)


def test_canonical_record_name_disambiguates() -> None:
    value = CanonicalRecord([("x", 1), ("y", 2)], name="geo.Size")
    assert to_canonical(value, TWO_RECORDS).name == "geo.Size"


def test_explicit_branch_index() -> None:
    result = to_canonical(UnionBranch(2, {"x": 1, "y": 2}), TWO_RECORDS)
    assert result.name == "geo.Size"
    assert to_canonical(UnionBranch(0, None), TWO_RECORDS) is None


def test_explicit_branch_index_out_of_range() -> None:
    with pytest.raises(NoMatchingUnionBranch):
        to_canonical(UnionBranch(3, {"x": 1, "y": 2}), TWO_RECORDS)


def test_tie_break_first() -> None:
    settings = ConverterSettings(union_tie_break="first")
    result = to_canonical({"x": 1, "y": 2}, TWO_RECORDS, settings)
    assert result.name == "geo.Point"


def test_union_inside_array_reports_path() -> None:
    schema = parse_schema({"type": "array", "items": ["null", "string"]})
    with pytest.raises(NoMatchingUnionBranch) as exc_info:
        to_canonical(["a", 1], schema)
    assert exc_info.value.field_path == "[*]"


INNER = {"type": "record", "name": "Inner", "fields": [{"name": "x", "type": "int"}]}


def test_positional_record_inside_union() -> None:
    outer = parse_schema(
        {
            "type": "record",
            "name": "Outer",
            "fields": [{"name": "inner", "type": ["null", INNER]}],
        }
    )
    result = to_canonical(((5,),), outer)
    assert result == {"inner": {"x": 5}}
    assert result["inner"].name == "Inner"
    assert to_canonical(([5],), outer) == {"inner": {"x": 5}}


def test_positional_record_needs_one_element_per_field() -> None:
    union = _union(["null", {"type": "array", "items": "int"}, INNER])
    assert resolve_union_branch((1, 2), union)[0] == 1
    with pytest.raises(AmbiguousUnionBranch):
        resolve_union_branch((1,), union)
    with pytest.raises(NoMatchingUnionBranch):
        resolve_union_branch((1, 2), _union(["null", INNER]))
