from __future__ import annotations

import pytest

from snakebind.errors import MarshalError
from snakebind.schema import (
    BOOLEAN,
    BYTES,
    FLOAT,
    INTEGER,
    NONE,
    TEXT,
    UNKNOWN,
    GenericType,
    OptionalType,
    UnionType,
    mapping_of,
    sequence_of,
)
from snakebind.typed import decode_value, encode_value


def test_scalars():
    assert encode_value(INTEGER, 3) == 3
    assert encode_value(TEXT, "x") == "x"
    assert encode_value(BOOLEAN, False) is False
    assert encode_value(NONE, None) is None
    assert encode_value(BYTES, bytearray(b"ab")) == b"ab"
    v = encode_value(FLOAT, 2)
    assert v == 2.0 and isinstance(v, float)


def test_bool_is_not_an_integer():
    with pytest.raises(MarshalError, match="expected int, got bool"):
        encode_value(INTEGER, True)
    with pytest.raises(MarshalError):
        encode_value(FLOAT, False)


def test_containers_are_normalized():
    assert encode_value(sequence_of(INTEGER), (1, 2)) == [1, 2]
    assert encode_value(GenericType("tuple", (INTEGER, TEXT)), [1, "a"]) == (1, "a")
    assert encode_value(GenericType("set", (INTEGER,)), frozenset({1})) == {1}
    assert decode_value(mapping_of(TEXT, FLOAT), {"a": 1}) == {"a": 1.0}


def test_error_paths_name_the_offending_element():
    with pytest.raises(MarshalError, match=r"values\[1\]: expected int, got str"):
        encode_value(sequence_of(INTEGER), [1, "2"], where="values")
    with pytest.raises(MarshalError, match=r"return\['b'\]: expected int"):
        decode_value(mapping_of(TEXT, INTEGER), {"a": 1, "b": None}, where="return")
    with pytest.raises(MarshalError, match="expected a tuple of 2 item"):
        encode_value(GenericType("tuple", (INTEGER, INTEGER)), (1,))


def test_optional_and_union():
    assert encode_value(OptionalType(INTEGER), None) is None
    assert encode_value(OptionalType(INTEGER), 5) == 5
    u = UnionType((INTEGER, TEXT))
    assert encode_value(u, "s") == "s"
    assert encode_value(u, 1) == 1
    with pytest.raises(MarshalError, match=r"expected int \| str, got float"):
        encode_value(u, 1.5)


def test_unknown_passes_values_through():
    obj = object()
    assert encode_value(UNKNOWN, obj) is obj
    assert decode_value(sequence_of(UNKNOWN), [obj]) == [obj]


def test_string_is_not_a_sequence():
    with pytest.raises(MarshalError, match="expected list\\[str\\], got str"):
        encode_value(sequence_of(TEXT), "abc")
