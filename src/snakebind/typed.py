"""Value marshaling between typed callers and script functions.

Generated bindings call `encode_value` on every typed argument and
`decode_value` on every typed result. Both validate the value against its
descriptor and normalize containers (sequences become lists, tuples stay
tuples, mappings become dicts, sets become sets). The unknown type passes
values through untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import MarshalError
from .schema import GenericType, OptionalType, ScalarType, TypeDescriptor, UnionType, UnknownType


def encode_value(t: TypeDescriptor, v: Any, *, where: str = "argument") -> Any:
    """Convert a caller value into the value handed to the script function."""
    return _convert(t, v, where)


def decode_value(t: TypeDescriptor, v: Any, *, where: str = "result") -> Any:
    """Convert a value returned by the script function into the declared type."""
    return _convert(t, v, where)


def _mismatch(t: TypeDescriptor, v: Any, path: str) -> MarshalError:
    return MarshalError(f"{path}: expected {t.annotation()}, got {type(v).__name__}")


def _convert(t: TypeDescriptor, v: Any, path: str) -> Any:
    if isinstance(t, UnknownType):
        return v

    if isinstance(t, OptionalType):
        if v is None:
            return None
        return _convert(t.inner, v, path)

    if isinstance(t, UnionType):
        for alt in t.alternatives:
            try:
                return _convert(alt, v, path)
            except MarshalError:
                continue
        raise _mismatch(t, v, path)

    if isinstance(t, ScalarType):
        return _convert_scalar(t, v, path)

    if isinstance(t, GenericType):
        return _convert_generic(t, v, path)

    raise MarshalError(f"{path}: unsupported type descriptor {t!r}")


def _convert_scalar(t: ScalarType, v: Any, path: str) -> Any:
    name = t.name
    if name == "integer":
        if isinstance(v, int) and not isinstance(v, bool):
            return v
    elif name == "float":
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return float(v)
    elif name == "text":
        if isinstance(v, str):
            return v
    elif name == "boolean":
        if isinstance(v, bool):
            return v
    elif name == "none":
        if v is None:
            return None
    elif name == "bytes":
        if isinstance(v, (bytes, bytearray, memoryview)):
            return bytes(v)
    raise _mismatch(t, v, path)


def _convert_generic(t: GenericType, v: Any, path: str) -> Any:
    if t.container == "sequence":
        if not isinstance(v, (list, tuple)):
            raise _mismatch(t, v, path)
        item = t.arguments[0]
        return [_convert(item, x, f"{path}[{i}]") for i, x in enumerate(v)]

    if t.container == "tuple":
        if not isinstance(v, (list, tuple)):
            raise _mismatch(t, v, path)
        if len(v) != len(t.arguments):
            raise MarshalError(
                f"{path}: expected a tuple of {len(t.arguments)} item(s), got {len(v)}"
            )
        return tuple(
            _convert(item, x, f"{path}[{i}]")
            for i, (item, x) in enumerate(zip(t.arguments, v, strict=True))
        )

    if t.container == "mapping":
        if not isinstance(v, Mapping):
            raise _mismatch(t, v, path)
        kt, vt = t.arguments
        return {
            _convert(kt, k, f"{path} key {k!r}"): _convert(vt, x, f"{path}[{k!r}]")
            for k, x in v.items()
        }

    if t.container == "set":
        if not isinstance(v, (set, frozenset)):
            raise _mismatch(t, v, path)
        item = t.arguments[0]
        return {_convert(item, x, f"{path} item") for x in v}

    raise MarshalError(f"{path}: unsupported container {t.container!r}")
