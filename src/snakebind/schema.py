"""Type descriptors: the closed set of types a binding can declare.

Descriptors are plain values. The mapper creates them from annotations, the
model builder attaches them to parameters and results, and generated code
embeds them (via `expr()`) to drive marshaling at call time.
"""

from __future__ import annotations

from dataclasses import dataclass

SCALAR_ANNOTATIONS: dict[str, str] = {
    "integer": "int",
    "float": "float",
    "text": "str",
    "boolean": "bool",
    "none": "None",
    "bytes": "bytes",
}

# container -> number of type arguments (None: one or more).
CONTAINER_ARITY: dict[str, int | None] = {
    "sequence": 1,
    "mapping": 2,
    "set": 1,
    "tuple": None,
}

_CONTAINER_ANNOTATIONS = {
    "sequence": "list",
    "mapping": "dict",
    "set": "set",
    "tuple": "tuple",
}


class TypeDescriptor:
    """Base class of the descriptor variants."""

    __slots__ = ()

    def annotation(self) -> str:
        """Host type annotation text for this descriptor."""
        raise NotImplementedError

    def expr(self) -> str:
        """Python expression that rebuilds this descriptor in generated code."""
        raise NotImplementedError


@dataclass(frozen=True)
class ScalarType(TypeDescriptor):
    name: str

    def __post_init__(self) -> None:
        if self.name not in SCALAR_ANNOTATIONS:
            raise ValueError(f"unknown scalar type {self.name!r}")

    def annotation(self) -> str:
        return SCALAR_ANNOTATIONS[self.name]

    def expr(self) -> str:
        return f"ScalarType({self.name!r})"


@dataclass(frozen=True)
class GenericType(TypeDescriptor):
    container: str
    arguments: tuple[TypeDescriptor, ...]

    def __post_init__(self) -> None:
        if self.container not in CONTAINER_ARITY:
            raise ValueError(f"unknown container {self.container!r}")
        if not isinstance(self.arguments, tuple):
            object.__setattr__(self, "arguments", tuple(self.arguments))
        want = CONTAINER_ARITY[self.container]
        got = len(self.arguments)
        if (want is None and got < 1) or (want is not None and got != want):
            raise ValueError(
                f"{self.container} expects {want or 'at least 1'} type argument(s), got {got}"
            )

    def annotation(self) -> str:
        args = ", ".join(a.annotation() for a in self.arguments)
        return f"{_CONTAINER_ANNOTATIONS[self.container]}[{args}]"

    def expr(self) -> str:
        args = ", ".join(a.expr() for a in self.arguments)
        if len(self.arguments) == 1:
            args += ","
        return f"GenericType({self.container!r}, ({args}))"


@dataclass(frozen=True)
class OptionalType(TypeDescriptor):
    inner: TypeDescriptor

    def annotation(self) -> str:
        return f"{self.inner.annotation()} | None"

    def expr(self) -> str:
        return f"OptionalType({self.inner.expr()})"


@dataclass(frozen=True)
class UnionType(TypeDescriptor):
    alternatives: tuple[TypeDescriptor, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.alternatives, tuple):
            object.__setattr__(self, "alternatives", tuple(self.alternatives))
        if len(self.alternatives) < 2:
            raise ValueError("a union needs at least two alternatives")

    def annotation(self) -> str:
        return " | ".join(a.annotation() for a in self.alternatives)

    def expr(self) -> str:
        return f"UnionType(({', '.join(a.expr() for a in self.alternatives)}))"


@dataclass(frozen=True)
class UnknownType(TypeDescriptor):
    def annotation(self) -> str:
        return "Any"

    def expr(self) -> str:
        return "UNKNOWN"


UNKNOWN = UnknownType()

INTEGER = ScalarType("integer")
FLOAT = ScalarType("float")
TEXT = ScalarType("text")
BOOLEAN = ScalarType("boolean")
NONE = ScalarType("none")
BYTES = ScalarType("bytes")


def sequence_of(item: TypeDescriptor) -> GenericType:
    return GenericType("sequence", (item,))


def mapping_of(key: TypeDescriptor, value: TypeDescriptor) -> GenericType:
    return GenericType("mapping", (key, value))
