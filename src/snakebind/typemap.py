"""Map annotation expressions to type descriptors.

The mapping is total: any annotation, including none at all or text that does
not parse, yields exactly one descriptor. Forms that cannot be expressed map
to `UNKNOWN`; the ones that look like mistakes (wrong number of type
arguments, unparseable text) also produce a warning diagnostic.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from .diagnostics import GeneratorError
from .schema import (
    BOOLEAN,
    BYTES,
    CONTAINER_ARITY,
    FLOAT,
    INTEGER,
    NONE,
    TEXT,
    UNKNOWN,
    GenericType,
    OptionalType,
    TypeDescriptor,
    UnionType,
)
from .symbols import SourceSpan

_SCALARS: dict[str, TypeDescriptor] = {
    "int": INTEGER,
    "float": FLOAT,
    "str": TEXT,
    "bool": BOOLEAN,
    "None": NONE,
    "NoneType": NONE,
    "bytes": BYTES,
}

_CONTAINERS: dict[str, str] = {
    "list": "sequence",
    "List": "sequence",
    "Sequence": "sequence",
    "MutableSequence": "sequence",
    "dict": "mapping",
    "Dict": "mapping",
    "Mapping": "mapping",
    "MutableMapping": "mapping",
    "set": "set",
    "Set": "set",
    "frozenset": "set",
    "FrozenSet": "set",
    "AbstractSet": "set",
    "MutableSet": "set",
    "tuple": "tuple",
    "Tuple": "tuple",
}

_MODULE_PREFIXES = ("typing_extensions.", "typing.", "collections.abc.", "builtins.")

# Nested string annotations are parsed again; stop runaway quoting.
_MAX_DEPTH = 32


@dataclass(frozen=True)
class MappedType:
    type: TypeDescriptor
    diagnostics: tuple[GeneratorError, ...] = ()


def map_annotation(annotation: str | None) -> TypeDescriptor:
    """Return the descriptor for an annotation (``None`` means unannotated)."""
    return resolve_annotation(annotation).type


def resolve_annotation(annotation: str | None, *, span: SourceSpan | None = None) -> MappedType:
    """Map an annotation and collect warnings located at `span`."""
    if annotation is None:
        return MappedType(UNKNOWN)
    m = _Mapper(annotation)
    try:
        t = m.map_text(annotation, 0)
    except (RecursionError, MemoryError):
        m.warn(f"annotation {annotation!r} is too deeply nested")
        t = UNKNOWN
    if not m.warnings:
        return MappedType(t)
    where = span or SourceSpan(1, 0, 1, 0)
    return MappedType(t, tuple(GeneratorError.warning(where, w) for w in m.warnings))


def _dotted_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = _dotted_name(node.value)
        if base is None:
            return None
        return f"{base}.{node.attr}"
    return None


def _strip_module(name: str) -> str:
    for prefix in _MODULE_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix) :]
    return name


class _Mapper:
    def __init__(self, annotation: str) -> None:
        self.annotation = annotation
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def map_text(self, text: str, depth: int) -> TypeDescriptor:
        if depth > _MAX_DEPTH:
            self.warn(f"annotation {self.annotation!r} is too deeply nested")
            return UNKNOWN
        try:
            node = ast.parse(text.strip(), mode="eval").body
        except (SyntaxError, ValueError):
            self.warn(f"cannot parse annotation {text!r}")
            return UNKNOWN
        return self.map_node(node, depth)

    def map_node(self, node: ast.expr, depth: int) -> TypeDescriptor:
        if isinstance(node, ast.Constant):
            if node.value is None:
                return NONE
            if isinstance(node.value, str):
                # Forward reference.
                return self.map_text(node.value, depth + 1)
            return UNKNOWN

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self.union([self.map_node(n, depth) for n in _flatten_bitor(node)])

        if isinstance(node, ast.Subscript):
            return self.map_subscript(node, depth)

        name = _dotted_name(node)
        if name is None:
            return UNKNOWN
        name = _strip_module(name)
        scalar = _SCALARS.get(name)
        if scalar is not None:
            return scalar
        container = _CONTAINERS.get(name)
        if container is not None:
            arity = CONTAINER_ARITY[container]
            if arity is None:
                # A bare tuple says nothing about its length.
                return UNKNOWN
            return GenericType(container, (UNKNOWN,) * arity)
        return UNKNOWN

    def map_subscript(self, node: ast.Subscript, depth: int) -> TypeDescriptor:
        name = _dotted_name(node.value)
        if name is None:
            return UNKNOWN
        name = _strip_module(name)
        items = list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]

        if name == "Optional":
            if len(items) != 1:
                self.warn(f"Optional expects 1 type argument, got {len(items)}")
                return UNKNOWN
            return self.union([self.map_node(items[0], depth), NONE])

        if name == "Union":
            return self.union([self.map_node(n, depth) for n in items])

        if name == "Annotated":
            return self.map_node(items[0], depth) if items else UNKNOWN

        container = _CONTAINERS.get(name)
        if container is None:
            return UNKNOWN

        if container == "tuple":
            if any(isinstance(n, ast.Constant) and n.value is Ellipsis for n in items):
                self.warn(f"variable-length tuple {ast.unparse(node)} is not supported")
                return UNKNOWN
            if not items:
                # tuple[()]
                return UNKNOWN

        arity = CONTAINER_ARITY[container]
        if arity is not None and len(items) != arity:
            self.warn(
                f"{name} expects {arity} type argument(s), got {len(items)} in {ast.unparse(node)}"
            )
            return UNKNOWN
        return GenericType(container, tuple(self.map_node(n, depth) for n in items))

    def union(self, alternatives: list[TypeDescriptor]) -> TypeDescriptor:
        flat: list[TypeDescriptor] = []
        for alt in alternatives:
            members: tuple[TypeDescriptor, ...]
            if isinstance(alt, OptionalType):
                members = (alt.inner, NONE)
            elif isinstance(alt, UnionType):
                members = alt.alternatives
            else:
                members = (alt,)
            for t in members:
                if t not in flat:
                    flat.append(t)

        if not flat:
            return UNKNOWN
        if len(flat) == 1:
            return flat[0]
        if len(flat) == 2 and NONE in flat:
            other = flat[0] if flat[1] == NONE else flat[1]
            return OptionalType(other)
        return UnionType(tuple(flat))


def _flatten_bitor(node: ast.expr) -> list[ast.expr]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return [*_flatten_bitor(node.left), *_flatten_bitor(node.right)]
    return [node]
