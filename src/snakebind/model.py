"""Method models: one typed host method per parsed script function.

A model is plain data: host name and signature, the descriptor of every
parameter and of the result, and the marshaling plan the emitter turns into
statements. Tests can check models without looking at generated text.
"""

from __future__ import annotations

import ast
import enum
import keyword
import math
import re
from dataclasses import dataclass

from .diagnostics import GeneratorError
from .errors import MarshalError
from .schema import NONE, TEXT, OptionalType, TypeDescriptor, UnionType, UnknownType, mapping_of, sequence_of
from .symbols import FunctionDefinition, Parameter, ParameterKind
from .typed import encode_value
from .typemap import resolve_annotation

MISSING_EXPR = "MISSING"

# Names the generated method body uses for itself or reads from module scope.
_RESERVED_NAMES = frozenset(
    {
        "self",
        "module",
        "_args",
        "_kwargs",
        "_result",
        "MISSING",
        "encode_value",
        "decode_value",
        "pack_arguments",
        "tuple",
        "dict",
    }
)
_DESCRIPTOR_CONSTANT_RE = re.compile(r"_T\d+\Z")

_LITERAL_TYPES = (type(None), bool, int, float, str, bytes)


def host_method_name(name: str) -> str:
    # `none` would otherwise become the keyword `None`.
    pascal = to_pascal_case(name)
    return f"{pascal}_" if keyword.iskeyword(pascal) else pascal


def to_pascal_case(name: str) -> str:
    """Convert ``my_cool_func`` to ``MyCoolFunc``.

    Underscores separate words; the first letter of every word is upper-cased
    and the rest is kept. A name made only of underscores is returned as is.
    """
    parts = [p for p in name.split("_") if p]
    if not parts:
        return name
    return "".join(p[:1].upper() + p[1:] for p in parts)


class MarshalMode(enum.Enum):
    CONVERT = "convert"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class MethodParameter:
    name: str
    host_name: str
    type: TypeDescriptor
    kind: ParameterKind
    has_default: bool = False
    # Host default expression: a literal, MISSING_EXPR, or None when required.
    default: str | None = None

    @property
    def omittable(self) -> bool:
        return self.default == MISSING_EXPR

    def annotation(self) -> str:
        t = self.type
        if self.kind.variadic:
            # *args/**kwargs annotate the element type.
            t = t.arguments[-1]  # type: ignore[attr-defined]
        text = t.annotation()
        if self.omittable:
            text = f"{text} | Missing"
        return text

    def declaration(self) -> str:
        prefix = ""
        if self.kind is ParameterKind.VARIADIC_POSITIONAL:
            prefix = "*"
        elif self.kind is ParameterKind.VARIADIC_KEYWORD:
            prefix = "**"
        text = f"{prefix}{self.host_name}: {self.annotation()}"
        if self.default is not None:
            text = f"{text} = {self.default}"
        return text


@dataclass(frozen=True)
class ArgumentMarshal:
    parameter: str
    host_name: str
    local: str
    # Element type for variadic parameters.
    type: TypeDescriptor
    kind: ParameterKind
    mode: MarshalMode
    omittable: bool = False


@dataclass(frozen=True)
class ResultMarshal:
    type: TypeDescriptor
    mode: MarshalMode


@dataclass(frozen=True)
class MethodModel:
    name: str
    source_name: str
    parameters: tuple[MethodParameter, ...]
    return_type: TypeDescriptor
    arguments: tuple[ArgumentMarshal, ...]
    result: ResultMarshal
    signature: str

    def host_signature(self) -> str:
        parts = ["self"]
        star = False
        for p in self.parameters:
            if p.kind is ParameterKind.KEYWORD_ONLY and not star:
                parts.append("*")
                star = True
            if p.kind is ParameterKind.VARIADIC_POSITIONAL:
                star = True
            parts.append(p.declaration())
        return f"{self.name}({', '.join(parts)}) -> {self.return_type.annotation()}"

    def descriptors(self) -> list[TypeDescriptor]:
        """Descriptors the generated body converts values with, in use order."""
        out = [a.type for a in self.arguments if a.mode is MarshalMode.CONVERT]
        if self.result.mode is MarshalMode.CONVERT:
            out.append(self.result.type)
        return out


@dataclass(frozen=True)
class BuiltMethod:
    model: MethodModel
    diagnostics: tuple[GeneratorError, ...] = ()


def _mode(t: TypeDescriptor) -> MarshalMode:
    return MarshalMode.PASSTHROUGH if isinstance(t, UnknownType) else MarshalMode.CONVERT


def _is_simple_literal(v: object) -> bool:
    if isinstance(v, tuple):
        return all(_is_simple_literal(x) for x in v)
    if isinstance(v, float) and not math.isfinite(v):
        return False
    return isinstance(v, _LITERAL_TYPES)


def host_default(text: str | None) -> str | None:
    """Host default expression for a source default (None when required)."""
    if text is None:
        return None
    try:
        value = ast.literal_eval(text)
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        return MISSING_EXPR
    if not _is_simple_literal(value):
        # Mutable or computed defaults stay with the script function.
        return MISSING_EXPR
    return repr(value)


def _with_none(t: TypeDescriptor) -> TypeDescriptor:
    if isinstance(t, UnionType):
        return t if NONE in t.alternatives else UnionType((*t.alternatives, NONE))
    if isinstance(t, OptionalType) or t == NONE:
        return t
    return OptionalType(t)


def fit_default(t: TypeDescriptor, text: str | None) -> tuple[TypeDescriptor, str | None]:
    """Host type and default for a parameter of type `t` with source default `text`.

    A `None` default widens the type to accept `None`. A literal the type
    rejects is not reproduced; the script function applies it instead.
    """
    default = host_default(text)
    if default is None or default == MISSING_EXPR:
        return t, default
    value = ast.literal_eval(default)
    try:
        encode_value(t, value, where="default")
    except MarshalError:
        if value is None:
            return _with_none(t), default
        return t, MISSING_EXPR
    return t, default


def _unique(name: str, taken: set[str]) -> str:
    while name in taken:
        name = f"{name}_"
    return name


def _host_names(params: tuple[Parameter, ...]) -> dict[str, str]:
    taken = {p.name for p in params}
    out: dict[str, str] = {}
    for p in params:
        host = p.name
        if host in _RESERVED_NAMES or _DESCRIPTOR_CONSTANT_RE.match(host):
            host = _unique(f"{host}_", taken)
            taken.add(host)
        out[p.name] = host
    return out


def build_method(definition: FunctionDefinition) -> BuiltMethod:
    """Build the method model for one definition, mapping every annotation."""
    diagnostics: list[GeneratorError] = []
    host_names = _host_names(definition.parameters)
    taken = set(host_names.values()) | _RESERVED_NAMES

    params: list[MethodParameter] = []
    arguments: list[ArgumentMarshal] = []
    for p in definition.parameters:
        mapped = resolve_annotation(p.annotation, span=p.span or definition.span)
        diagnostics.extend(mapped.diagnostics)
        element = mapped.type
        default: str | None = None
        if p.kind is ParameterKind.VARIADIC_POSITIONAL:
            t: TypeDescriptor = sequence_of(element)
        elif p.kind is ParameterKind.VARIADIC_KEYWORD:
            t = mapping_of(TEXT, element)
        else:
            element, default = fit_default(element, p.default)
            t = element

        host = host_names[p.name]
        local = _unique(f"{host}_rt", taken)
        taken.add(local)

        params.append(
            MethodParameter(
                name=p.name,
                host_name=host,
                type=t,
                kind=p.kind,
                has_default=p.default is not None,
                default=default,
            )
        )
        arguments.append(
            ArgumentMarshal(
                parameter=p.name,
                host_name=host,
                local=local,
                type=element,
                kind=p.kind,
                mode=_mode(element),
                omittable=default == MISSING_EXPR,
            )
        )

    ret = resolve_annotation(
        definition.return_annotation, span=definition.return_span or definition.span
    )
    diagnostics.extend(ret.diagnostics)

    model = MethodModel(
        name=host_method_name(definition.name),
        source_name=definition.name,
        parameters=tuple(params),
        return_type=ret.type,
        arguments=tuple(arguments),
        result=ResultMarshal(type=ret.type, mode=_mode(ret.type)),
        signature=definition.signature(),
    )
    return BuiltMethod(model=model, diagnostics=tuple(diagnostics))


def build_methods(definitions: tuple[FunctionDefinition, ...] | list[FunctionDefinition]) -> list[BuiltMethod]:
    return [build_method(d) for d in definitions]
