from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .diagnostics import GeneratorError


@dataclass(frozen=True)
class SourceSpan:
    # Lines are 1-based, columns 0-based (the `ast` conventions).
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def contains(self, line: int, column: int) -> bool:
        if line < self.start_line or line > self.end_line:
            return False
        if line == self.start_line and column < self.start_column:
            return False
        if line == self.end_line and column > self.end_column:
            return False
        return True


class ParameterKind(enum.Enum):
    POSITIONAL = "positional"
    KEYWORD_ONLY = "keyword-only"
    VARIADIC_POSITIONAL = "variadic-positional"
    VARIADIC_KEYWORD = "variadic-keyword"

    @property
    def variadic(self) -> bool:
        return self in (ParameterKind.VARIADIC_POSITIONAL, ParameterKind.VARIADIC_KEYWORD)


@dataclass(frozen=True)
class Parameter:
    name: str
    annotation: str | None = None
    default: str | None = None
    kind: ParameterKind = ParameterKind.POSITIONAL
    span: SourceSpan | None = None

    def __post_init__(self) -> None:
        if self.kind.variadic and self.default is not None:
            raise ValueError(f"variadic parameter {self.name} cannot have a default")


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    parameters: tuple[Parameter, ...]
    return_annotation: str | None
    span: SourceSpan
    decorators: tuple[str, ...] = ()
    return_span: SourceSpan | None = None

    def __post_init__(self) -> None:
        variadic_positional = sum(
            1 for p in self.parameters if p.kind is ParameterKind.VARIADIC_POSITIONAL
        )
        variadic_keyword = sum(1 for p in self.parameters if p.kind is ParameterKind.VARIADIC_KEYWORD)
        if variadic_positional > 1 or variadic_keyword > 1:
            raise ValueError(f"{self.name}: at most one *args and one **kwargs parameter")

    def signature(self) -> str:
        """Render the definition header the way it reads in source."""
        parts: list[str] = []
        saw_star = False
        for p in self.parameters:
            if p.kind is ParameterKind.KEYWORD_ONLY and not saw_star:
                parts.append("*")
                saw_star = True
            text = p.name
            if p.kind is ParameterKind.VARIADIC_POSITIONAL:
                text = f"*{p.name}"
                saw_star = True
            elif p.kind is ParameterKind.VARIADIC_KEYWORD:
                text = f"**{p.name}"
            if p.annotation is not None:
                text = f"{text}: {p.annotation}"
                if p.default is not None:
                    text = f"{text} = {p.default}"
            elif p.default is not None:
                text = f"{text}={p.default}"
            parts.append(text)
        ret = f" -> {self.return_annotation}" if self.return_annotation is not None else ""
        return f"{self.name}({', '.join(parts)}){ret}"


@dataclass(frozen=True)
class ParseResult:
    definitions: tuple[FunctionDefinition, ...]
    errors: tuple["GeneratorError", ...]

    @property
    def ok(self) -> bool:
        return not any(e.is_error for e in self.errors)
