"""Recover top-level function signatures from Python source text.

Only the headers of top-level ``def`` statements are parsed. Everything else
(bodies, classes, docstrings) is skipped by a line scanner that tracks
brackets, string literals and comments, so a malformed definition is reported
on its own span and never hides the definitions that follow it.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass

from .diagnostics import GeneratorError
from .symbols import FunctionDefinition, Parameter, ParameterKind, ParseResult, SourceSpan

_LINE_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")
_DEF_RE = re.compile(r"def\b")
_ASYNC_DEF_RE = re.compile(r"async\s+def\b\s*(\w*)")
_TOP_LEVEL_RE = re.compile(r"(?:@|def\b|async\s+def\b|class\b)")


@dataclass(frozen=True)
class _LogicalLine:
    start_line: int
    end_line: int
    text: str


def _split_lines(text: str) -> list[str]:
    return _LINE_RE.findall(text)


def _scan_line(line: str, depth: int, quote: str | None) -> tuple[int, str | None, bool]:
    """Advance bracket depth and string state over one physical line.

    Returns the new depth, the string delimiter still open at the end of the
    line (if any) and whether the line ends with a backslash continuation.
    """
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if line.startswith(quote, i):
                i += len(quote)
                quote = None
                continue
            i += 1
            continue
        if ch == "#":
            break
        if ch in "\"'":
            if line.startswith(ch * 3, i):
                quote = ch * 3
                i += 3
            else:
                quote = ch
                i += 1
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(depth - 1, 0)
        elif ch == "\\" and not line[i + 1 :].strip():
            return depth, quote, True
        i += 1

    if quote in ("'", '"'):
        if line.rstrip("\r\n").endswith("\\"):
            return depth, quote, True
        # A single-quoted string never spans lines.
        quote = None
    return depth, quote, False


def _logical_lines(source: str) -> list[_LogicalLine]:
    out: list[_LogicalLine] = []
    lines = _split_lines(source)
    buf: list[str] = []
    start = 1
    depth = 0
    quote: str | None = None
    for lineno, line in enumerate(lines, start=1):
        if buf and quote is None and depth > 0 and _TOP_LEVEL_RE.match(line):
            # Unbalanced brackets: resynchronize at the next top-level statement.
            out.append(_LogicalLine(start, lineno - 1, "".join(buf)))
            buf = []
            depth = 0
        if not buf:
            start = lineno
        buf.append(line)
        depth, quote, continued = _scan_line(line, depth, quote)
        if depth == 0 and quote is None and not continued:
            out.append(_LogicalLine(start, lineno, "".join(buf)))
            buf = []
    if buf:
        out.append(_LogicalLine(start, len(lines), "".join(buf)))
    return out


def _header_text(text: str) -> tuple[str, bool]:
    """Cut a `def` logical line at the colon that ends its header."""
    depth = 0
    quote: str | None = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if text.startswith(quote, i):
                i += len(quote)
                quote = None
                continue
            if ch in "\r\n" and len(quote) == 1:
                quote = None
            i += 1
            continue
        if ch == "#":
            nl = text.find("\n", i)
            if nl < 0:
                break
            i = nl
            continue
        if ch in "\"'":
            if text.startswith(ch * 3, i):
                quote = ch * 3
                i += 3
            else:
                quote = ch
                i += 1
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(depth - 1, 0)
        elif ch == ":" and depth == 0:
            return text[: i + 1], True
        i += 1
    return text.rstrip(), False


def _text_span(start_line: int, text: str) -> SourceSpan:
    parts = _split_lines(text) or [""]
    last = parts[-1].rstrip("\r\n")
    return SourceSpan(start_line, 0, start_line + len(parts) - 1, len(last))


def _char_column(lines: list[str], lineno: int, byte_offset: int) -> int:
    # `ast` reports UTF-8 byte offsets; diagnostics use character columns.
    if lineno < 1 or lineno > len(lines):
        return byte_offset
    raw = lines[lineno - 1].encode("utf-8")
    return len(raw[:byte_offset].decode("utf-8", errors="ignore"))


def _node_span(node: ast.AST, start_line: int, lines: list[str]) -> SourceSpan:
    lineno = node.lineno  # type: ignore[attr-defined]
    end_lineno = getattr(node, "end_lineno", None) or lineno
    col = _char_column(lines, lineno, node.col_offset)  # type: ignore[attr-defined]
    end_col_raw = getattr(node, "end_col_offset", None)
    end_col = col if end_col_raw is None else _char_column(lines, end_lineno, end_col_raw)
    return SourceSpan(start_line + lineno - 1, col, start_line + end_lineno - 1, end_col)


def _syntax_error(e: SyntaxError, start_line: int, span: SourceSpan) -> GeneratorError:
    message = e.msg or "invalid syntax"
    if not e.lineno:
        return GeneratorError.at(span, message)
    line = start_line + e.lineno - 1
    col = max((e.offset or 1) - 1, 0)
    end_lineno = getattr(e, "end_lineno", None) or e.lineno
    end_offset = getattr(e, "end_offset", None)
    end_line = start_line + end_lineno - 1
    end_col = max(end_offset - 1, 0) if end_offset else col
    if end_line == line and end_col < col:
        end_col = col
    if not span.contains(line, col):
        return GeneratorError.at(span, message)
    if not span.contains(end_line, end_col):
        end_line, end_col = span.end_line, span.end_column
    return GeneratorError(
        message=message,
        start_line=line,
        start_column=col,
        end_line=end_line,
        end_column=end_col,
    )


def _normalize_expression(text: str) -> str:
    try:
        return ast.unparse(ast.parse(text.strip(), mode="eval"))
    except (SyntaxError, ValueError):
        return " ".join(text.split())


def _parameter(
    arg: ast.arg,
    default: ast.expr | None,
    kind: ParameterKind,
    *,
    start_line: int,
    lines: list[str],
) -> Parameter:
    return Parameter(
        name=arg.arg,
        annotation=ast.unparse(arg.annotation) if arg.annotation is not None else None,
        default=ast.unparse(default) if default is not None else None,
        kind=kind,
        span=_node_span(arg, start_line, lines),
    )


def _definition_from_node(
    node: ast.FunctionDef,
    *,
    span: SourceSpan,
    decorators: tuple[str, ...],
    lines: list[str],
) -> FunctionDefinition | GeneratorError:
    start_line = span.start_line
    args = node.args
    params: list[Parameter] = []

    positional = [*args.posonlyargs, *args.args]
    defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
    defaults.extend(args.defaults)
    for arg, default in zip(positional, defaults, strict=True):
        params.append(
            _parameter(arg, default, ParameterKind.POSITIONAL, start_line=start_line, lines=lines)
        )
    if args.vararg is not None:
        params.append(
            _parameter(
                args.vararg, None, ParameterKind.VARIADIC_POSITIONAL, start_line=start_line, lines=lines
            )
        )
    for arg, default in zip(args.kwonlyargs, args.kw_defaults, strict=True):
        params.append(
            _parameter(arg, default, ParameterKind.KEYWORD_ONLY, start_line=start_line, lines=lines)
        )
    if args.kwarg is not None:
        params.append(
            _parameter(
                args.kwarg, None, ParameterKind.VARIADIC_KEYWORD, start_line=start_line, lines=lines
            )
        )

    seen: set[str] = set()
    for p in params:
        if p.name in seen:
            return GeneratorError.at(
                p.span or span, f"duplicate argument '{p.name}' in function definition"
            )
        seen.add(p.name)

    return_annotation = None
    return_span = None
    if node.returns is not None:
        return_annotation = ast.unparse(node.returns)
        return_span = _node_span(node.returns, start_line, lines)

    return FunctionDefinition(
        name=node.name,
        parameters=tuple(params),
        return_annotation=return_annotation,
        span=span,
        decorators=decorators,
        return_span=return_span,
    )


def _parse_definition(
    line: _LogicalLine, decorators: tuple[str, ...]
) -> FunctionDefinition | GeneratorError:
    header, terminated = _header_text(line.text)
    span = _text_span(line.start_line, header)
    snippet = f"{header} ..." if terminated else header
    try:
        module = ast.parse(snippet)
    except SyntaxError as e:
        return _syntax_error(e, line.start_line, span)
    except ValueError as e:
        # Source containing null bytes.
        return GeneratorError.at(span, str(e))
    except (RecursionError, MemoryError):
        return GeneratorError.at(span, "function definition is too deeply nested")

    node = module.body[0] if module.body else None
    if not isinstance(node, ast.FunctionDef):
        return GeneratorError.at(span, "expected a function definition")
    try:
        return _definition_from_node(
            node, span=span, decorators=decorators, lines=_split_lines(header)
        )
    except (RecursionError, MemoryError):
        # ast.unparse of a parameter annotation or default.
        return GeneratorError.at(span, "function definition is too deeply nested")


def parse_module(source: str) -> ParseResult:
    """Parse the top-level function definitions of a module.

    Returns every definition that parsed, in source order, together with a
    diagnostic for every definition that did not. The result depends only on
    `source`.
    """
    definitions: list[FunctionDefinition] = []
    errors: list[GeneratorError] = []
    decorators: list[str] = []

    for line in _logical_lines(source):
        text = line.text
        head = text.strip()
        if not head or head.startswith("#"):
            continue
        if text[0] in " \t\f":
            # Statement nested in a body.
            continue
        if text.startswith("@"):
            decorators.append(_normalize_expression(text[1:]))
            continue

        m = _ASYNC_DEF_RE.match(text)
        if m is not None:
            header, _terminated = _header_text(text)
            name = m.group(1) or "<anonymous>"
            errors.append(
                GeneratorError.warning(
                    _text_span(line.start_line, header),
                    f"async function {name} is not supported and was skipped",
                )
            )
            decorators = []
            continue

        if _DEF_RE.match(text):
            result = _parse_definition(line, tuple(decorators))
            decorators = []
            if isinstance(result, GeneratorError):
                errors.append(result)
            else:
                definitions.append(result)
            continue

        decorators = []

    return ParseResult(definitions=tuple(definitions), errors=tuple(errors))
