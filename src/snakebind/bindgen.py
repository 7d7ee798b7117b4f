from __future__ import annotations

import keyword
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import GenerationError
from .model import MarshalMode, MethodModel, to_pascal_case
from .schema import TypeDescriptor
from .symbols import ParameterKind


@dataclass(frozen=True)
class BindgenOptions:
    namespace: str = "generated"
    runtime_package: str = "snakebind"


def interface_name(module_name: str) -> str:
    return f"I{to_pascal_case(module_name)}"


def implementation_name(module_name: str) -> str:
    return f"_{to_pascal_case(module_name)}Internal"


def _docstring(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def _check_module_name(module_name: str) -> None:
    if not module_name.isidentifier() or keyword.iskeyword(module_name):
        raise GenerationError(f"module name {module_name!r} is not a valid identifier")


def _descriptor_table(methods: list[MethodModel]) -> dict[TypeDescriptor, str]:
    table: dict[TypeDescriptor, str] = {}
    for m in methods:
        for t in m.descriptors():
            if t not in table:
                table[t] = f"_T{len(table)}"
    return table


def _argument_lines(m: MethodModel, table: dict[TypeDescriptor, str]) -> list[str]:
    lines: list[str] = []
    for a in m.arguments:
        convert = a.mode is MarshalMode.CONVERT
        t = table[a.type] if convert else ""
        where = repr(a.parameter)
        if a.kind is ParameterKind.VARIADIC_POSITIONAL:
            if convert:
                lines.append(
                    f"{a.local} = tuple(encode_value({t}, v, where={where}) for v in {a.host_name})"
                )
            else:
                lines.append(f"{a.local} = tuple({a.host_name})")
        elif a.kind is ParameterKind.VARIADIC_KEYWORD:
            if convert:
                lines.append(
                    f"{a.local} = {{k: encode_value({t}, v, where={where}) "
                    f"for k, v in {a.host_name}.items()}}"
                )
            else:
                lines.append(f"{a.local} = dict({a.host_name})")
        elif not convert:
            lines.append(f"{a.local} = {a.host_name}")
        elif a.omittable:
            lines.append(
                f"{a.local} = MISSING if {a.host_name} is MISSING "
                f"else encode_value({t}, {a.host_name}, where={where})"
            )
        else:
            lines.append(f"{a.local} = encode_value({t}, {a.host_name}, where={where})")
    return lines


def _pack_lines(m: MethodModel) -> list[str]:
    positional = [a for a in m.arguments if a.kind is ParameterKind.POSITIONAL]
    keywords = [a for a in m.arguments if a.kind is ParameterKind.KEYWORD_ONLY]
    varargs = [a for a in m.arguments if a.kind is ParameterKind.VARIADIC_POSITIONAL]
    varkw = [a for a in m.arguments if a.kind is ParameterKind.VARIADIC_KEYWORD]
    if not m.arguments:
        return ["_args, _kwargs = pack_arguments()"]

    def pairs(items) -> str:  # noqa: ANN001
        inner = ", ".join(f"({a.parameter!r}, {a.local})" for a in items)
        if len(items) == 1:
            inner += ","
        return f"({inner})"

    lines = ["_args, _kwargs = pack_arguments("]
    if positional:
        lines.append(f"    positional={pairs(positional)},")
    if varargs:
        lines.append(f"    varargs={varargs[0].local},")
    if keywords:
        lines.append(f"    keywords={pairs(keywords)},")
    if varkw:
        lines.append(f"    varkw={varkw[0].local},")
    lines.append(")")
    return lines


def _method_lines(m: MethodModel, *, module_name: str, table: dict[TypeDescriptor, str]) -> list[str]:
    lines: list[str] = []
    lines.append(f"    def {m.host_signature()}:")
    lines.append(f'        """Call ``{_docstring(f"{module_name}.{m.signature}")}``."""')
    lines.append("        with self._handle.session() as module:")
    body = [*_argument_lines(m, table), *_pack_lines(m)]
    body.append(f"_result = self._handle.invoke(module, {m.source_name!r}, _args, _kwargs)")
    if m.result.mode is MarshalMode.CONVERT:
        body.append(f"return decode_value({table[m.result.type]}, _result, where='return')")
    else:
        body.append("return _result")
    lines.extend(f"            {line}" for line in body)
    lines.append("")
    return lines


def emit_module(*, module_name: str, methods: Iterable[MethodModel], opts: BindgenOptions) -> str:
    """Render the bindings module for one script module.

    Methods are ordered by host name, so the text depends only on the set of
    models, the module name and the options.
    """
    _check_module_name(module_name)
    ordered = sorted(methods, key=lambda m: (m.name, m.source_name))
    seen: set[str] = set()
    for m in ordered:
        if m.name in seen:
            raise GenerationError(f"duplicate method name {m.name} in module {module_name}")
        seen.add(m.name)

    iface = interface_name(module_name)
    impl = implementation_name(module_name)
    rt = opts.runtime_package
    table = _descriptor_table(ordered)

    lines: list[str] = []
    lines.append("# <auto-generated/>")
    lines.append(f"# Generated by snakebind from Python module {module_name!r}. Do not edit.")
    lines.append(f'"""Typed bindings for the Python module ``{module_name}``."""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append("from typing import Any, Protocol")
    lines.append("")
    lines.append(f"from {rt}.handle import MISSING, Missing, ModuleHandle, ModuleState, pack_arguments")
    lines.append(f"from {rt}.runtime.environment import RuntimeEnvironment")
    lines.append(f"from {rt}.schema import UNKNOWN, GenericType, OptionalType, ScalarType, UnionType")
    lines.append(f"from {rt}.typed import decode_value, encode_value")
    lines.append("")
    lines.append(f'__all__ = ["{iface}", "load"]')
    lines.append("")
    lines.append(f"MODULE_NAME = {module_name!r}")
    lines.append(f"NAMESPACE = {opts.namespace!r}")
    lines.append("")
    for t, const in table.items():
        lines.append(f"{const} = {t.expr()}")
    if table:
        lines.append("")
    lines.append("")

    # Interface
    lines.append(f"class {iface}(Protocol):")
    lines.append(f'    """Typed interface of the Python module ``{module_name}``."""')
    lines.append("")
    for m in ordered:
        lines.append(f"    def {m.host_signature()}: ...")
        lines.append("")
    lines.append("    def close(self) -> None: ...")
    lines.append("")
    lines.append("")

    # Implementation
    lines.append(f"class {impl}:")
    lines.append("    def __init__(self, env: RuntimeEnvironment) -> None:")
    lines.append("        self._handle = ModuleHandle(env, MODULE_NAME)")
    lines.append("")
    lines.append("    @property")
    lines.append("    def state(self) -> ModuleState:")
    lines.append("        return self._handle.state")
    lines.append("")
    lines.append("    def close(self) -> None:")
    lines.append("        self._handle.dispose()")
    lines.append("")
    lines.append(f"    def __enter__(self) -> {impl}:")
    lines.append("        return self")
    lines.append("")
    lines.append("    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001")
    lines.append("        self.close()")
    lines.append("")
    for m in ordered:
        lines.extend(_method_lines(m, module_name=module_name, table=table))
    lines.append("")

    # Accessor
    lines.append(f"def load(env: RuntimeEnvironment) -> {iface}:")
    lines.append(f'    """Return the binding for ``{module_name}`` shared by every user of `env`."""')
    lines.append(f"    return env.binding(MODULE_NAME, {impl})")
    lines.append("")
    return "\n".join(lines)


def generate_python_bindings(
    *,
    module_name: str,
    methods: Iterable[MethodModel],
    out_file: Path,
    opts: BindgenOptions,
) -> bool:
    """Write the bindings module; returns False when the file was already current."""
    text = emit_module(module_name=module_name, methods=methods, opts=opts)
    return write_if_changed(Path(out_file), text)


def write_if_changed(out_file: Path, text: str) -> bool:
    if out_file.exists() and out_file.read_text(encoding="utf-8") == text:
        return False
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
    return True
