"""Generate bindings for a batch of source files.

This is the boundary a build tool talks to: it hands over source files
(path, text, modification token) and gets back, per file, the generated
module text (or nothing) and the diagnostics to report.
"""

from __future__ import annotations

import keyword
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .bindgen import BindgenOptions, emit_module, interface_name, write_if_changed
from .diagnostics import GENERATED, GeneratorError, Severity
from .model import MethodModel, build_method
from .scan import parse_module
from .symbols import SourceSpan

logger = logging.getLogger(__name__)

_FILE_START = SourceSpan(1, 0, 1, 0)


@dataclass(frozen=True)
class SourceFile:
    path: str
    text: str
    token: str | None = None

    @property
    def module_name(self) -> str:
        return Path(self.path).stem


@dataclass(frozen=True)
class GeneratorOptions:
    namespace: str = "generated"
    # Drop the whole file when any definition fails to parse.
    strict: bool = False
    runtime_package: str = "snakebind"

    def bindgen(self) -> BindgenOptions:
        return BindgenOptions(namespace=self.namespace, runtime_package=self.runtime_package)


@dataclass(frozen=True)
class GenerationResult:
    source: SourceFile
    module_name: str
    text: str | None
    diagnostics: tuple[GeneratorError, ...]
    methods: tuple[MethodModel, ...] = ()

    @property
    def output_name(self) -> str:
        return f"{self.module_name}.py"

    @property
    def ok(self) -> bool:
        return not any(d.is_error for d in self.diagnostics)

    @property
    def errors(self) -> tuple[GeneratorError, ...]:
        return tuple(d for d in self.diagnostics if d.is_error)


def _dedupe(built: list[MethodModel], spans: list[SourceSpan]) -> tuple[list[MethodModel], list[GeneratorError]]:
    # A later definition of the same function replaces the earlier one, as at runtime.
    by_source: dict[str, tuple[MethodModel, SourceSpan]] = {}
    for m, span in zip(built, spans, strict=True):
        by_source.pop(m.source_name, None)
        by_source[m.source_name] = (m, span)

    out: list[MethodModel] = []
    warnings: list[GeneratorError] = []
    names: dict[str, str] = {}
    for m, span in by_source.values():
        other = names.get(m.name)
        if other is not None:
            warnings.append(
                GeneratorError.warning(
                    span,
                    f"{m.source_name} maps to method name {m.name} already used by {other}; skipped",
                )
            )
            continue
        names[m.name] = m.source_name
        out.append(m)
    return out, warnings


def _bindable(module_name: str) -> bool:
    # Dunder stems would collide with package files such as __init__.py.
    if module_name.startswith("__") and module_name.endswith("__"):
        return False
    return module_name.isidentifier() and not keyword.iskeyword(module_name)


def generate_file(source: SourceFile, options: GeneratorOptions | None = None) -> GenerationResult:
    """Parse, map, build and emit the bindings for one source file."""
    options = options or GeneratorOptions()
    module_name = source.module_name

    if not _bindable(module_name):
        err = GeneratorError.at(
            _FILE_START, f"{module_name!r} cannot be used as a bindings module name"
        )
        return GenerationResult(source=source, module_name=module_name, text=None, diagnostics=(err,))

    parsed = parse_module(source.text)
    diagnostics: list[GeneratorError] = list(parsed.errors)
    if options.strict and not parsed.ok:
        return GenerationResult(
            source=source, module_name=module_name, text=None, diagnostics=tuple(diagnostics)
        )

    models: list[MethodModel] = []
    spans: list[SourceSpan] = []
    for definition in parsed.definitions:
        built = build_method(definition)
        diagnostics.extend(built.diagnostics)
        models.append(built.model)
        spans.append(definition.span)
    methods, warnings = _dedupe(models, spans)
    diagnostics.extend(warnings)

    if not methods and not parsed.ok:
        return GenerationResult(
            source=source, module_name=module_name, text=None, diagnostics=tuple(diagnostics)
        )

    text = emit_module(module_name=module_name, methods=methods, opts=options.bindgen())
    diagnostics.append(
        GeneratorError.at(
            _FILE_START,
            f"Generated {interface_name(module_name)} with {len(methods)} method(s)",
            code=GENERATED,
            severity=Severity.INFO,
        )
    )
    logger.info("generated bindings for %s (%d methods)", source.path, len(methods))
    return GenerationResult(
        source=source,
        module_name=module_name,
        text=text,
        diagnostics=tuple(diagnostics),
        methods=tuple(sorted(methods, key=lambda m: m.name)),
    )


def generate_files(
    sources: Iterable[SourceFile],
    options: GeneratorOptions | None = None,
    *,
    max_workers: int | None = None,
) -> list[GenerationResult]:
    """Generate every file independently; results keep the input order."""
    options = options or GeneratorOptions()
    items = list(sources)
    if max_workers is None or max_workers <= 1 or len(items) <= 1:
        return [generate_file(s, options) for s in items]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda s: generate_file(s, options), items))


def output_dir(out_root: Path, namespace: str) -> Path:
    out = Path(out_root)
    for part in namespace.split("."):
        if part:
            out = out / part
    return out


def write_result(result: GenerationResult, out_root: Path, namespace: str) -> Path | None:
    """Write the generated module under `out_root/<namespace>/`.

    Package `__init__.py` files are created as needed. The file is rewritten
    only when its content changed. Returns the module path, or None when the
    result carries no text; a module written earlier for the same source is
    then removed.
    """
    out_root = Path(out_root)
    pkg_dir = output_dir(out_root, namespace)
    if result.text is None:
        stale = pkg_dir / result.output_name
        if _bindable(result.module_name) and stale.is_file():
            logger.info("removing bindings %s: %s produced no module", stale, result.source.path)
            stale.unlink()
        return None
    pkg_dir.mkdir(parents=True, exist_ok=True)

    d = pkg_dir
    while d != out_root and out_root in d.parents:
        init = d / "__init__.py"
        if not init.exists():
            init.write_text("", encoding="utf-8")
        d = d.parent

    out_file = pkg_dir / result.output_name
    write_if_changed(out_file, result.text)
    return out_file
