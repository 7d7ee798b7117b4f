from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from pathlib import Path

from .diagnostics import GeneratorError, Severity
from .driver import GenerationResult, GeneratorOptions, SourceFile, generate_files, output_dir, write_result
from .symbols import SourceSpan


def _collect_sources(paths: list[str]) -> list[Path]:
    found: set[Path] = set()
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            found.update(f for f in p.rglob("*.py") if f.is_file())
        elif p.is_file():
            found.add(p)
        else:
            raise SystemExit(f"source not found: {p}")
    # Package markers and entry points are not script modules.
    return sorted(f for f in found if not (f.stem.startswith("__") and f.stem.endswith("__")))


def _stem_collisions(paths: list[Path]) -> dict[Path, list[Path]]:
    # Every source lands in <out>/<namespace>/<stem>.py.
    by_stem: dict[str, list[Path]] = {}
    for p in paths:
        by_stem.setdefault(p.stem, []).append(p)
    out: dict[Path, list[Path]] = {}
    for group in by_stem.values():
        if len(group) > 1:
            for p in group:
                out[p] = [o for o in group if o != p]
    return out


def _read_source(path: Path) -> SourceFile:
    return SourceFile(
        path=str(path),
        text=path.read_text(encoding="utf-8"),
        token=str(path.stat().st_mtime_ns),
    )


def _report(results: list[GenerationResult], *, verbose: bool) -> int:
    errors = 0
    for r in results:
        for d in r.diagnostics:
            if d.severity is Severity.INFO and not verbose:
                continue
            print(d.format(r.source.path), file=sys.stderr)
            if d.is_error:
                errors += 1
    return errors


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="snakebind")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Print snakebind version.")

    p_gen = sub.add_parser("gen", help="Generate typed bindings for Python script modules.")
    p_gen.add_argument(
        "--src",
        required=True,
        nargs="+",
        help="Script files or directories (searched recursively for *.py).",
    )
    p_gen.add_argument("--out", default=None, help="Output root (default: SNAKEBIND_OUT_DIR or current directory).")
    p_gen.add_argument(
        "--namespace",
        default=None,
        help="Dotted package for generated modules (default: SNAKEBIND_NAMESPACE or 'generated').",
    )
    p_gen.add_argument("--strict", action="store_true", help="Skip a whole file when any definition fails to parse.")
    p_gen.add_argument("--force", action="store_true", help="Regenerate even if the cache says a file is current.")
    p_gen.add_argument("--jobs", type=int, default=None, help="Generate files on this many threads.")
    p_gen.add_argument("-v", "--verbose", action="count", default=0, help="Log more (repeat for debug output).")

    p_check = sub.add_parser("check", help="Report diagnostics without writing bindings.")
    p_check.add_argument("--src", required=True, nargs="+", help="Script files or directories.")
    p_check.add_argument("--strict", action="store_true", help="Treat a file with any parse error as failed.")
    p_check.add_argument("-v", "--verbose", action="count", default=0, help="Log more (repeat for debug output).")

    args = parser.parse_args(argv)
    if args.cmd == "version":
        try:
            print(importlib.metadata.version("snakebind"))
        except importlib.metadata.PackageNotFoundError:
            print("0.0.0")
        return

    _configure_logging(args.verbose)

    if args.cmd == "check":
        sources = [_read_source(p) for p in _collect_sources(args.src)]
        results = generate_files(sources, GeneratorOptions(strict=args.strict))
        if _report(results, verbose=args.verbose > 0):
            raise SystemExit(1)
        return

    if args.cmd == "gen":
        from .cache import GenerationCache
        from .paths import default_namespace, default_output_root

        out_root = Path(args.out) if args.out else default_output_root()
        namespace = args.namespace or default_namespace()
        options = GeneratorOptions(namespace=namespace, strict=args.strict)
        cache = GenerationCache.for_output_root(out_root)

        pkg_dir = output_dir(out_root, namespace)
        paths = _collect_sources(args.src)
        collisions = _stem_collisions(paths)
        for path, others in collisions.items():
            err = GeneratorError.at(
                SourceSpan(1, 0, 1, 0),
                f"module name {path.stem!r} is also produced by "
                f"{', '.join(str(o) for o in others)}; skipped",
            )
            print(err.format(str(path)), file=sys.stderr)

        stale: list[SourceFile] = []
        for path in paths:
            if path in collisions:
                continue
            source = _read_source(path)
            out_file = pkg_dir / f"{path.stem}.py"
            if not args.force and cache.is_fresh(source, options, out_file):
                continue
            stale.append(source)

        results = generate_files(stale, options, max_workers=args.jobs)
        for r in results:
            write_result(r, out_root, namespace)
            cache.update(r, options)
        cache.save()

        if _report(results, verbose=args.verbose > 0) or collisions:
            raise SystemExit(1)
        return


if __name__ == "__main__":
    main()
