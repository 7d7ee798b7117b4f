from __future__ import annotations

from pathlib import Path

from snakebind.diagnostics import DEGRADED, GENERATED, PARSE_ERROR, Severity
from snakebind.driver import GeneratorOptions, SourceFile, generate_file, generate_files, write_result

_GOOD = "def area(w: float, h: float) -> float:\n    return w * h\n"


def test_generate_file_reports_success():
    res = generate_file(SourceFile(path="geometry.py", text=_GOOD))
    assert res.ok
    assert res.module_name == "geometry"
    assert res.output_name == "geometry.py"
    assert res.text is not None
    assert "class IGeometry(Protocol):" in res.text
    assert [m.name for m in res.methods] == ["Area"]
    (info,) = res.diagnostics
    assert info.code == GENERATED
    assert info.severity is Severity.INFO
    assert info.message == "Generated IGeometry with 1 method(s)"


def test_parse_errors_do_not_hide_valid_definitions():
    src = "def broken(:\n    pass\n\n" + _GOOD
    res = generate_file(SourceFile(path="shapes.py", text=src))
    assert not res.ok
    assert [e.code for e in res.errors] == [PARSE_ERROR]
    assert res.text is not None
    assert [m.source_name for m in res.methods] == ["area"]


def test_strict_mode_suppresses_file_with_errors():
    src = "def broken(:\n    pass\n\n" + _GOOD
    res = generate_file(SourceFile(path="shapes.py", text=src), GeneratorOptions(strict=True))
    assert res.text is None
    assert len(res.errors) == 1
    assert all(d.code != GENERATED for d in res.diagnostics)


def test_file_with_only_broken_definitions_produces_nothing():
    res = generate_file(SourceFile(path="bad.py", text="def (x):\n    pass\n"))
    assert res.text is None
    assert len(res.errors) == 1


def test_file_without_functions_gets_an_empty_interface():
    res = generate_file(SourceFile(path="consts.py", text="PI = 3.14\n"))
    assert res.ok
    assert res.methods == ()
    assert "class IConsts(Protocol):" in res.text


def test_invalid_module_name_is_an_error():
    res = generate_file(SourceFile(path="my-script.py", text=_GOOD))
    assert res.text is None
    (err,) = res.diagnostics
    assert err.code == PARSE_ERROR
    assert "my-script" in err.message


def test_dunder_module_name_is_an_error():
    res = generate_file(SourceFile(path="pkg/__init__.py", text=_GOOD))
    assert res.text is None
    (err,) = res.diagnostics
    assert err.code == PARSE_ERROR
    assert "__init__" in err.message


def test_keyword_function_names_compile():
    src = "def none() -> int:\n    return 1\n\ndef true():\n    pass\n"
    res = generate_file(SourceFile(path="m.py", text=src))
    assert res.ok
    compile(res.text, "m.py", "exec")
    assert "def None_(self) -> int:" in res.text
    assert "def True_(self" in res.text


def test_redefinition_and_name_collisions():
    src = "\n".join(
        [
            "def run(a): ...",
            "def run(a, b) -> int: ...",
            "def do_it(): ...",
            "def do__it(): ...",
            "",
        ]
    )
    res = generate_file(SourceFile(path="jobs.py", text=src))
    assert res.ok
    assert [m.source_name for m in res.methods] == ["do_it", "run"]
    run = res.methods[1]
    assert [p.name for p in run.parameters] == ["a", "b"]
    warnings = [d for d in res.diagnostics if d.code == DEGRADED]
    assert len(warnings) == 1
    assert "do__it" in warnings[0].message
    assert warnings[0].start_line == 4


def test_generate_files_keeps_order_and_isolates_files():
    sources = [
        SourceFile(path=f"mod_{i}.py", text=_GOOD if i % 2 == 0 else "def (:\n")
        for i in range(6)
    ]
    results = generate_files(sources, max_workers=4)
    assert [r.module_name for r in results] == [f"mod_{i}" for i in range(6)]
    assert [r.text is not None for r in results] == [True, False] * 3
    assert results == generate_files(sources)


def test_write_result_creates_namespace_packages(tmp_path: Path):
    res = generate_file(SourceFile(path="geometry.py", text=_GOOD))
    out = write_result(res, tmp_path, "app.bindings")
    assert out == tmp_path / "app" / "bindings" / "geometry.py"
    assert out.read_text(encoding="utf-8") == res.text
    assert (tmp_path / "app" / "__init__.py").exists()
    assert (tmp_path / "app" / "bindings" / "__init__.py").exists()
    assert not (tmp_path / "__init__.py").exists()

    mtime = out.stat().st_mtime_ns
    write_result(res, tmp_path, "app.bindings")
    assert out.stat().st_mtime_ns == mtime


def test_write_result_skips_results_without_text(tmp_path: Path):
    res = generate_file(SourceFile(path="bad.py", text="def (:\n"))
    assert write_result(res, tmp_path, "generated") is None
    assert not (tmp_path / "generated").exists()


def test_write_result_removes_bindings_of_failed_source(tmp_path: Path):
    out = write_result(generate_file(SourceFile(path="geometry.py", text=_GOOD)), tmp_path, "generated")
    assert out is not None and out.exists()

    broken = generate_file(SourceFile(path="geometry.py", text="def (:\n"))
    assert write_result(broken, tmp_path, "generated") is None
    assert not out.exists()
    assert (tmp_path / "generated" / "__init__.py").exists()


def test_write_result_never_removes_package_marker(tmp_path: Path):
    write_result(generate_file(SourceFile(path="geometry.py", text=_GOOD)), tmp_path, "generated")
    marker = tmp_path / "generated" / "__init__.py"
    assert marker.exists()

    res = generate_file(SourceFile(path="__init__.py", text=_GOOD))
    assert res.text is None
    write_result(res, tmp_path, "generated")
    assert marker.exists()
