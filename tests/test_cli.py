from __future__ import annotations

from pathlib import Path

import pytest

from snakebind.cli import main

_CALC = "def add(a: int, b: int) -> int:\n    return a + b\n"


def _scripts(tmp_path: Path) -> Path:
    src = tmp_path / "scripts"
    (src / "nested").mkdir(parents=True)
    (src / "calc.py").write_text(_CALC, encoding="utf-8")
    (src / "nested" / "text_utils.py").write_text("def shout(s: str) -> str:\n    return s.upper()\n", encoding="utf-8")
    (src / "__init__.py").write_text("", encoding="utf-8")
    return src


def test_cli_version(capsys):
    main(["version"])
    assert capsys.readouterr().out.strip()


def test_cli_gen_writes_bindings(tmp_path: Path):
    src = _scripts(tmp_path)
    out = tmp_path / "out"
    main(["gen", "--src", str(src), "--out", str(out), "--namespace", "bindings"])

    pkg = out / "bindings"
    assert (pkg / "calc.py").exists()
    assert (pkg / "text_utils.py").exists()
    assert (pkg / "__init__.py").read_text(encoding="utf-8") == ""
    assert "class ICalc(Protocol):" in (pkg / "calc.py").read_text(encoding="utf-8")


def test_cli_gen_skips_unchanged_sources(tmp_path: Path):
    src = _scripts(tmp_path)
    out = tmp_path / "out"
    main(["gen", "--src", str(src), "--out", str(out)])
    target = out / "generated" / "calc.py"
    target.write_text("# stale\n", encoding="utf-8")

    main(["gen", "--src", str(src), "--out", str(out)])
    assert target.read_text(encoding="utf-8") == "# stale\n"

    main(["gen", "--src", str(src), "--out", str(out), "--force"])
    assert target.read_text(encoding="utf-8").startswith("# <auto-generated/>")


def test_cli_gen_uses_environment_defaults(tmp_path: Path, monkeypatch):
    src = _scripts(tmp_path)
    out = tmp_path / "env_out"
    monkeypatch.setenv("SNAKEBIND_OUT_DIR", str(out))
    monkeypatch.setenv("SNAKEBIND_NAMESPACE", "api.generated")
    main(["gen", "--src", str(src / "calc.py")])
    assert (out / "api" / "generated" / "calc.py").exists()


def test_cli_gen_reports_errors_and_fails(tmp_path: Path, capsys):
    src = tmp_path / "scripts"
    src.mkdir()
    (src / "broken.py").write_text("def ok() -> int:\n    return 1\n\ndef bad(:\n    pass\n", encoding="utf-8")
    out = tmp_path / "out"
    with pytest.raises(SystemExit) as ei:
        main(["gen", "--src", str(src), "--out", str(out)])
    assert ei.value.code == 1
    err = capsys.readouterr().err
    assert "broken.py:" in err
    assert "error SNB001" in err
    # Valid definitions are still bound.
    assert (out / "generated" / "broken.py").exists()


def test_cli_gen_strict_skips_file(tmp_path: Path):
    src = tmp_path / "scripts"
    src.mkdir()
    (src / "broken.py").write_text("def ok(): ...\ndef bad(:\n", encoding="utf-8")
    out = tmp_path / "out"
    with pytest.raises(SystemExit):
        main(["gen", "--src", str(src), "--out", str(out), "--strict"])
    assert not (out / "generated" / "broken.py").exists()


def test_cli_gen_removes_bindings_when_source_breaks(tmp_path: Path, capsys):
    src = tmp_path / "scripts"
    src.mkdir()
    script = src / "calc.py"
    script.write_text(_CALC, encoding="utf-8")
    out = tmp_path / "out"
    main(["gen", "--src", str(src), "--out", str(out)])
    assert (out / "generated" / "calc.py").exists()

    script.write_text("def add(a: int, b: int) -> int:\n    return a + b\n\ndef bad(:\n", encoding="utf-8")
    with pytest.raises(SystemExit) as ei:
        main(["gen", "--src", str(src), "--out", str(out), "--strict", "--force"])
    assert ei.value.code == 1
    assert "error SNB001" in capsys.readouterr().err
    assert not (out / "generated" / "calc.py").exists()


def test_cli_gen_rejects_sources_with_the_same_module_name(tmp_path: Path, capsys):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()
    (a / "util.py").write_text("def alpha() -> int:\n    return 1\n", encoding="utf-8")
    (b / "util.py").write_text("def beta() -> int:\n    return 2\n", encoding="utf-8")
    (b / "calc.py").write_text(_CALC, encoding="utf-8")
    out = tmp_path / "out"
    with pytest.raises(SystemExit) as ei:
        main(["gen", "--src", str(a), str(b), "--out", str(out)])
    assert ei.value.code == 1

    err = capsys.readouterr().err
    assert err.count("error SNB001") == 2
    assert str(a / "util.py") in err
    assert str(b / "util.py") in err
    assert not (out / "generated" / "util.py").exists()
    # Other sources are still generated.
    assert (out / "generated" / "calc.py").exists()


def test_cli_check(tmp_path: Path, capsys):
    src = _scripts(tmp_path)
    main(["check", "--src", str(src)])
    assert "SNB" not in capsys.readouterr().err

    main(["check", "--src", str(src), "-v"])
    assert "info SNB002: Generated ICalc with 1 method(s)" in capsys.readouterr().err

    (src / "warn.py").write_text("def f(x: tuple[int, ...]): ...\n", encoding="utf-8")
    main(["check", "--src", str(src)])
    assert "warning SNB003" in capsys.readouterr().err
    assert not (tmp_path / "generated").exists()


def test_cli_missing_source(tmp_path: Path):
    with pytest.raises(SystemExit, match="source not found"):
        main(["check", "--src", str(tmp_path / "nope.py")])
