from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest

from snakebind.driver import SourceFile, generate_file, write_result
from snakebind.errors import MarshalError, ModuleDisposedError, PythonInvocationError
from snakebind.handle import ModuleState
from snakebind.runtime import RuntimeEnvironment

_SCRIPT = '''
"""Small script module used by the bindings tests."""

CALLS = []


def add(a: int, b: int = 10) -> int:
    CALLS.append("add")
    return a + b


def describe(name: str, tags: list[str] = [], *, loud: bool = False) -> str:
    text = f"{name}:{len(tags)}"
    return text.upper() if loud else text


def total(*values: float) -> float:
    return sum(values)


def options(**flags: bool) -> dict[str, bool]:
    return dict(flags)


def fail(msg: str) -> None:
    raise RuntimeError(msg)


def wrong_type() -> int:
    return "nope"


def maybe(x: int | None = None) -> int | None:
    return x


def echo(value):
    return value


def pair(a: int, b: str) -> tuple[int, str]:
    return [a, b]
'''


def _load(tmp_path: Path, write_script):
    script = write_script("calc_tools", _SCRIPT)
    res = generate_file(SourceFile(path=str(script), text=script.read_text(encoding="utf-8")))
    assert res.text is not None
    assert res.ok

    out = tmp_path / "out"
    write_result(res, out, "generated")
    sys.path.insert(0, str(out))
    mod = importlib.import_module("generated.calc_tools")
    env = RuntimeEnvironment(search_paths=[script.parent])
    return mod, env


def test_generate_import_and_call(tmp_path: Path, write_script):
    mod, env = _load(tmp_path, write_script)
    api = mod.load(env)
    assert mod.load(env) is api
    assert api.state is ModuleState.UNIMPORTED
    assert "calc_tools" not in sys.modules

    assert api.Add(1) == 11
    assert api.Add(1, 2) == 3
    assert api.state is ModuleState.IMPORTED
    assert sys.modules["calc_tools"].CALLS == ["add", "add"]

    assert api.Describe("x") == "x:0"
    assert api.Describe("x", ["a", "b"], loud=True) == "X:2"
    assert api.Total(1, 2.5) == 3.5
    assert api.Total() == 0
    assert api.Options(a=True, b=False) == {"a": True, "b": False}
    assert api.Maybe() is None
    assert api.Maybe(3) == 3
    assert api.Pair(1, "x") == (1, "x")

    sentinel = object()
    assert api.Echo(sentinel) is sentinel


def test_marshal_errors(tmp_path: Path, write_script):
    mod, env = _load(tmp_path, write_script)
    api = mod.load(env)
    with pytest.raises(MarshalError, match="a: expected int, got str"):
        api.Add("1")
    with pytest.raises(MarshalError, match="return: expected int, got str"):
        api.WrongType()
    with pytest.raises(MarshalError, match="values"):
        api.Total(1, "2")


def test_script_exceptions_surface_as_invocation_errors(tmp_path: Path, write_script):
    mod, env = _load(tmp_path, write_script)
    api = mod.load(env)
    with pytest.raises(PythonInvocationError) as ei:
        api.Fail("boom")
    err = ei.value
    assert err.exc_type == "RuntimeError"
    assert err.message == "boom"
    assert err.function == "calc_tools.fail"
    assert "raise RuntimeError(msg)" in err.traceback_text
    assert isinstance(err.__cause__, RuntimeError)


def test_close_disposes_module(tmp_path: Path, write_script):
    mod, env = _load(tmp_path, write_script)
    with mod.load(env) as api:
        assert api.Add(2, 2) == 4
        assert "calc_tools" in sys.modules
    assert api.state is ModuleState.DISPOSED
    assert "calc_tools" not in sys.modules
    with pytest.raises(ModuleDisposedError):
        api.Add(1)
    api.close()
