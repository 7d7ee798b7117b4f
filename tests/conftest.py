import sys

import pytest


@pytest.fixture(autouse=True)
def _restore_import_state():
    # Tests import generated bindings and script modules into one process;
    # drop them again so module names can be reused between tests.
    saved_path = list(sys.path)
    saved_modules = set(sys.modules)
    yield
    sys.path[:] = saved_path
    for name in set(sys.modules) - saved_modules:
        del sys.modules[name]


@pytest.fixture()
def write_script(tmp_path):
    """Write a script module under `tmp_path/scripts` and return its path."""
    root = tmp_path / "scripts"
    root.mkdir(exist_ok=True)

    def _write(name: str, text: str):
        path = root / f"{name}.py"
        path.write_text(text, encoding="utf-8")
        return path

    return _write
