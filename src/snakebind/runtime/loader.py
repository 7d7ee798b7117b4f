"""Default import primitive: import script modules from search paths."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any, Iterable


class ModuleLoader:
    def __init__(self, search_paths: Iterable[str | Path] = ()):
        self._paths = [str(Path(p).resolve()) for p in search_paths]
        self._installed = False

    @property
    def search_paths(self) -> list[str]:
        return list(self._paths)

    def _install_paths(self) -> None:
        if self._installed:
            return
        # Front of sys.path, keeping the configured order.
        for p in reversed(self._paths):
            if p not in sys.path:
                sys.path.insert(0, p)
        importlib.invalidate_caches()
        self._installed = True

    def load(self, name: str) -> Any:
        self._install_paths()
        return importlib.import_module(name)

    def release(self, name: str, module: Any) -> None:
        if sys.modules.get(name) is module:
            del sys.modules[name]
