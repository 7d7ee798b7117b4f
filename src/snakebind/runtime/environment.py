"""The exclusive runtime section and module import/release primitives."""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, TypeVar

from ..errors import ModuleImportError, SnakeBindError
from .loader import ModuleLoader

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RuntimeEnvironment:
    """Everything generated bindings need from the runtime.

    One environment stands for one interpreter runtime: all bindings created
    from it share its exclusive section, so at most one thread at a time
    imports, calls into or disposes a script module. Acquisition blocks
    without a timeout; a script call that never returns blocks every other
    caller.

    `importer` and `releaser` default to a `ModuleLoader` over
    `search_paths`. `lock` defaults to a re-entrant lock so a script that
    calls back into a binding on the same thread does not deadlock.
    """

    def __init__(
        self,
        *,
        search_paths: Iterable[str | Path] = (),
        importer: Callable[[str], Any] | None = None,
        releaser: Callable[[str, Any], None] | None = None,
        lock: AbstractContextManager[Any] | None = None,
    ) -> None:
        self._loader = ModuleLoader(search_paths)
        self._importer = importer if importer is not None else self._loader.load
        self._releaser = releaser if releaser is not None else self._loader.release
        self._lock: AbstractContextManager[Any] = lock if lock is not None else threading.RLock()
        self._bindings: dict[str, Any] = {}

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._lock:
            yield

    def import_module(self, name: str) -> Any:
        try:
            return self._importer(name)
        except SnakeBindError:
            raise
        except Exception as e:
            raise ModuleImportError(f"failed to import module {name}: {e}") from e

    def release_module(self, name: str, module: Any) -> None:
        self._releaser(name, module)

    def binding(self, module_name: str, factory: Callable[["RuntimeEnvironment"], T]) -> T:
        """Return the binding cached for `module_name`, creating it on first use."""
        with self.exclusive():
            existing = self._bindings.get(module_name)
            if existing is None:
                logger.debug("creating binding for module %s", module_name)
                existing = factory(self)
                self._bindings[module_name] = existing
            return existing
