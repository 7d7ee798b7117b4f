"""Handles that generated bindings hold on an imported script module."""

from __future__ import annotations

import enum
import logging
import traceback
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from .errors import ModuleDisposedError, PythonInvocationError, SymbolNotFoundError

if TYPE_CHECKING:
    from .runtime.environment import RuntimeEnvironment

logger = logging.getLogger(__name__)


class Missing:
    """Type of the `MISSING` sentinel: "argument not supplied"."""

    _instance: "Missing | None" = None

    def __new__(cls) -> "Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING = Missing()


class ModuleState(enum.Enum):
    UNIMPORTED = "unimported"
    IMPORTED = "imported"
    DISPOSED = "disposed"


def pack_arguments(
    *,
    positional: Iterable[tuple[str, Any]] = (),
    varargs: Iterable[Any] = (),
    keywords: Iterable[tuple[str, Any]] = (),
    varkw: Mapping[str, Any] | None = None,
) -> tuple[list[Any], dict[str, Any]]:
    """Turn marshaled arguments into the `(args, kwargs)` of the script call.

    Positional values are passed positionally until the first one that was
    not supplied (`MISSING`); later positional values are passed by keyword so
    the script's own default fills the gap. Variadic positional values cannot
    follow such a gap.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    gap: str | None = None
    for name, value in positional:
        if value is MISSING:
            if gap is None:
                gap = name
            continue
        if gap is None:
            args.append(value)
        else:
            kwargs[name] = value

    extra = list(varargs)
    if extra:
        if gap is not None:
            raise TypeError(f"cannot pass variadic arguments after omitting {gap!r}")
        args.extend(extra)

    for name, value in keywords:
        if value is MISSING:
            continue
        kwargs[name] = value

    if varkw:
        for name, value in varkw.items():
            if name in kwargs:
                raise TypeError(f"got multiple values for argument {name!r}")
            kwargs[name] = value
    return args, kwargs


class ModuleHandle:
    """Lazily imported script module with an explicit three-state lifecycle.

    The module is imported on first use, inside the environment's exclusive
    section, and kept until `dispose()`. A disposed handle never imports
    again: every later use raises `ModuleDisposedError` before touching the
    runtime.
    """

    def __init__(self, env: "RuntimeEnvironment", module_name: str) -> None:
        self._env = env
        self._name = module_name
        self._state = ModuleState.UNIMPORTED
        self._module: Any = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ModuleState:
        return self._state

    @contextmanager
    def session(self) -> Iterator[Any]:
        """Hold the exclusive section and yield the imported module."""
        with self._env.exclusive():
            yield self._acquire()

    def _acquire(self) -> Any:
        if self._state is ModuleState.DISPOSED:
            raise ModuleDisposedError(f"module {self._name} is disposed")
        if self._state is ModuleState.UNIMPORTED:
            logger.info("importing module %s", self._name)
            module = self._env.import_module(self._name)
            self._module = module
            self._state = ModuleState.IMPORTED
        return self._module

    def invoke(self, module: Any, function: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
        """Call `module.function`; script exceptions become `PythonInvocationError`.

        Must be called inside `session()`. `SystemExit` raised by the script is
        translated too; `KeyboardInterrupt` propagates unchanged.
        """
        fn = getattr(module, function, None)
        if fn is None or not callable(fn):
            raise SymbolNotFoundError(f"module {self._name} has no callable {function}")
        try:
            return fn(*args, **kwargs)
        except (Exception, SystemExit) as e:
            raise PythonInvocationError(
                str(e),
                function=f"{self._name}.{function}",
                exc_type=type(e).__name__,
                traceback_text="".join(traceback.format_exception(type(e), e, e.__traceback__)),
            ) from e

    def dispose(self) -> None:
        """Release the module. Only the first call has an effect."""
        with self._env.exclusive():
            if self._state is ModuleState.DISPOSED:
                return
            module = self._module
            was_imported = self._state is ModuleState.IMPORTED
            self._module = None
            self._state = ModuleState.DISPOSED
            if was_imported:
                logger.info("disposing module %s", self._name)
                self._env.release_module(self._name, module)

    def __repr__(self) -> str:
        return f"ModuleHandle({self._name!r}, state={self._state.value})"
