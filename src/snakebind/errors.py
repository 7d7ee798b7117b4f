"""Domain-specific errors for snakebind."""

from __future__ import annotations


class SnakeBindError(Exception):
    """Base error for snakebind."""


class GenerationError(SnakeBindError):
    """Raised when bindings cannot be generated for a module."""


class MarshalError(SnakeBindError):
    """Raised when a value does not match the type a binding declares for it."""


class ModuleImportError(SnakeBindError):
    """Raised when the script module cannot be imported."""


class ModuleDisposedError(SnakeBindError):
    """Raised when a binding is used after its module was disposed."""


class SymbolNotFoundError(SnakeBindError):
    """Raised when the imported module has no callable with the bound name."""


class PythonInvocationError(SnakeBindError):
    """Raised when a bound script function raises.

    The original exception is chained as ``__cause__``; its type name, message
    and formatted traceback are kept on the error.
    """

    def __init__(
        self,
        message: str,
        *,
        function: str,
        exc_type: str,
        traceback_text: str | None = None,
    ) -> None:
        super().__init__(f"{function}: {exc_type}: {message}")
        self.message = message
        self.function = function
        self.exc_type = exc_type
        self.traceback_text = traceback_text
