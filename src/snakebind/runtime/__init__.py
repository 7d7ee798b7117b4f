"""Runtime environment shared by generated bindings."""

from __future__ import annotations

from .environment import RuntimeEnvironment
from .loader import ModuleLoader

__all__ = ["ModuleLoader", "RuntimeEnvironment"]
