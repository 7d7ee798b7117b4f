"""snakebind: typed host bindings for untyped Python script modules."""

from __future__ import annotations

from . import errors
from .driver import GenerationResult, GeneratorOptions, SourceFile, generate_file, generate_files, write_result
from .handle import MISSING, ModuleState
from .runtime import RuntimeEnvironment
from .scan import parse_module
from .typemap import map_annotation

__all__ = [
    "MISSING",
    "GenerationResult",
    "GeneratorOptions",
    "ModuleState",
    "RuntimeEnvironment",
    "SourceFile",
    "errors",
    "generate_file",
    "generate_files",
    "map_annotation",
    "parse_module",
    "write_result",
]
