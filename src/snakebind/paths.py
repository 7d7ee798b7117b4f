from __future__ import annotations

import os
from pathlib import Path

DEFAULT_NAMESPACE = "generated"


def default_output_root() -> Path:
    """Return the default root directory for generated bindings.

    Override with `SNAKEBIND_OUT_DIR`.
    """
    override = os.environ.get("SNAKEBIND_OUT_DIR")
    if override:
        return Path(override)
    return Path(".")


def default_namespace() -> str:
    """Return the default namespace (dotted package) for generated modules.

    Override with `SNAKEBIND_NAMESPACE`.
    """
    return os.environ.get("SNAKEBIND_NAMESPACE") or DEFAULT_NAMESPACE
