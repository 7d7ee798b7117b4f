"""Incremental generation cache.

Maps each source path to the modification token and options it was last
generated with, so unchanged inputs are not regenerated. Stored as a
MessagePack file in the output root.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Any

import msgpack

from .driver import GenerationResult, GeneratorOptions, SourceFile

logger = logging.getLogger(__name__)

CACHE_NAME = ".snakebind-cache"
_CACHE_VERSION = 1


def options_fingerprint(options: GeneratorOptions) -> str:
    payload = msgpack.packb(sorted(asdict(options).items()), use_bin_type=True)
    return hashlib.sha256(payload).hexdigest()


class GenerationCache:
    def __init__(self, path: Path, entries: dict[str, dict[str, Any]] | None = None) -> None:
        self.path = Path(path)
        self._entries: dict[str, dict[str, Any]] = dict(entries or {})
        self._dirty = False

    @classmethod
    def for_output_root(cls, out_root: Path) -> "GenerationCache":
        return cls.load(Path(out_root) / CACHE_NAME)

    @classmethod
    def load(cls, path: Path) -> "GenerationCache":
        """Read the cache at `path`; a missing or unreadable file gives an empty cache."""
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            obj = msgpack.unpackb(path.read_bytes(), raw=False)
        except Exception as e:  # noqa: BLE001 - any corrupt cache is discarded
            logger.warning("ignoring unreadable generation cache %s: %s", path, e)
            return cls(path)
        if not isinstance(obj, dict) or obj.get("version") != _CACHE_VERSION:
            logger.warning("ignoring generation cache %s with unknown layout", path)
            return cls(path)
        entries = obj.get("entries")
        if not isinstance(entries, dict):
            logger.warning("ignoring generation cache %s with unknown layout", path)
            return cls(path)
        return cls(path, {k: v for k, v in entries.items() if isinstance(v, dict)})

    def __len__(self) -> int:
        return len(self._entries)

    def is_fresh(self, source: SourceFile, options: GeneratorOptions, out_file: Path | None = None) -> bool:
        """True when `source` was generated with the same token and options.

        Sources without a token are never fresh. When `out_file` is given it
        must still exist.
        """
        if source.token is None:
            return False
        entry = self._entries.get(source.path)
        if entry is None:
            return False
        if entry.get("token") != source.token or entry.get("options") != options_fingerprint(options):
            return False
        if out_file is not None and not Path(out_file).exists():
            return False
        logger.debug("cache hit for %s", source.path)
        return True

    def update(self, result: GenerationResult, options: GeneratorOptions) -> None:
        """Record a result. Results with errors or without a token are forgotten."""
        source = result.source
        if source.token is None or not result.ok or result.text is None:
            if self._entries.pop(source.path, None) is not None:
                self._dirty = True
            return
        self._entries[source.path] = {
            "token": source.token,
            "options": options_fingerprint(options),
            "module": result.module_name,
        }
        self._dirty = True

    def save(self) -> bool:
        """Write the cache if it changed; returns whether it was written."""
        if not self._dirty:
            return False
        payload = msgpack.packb(
            {"version": _CACHE_VERSION, "entries": self._entries},
            use_bin_type=True,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name + ".", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        finally:
            try:
                if os.path.exists(tmp):
                    os.unlink(tmp)
            except OSError:
                pass
        self._dirty = False
        return True
