from __future__ import annotations

from pathlib import Path

import msgpack

from snakebind.cache import CACHE_NAME, GenerationCache, options_fingerprint
from snakebind.driver import GeneratorOptions, SourceFile, generate_file

_SRC = "def ping() -> str:\n    return 'pong'\n"


def test_cache_round_trip(tmp_path: Path):
    opts = GeneratorOptions()
    source = SourceFile(path="net.py", text=_SRC, token="100")
    cache = GenerationCache.for_output_root(tmp_path)
    assert not cache.is_fresh(source, opts)

    cache.update(generate_file(source, opts), opts)
    assert cache.save()
    assert (tmp_path / CACHE_NAME).exists()
    assert not cache.save()

    reloaded = GenerationCache.for_output_root(tmp_path)
    assert len(reloaded) == 1
    assert reloaded.is_fresh(source, opts)
    assert not reloaded.is_fresh(SourceFile(path="net.py", text=_SRC, token="101"), opts)
    assert not reloaded.is_fresh(source, GeneratorOptions(namespace="other"))
    assert not reloaded.is_fresh(source, opts, tmp_path / "generated" / "net.py")


def test_sources_without_token_are_never_cached(tmp_path: Path):
    opts = GeneratorOptions()
    source = SourceFile(path="net.py", text=_SRC)
    cache = GenerationCache.for_output_root(tmp_path)
    cache.update(generate_file(source, opts), opts)
    assert not cache.is_fresh(source, opts)
    assert not cache.save()


def test_failed_results_drop_their_entry(tmp_path: Path):
    opts = GeneratorOptions()
    cache = GenerationCache.for_output_root(tmp_path)
    cache.update(generate_file(SourceFile(path="net.py", text=_SRC, token="1"), opts), opts)
    assert len(cache) == 1
    broken = SourceFile(path="net.py", text="def (:\n", token="2")
    cache.update(generate_file(broken, opts), opts)
    assert len(cache) == 0


def test_unreadable_cache_starts_empty(tmp_path: Path, caplog):
    (tmp_path / CACHE_NAME).write_bytes(b"\xc1not msgpack")
    cache = GenerationCache.for_output_root(tmp_path)
    assert len(cache) == 0
    assert "ignoring" in caplog.text


def test_cache_with_unknown_version_is_ignored(tmp_path: Path):
    (tmp_path / CACHE_NAME).write_bytes(msgpack.packb({"version": 99, "entries": {}}, use_bin_type=True))
    assert len(GenerationCache.for_output_root(tmp_path)) == 0


def test_options_fingerprint_changes_with_options():
    assert options_fingerprint(GeneratorOptions()) == options_fingerprint(GeneratorOptions())
    assert options_fingerprint(GeneratorOptions()) != options_fingerprint(GeneratorOptions(strict=True))
