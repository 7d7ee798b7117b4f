from __future__ import annotations

import sys
from pathlib import Path

from snakebind import RuntimeEnvironment, SourceFile, generate_file, write_result


def main() -> None:
    here = Path(__file__).resolve().parent
    script = here / "scripts" / "inventory.py"
    out_root = here / "build"

    # Same as `snakebind gen --src examples/scripts --out examples/build`.
    res = generate_file(SourceFile(path=str(script), text=script.read_text(encoding="utf-8")))
    for d in res.diagnostics:
        print(d.format(str(script)))
    write_result(res, out_root, "generated")

    sys.path.insert(0, str(out_root))
    from generated import inventory  # type: ignore[import-not-found]

    env = RuntimeEnvironment(search_paths=[script.parent])
    with inventory.load(env) as api:
        print("Restock('apple', 3) ->", api.Restock("apple", 3))
        print("Restock('pear') ->", api.Restock("pear"))
        print("Levels() ->", api.Levels())
        print("Levels(['apple', 'kiwi']) ->", api.Levels(["apple", "kiwi"]))
        api.Reset("pear")
        print("after Reset('pear') ->", api.Levels())


if __name__ == "__main__":
    main()
