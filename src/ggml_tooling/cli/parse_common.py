"""Flag parsing for `verify`, `metadata` and `keys`, which take one or two valued options."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

# (key, flag, default or default factory, converter or None)
FlagSpec = tuple[str, str, Any, Callable[[str], Any] | None]


def parse_flags(argv: list[str], *specs: FlagSpec) -> tuple[dict[str, Any], list[str]]:
    """Pull `--project-root DIR`, `--file PATH`, `--package NAME` style options out of argv.

    Positionals (`show`, `get KEY`) and unrecognised arguments come back in order so the
    subcommand can dispatch on them or report them. A flag given as the last argument with
    no value is left in the remainder.
    """
    by_flag = {flag: (key, converter) for key, flag, _default, converter in specs}
    values: dict[str, Any] = {
        key: default() if callable(default) else default for key, _flag, default, _converter in specs
    }
    rest: list[str] = []
    args = iter(argv)
    for arg in args:
        if arg not in by_flag:
            rest.append(arg)
            continue
        raw = next(args, None)
        if raw is None:
            rest.append(arg)
            break
        key, converter = by_flag[arg]
        values[key] = converter(raw) if converter else raw
    return values, rest


def path_resolver(s: str) -> Path:
    return Path(s).resolve()
