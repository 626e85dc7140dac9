"""`ggml-tooling verify`: check the vendored source layout."""

from __future__ import annotations

import sys
from pathlib import Path

from ggml_tooling.cli.parse_common import parse_flags, path_resolver
from ggml_tooling.verify import run


def run_verify_argv(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[2:]
    parsed, rest = parse_flags(argv, ("project_root", "--project-root", Path.cwd, path_resolver))
    if rest:
        print(f"Error: Unknown argument: {rest[0]}", file=sys.stderr)
        print("Usage: ggml-tooling verify [--project-root <path>]", file=sys.stderr)
        sys.exit(1)
    sys.exit(run(parsed["project_root"]))
