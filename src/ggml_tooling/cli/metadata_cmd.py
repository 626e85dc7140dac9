"""`ggml-tooling metadata show|get` and `ggml-tooling keys`."""

from __future__ import annotations

import sys
from pathlib import Path

from ggml_tooling.cli.parse_common import parse_flags, path_resolver
from ggml_tooling.config import DEFAULT_LAYOUT
from ggml_tooling.errors import ToolingError
from ggml_tooling.metadata import DEFAULT_PACKAGE, MetadataReader, expected_keys
from ggml_tooling.variants import DEFAULT_VARIANT, VARIANTS

USAGE = "Usage: ggml-tooling metadata show|get <KEY> [--file <metadata.json>]"


def _default_file() -> Path:
    return (Path.cwd() / DEFAULT_LAYOUT["out_dir"] / DEFAULT_LAYOUT["metadata_file"]).resolve()


def run_metadata_argv(argv: list[str] | None = None) -> None:
    """Read a committed metadata record: show all keys or get one value."""
    if argv is None:
        argv = sys.argv[2:]
    parsed, rest = parse_flags(argv, ("file", "--file", _default_file, path_resolver))
    if not rest or rest[0] not in ("show", "get"):
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    try:
        reader = MetadataReader.from_file(parsed["file"])
        if rest[0] == "show":
            if len(rest) != 1:
                print(USAGE, file=sys.stderr)
                sys.exit(1)
            if not reader.values:
                print(f"⚠️  No metadata in {reader.source}")
            for key, value in sorted(reader.values.items()):
                print(f"{key}={value}")
        else:
            if len(rest) != 2:
                print(USAGE, file=sys.stderr)
                sys.exit(1)
            print(reader.get(rest[1]))
    except ToolingError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


def run_keys_argv(argv: list[str] | None = None) -> None:
    """List the metadata key names a build publishes, per mode."""
    if argv is None:
        argv = sys.argv[2:]
    parsed, rest = parse_flags(argv, ("package", "--package", DEFAULT_PACKAGE, None))
    if rest:
        print(f"Error: Unknown argument: {rest[0]}", file=sys.stderr)
        print("Usage: ggml-tooling keys [--package <name>]", file=sys.stderr)
        sys.exit(1)
    package = parsed["package"]
    print("# single-variant")
    for key in expected_keys(package, [DEFAULT_VARIANT]):
        print(key)
    print("# multi-variant")
    for key in expected_keys(package, VARIANTS):
        print(key)
    sys.exit(0)
