"""Main CLI entry point for ggml tooling."""

import sys

from ggml_tooling.cli import (
    build as build_cli,
)
from ggml_tooling.cli import (
    metadata_cmd,
    verify_cmd,
)


def _usage() -> None:
    print("Usage: ggml-tooling <command> [args...]", file=sys.stderr)
    print("Commands:", file=sys.stderr)
    print(
        "  build [--features F] [--multi-variant] ...  - Generate bindings, build ggml, publish metadata",
        file=sys.stderr,
    )
    print("  verify [--project-root P]                   - Check the vendored ggml source layout", file=sys.stderr)
    print("  metadata show|get KEY [--file F]            - Read a committed metadata record", file=sys.stderr)
    print("  keys [--package NAME]                       - List metadata key names", file=sys.stderr)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        _usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "build":
        build_cli.run_build_argv()
    elif command == "verify":
        verify_cmd.run_verify_argv()
    elif command == "metadata":
        metadata_cmd.run_metadata_argv()
    elif command == "keys":
        metadata_cmd.run_keys_argv()
    elif command in ("-h", "--help", "help"):
        _usage()
        sys.exit(0)
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        _usage()
        sys.exit(1)


if __name__ == "__main__":
    main()
