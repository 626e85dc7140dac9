"""`ggml-tooling build`: bindings, native variants, link directives, metadata."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from ggml_tooling.pipeline import PipelineOptions, run


def _positive_int(s: str) -> int:
    import argparse

    try:
        n = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {s}") from e
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1: {s}")
    return n


def run_build_argv(argv: list[str] | None = None) -> None:
    """Parse argv and run the build pipeline. Exits with its 0/1 status."""
    import argparse

    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'ggml-tooling build'
    ap = argparse.ArgumentParser(
        prog="ggml-tooling build",
        description="Build ggml (once per variant), generate bindings and publish metadata",
    )
    ap.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root (default: cwd)",
    )
    ap.add_argument("--out-dir", type=Path, default=None, help="Output root (default: build/ggml-tooling)")
    ap.add_argument("--target", default=None, help="Target triple (default: $TARGET, then host)")
    ap.add_argument(
        "--features",
        action="append",
        default=None,
        help="Backends to enable, comma separated (cuda, metal, vulkan, openblas, hipblas, intel-sycl, openmp)",
    )
    ap.add_argument(
        "--multi-variant",
        action="store_true",
        default=None,
        help="Build every registered variant under its own basename",
    )
    ap.add_argument("--jobs", "-j", type=_positive_int, default=None, help="Parallel compile jobs")
    ap.add_argument(
        "--stage-runtime-dir",
        type=Path,
        default=None,
        help="Copy the built shared libraries into this directory",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    rc = run(
        PipelineOptions(
            project_root=args.project_root,
            out_dir=args.out_dir,
            target=args.target,
            features=args.features,
            multi_variant=args.multi_variant,
            jobs=args.jobs,
            stage_runtime_dir=args.stage_runtime_dir,
        )
    )
    sys.exit(rc)
