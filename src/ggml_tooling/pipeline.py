"""Build pipeline: resolve -> bindings -> [docs stop] -> build variants -> link -> metadata.

Stages run strictly in sequence. Nothing is written before the build configuration
resolves, and the metadata record is committed only after every variant built, so a
failed invocation publishes nothing.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ggml_tooling.build import BuildArtifactSet, build_variant, stage_runtime_libraries
from ggml_tooling.config import load_project_config
from ggml_tooling.errors import ConfigurationError, SourceNotFoundError, ToolingError
from ggml_tooling.features import BuildConfig, resolve_build_config
from ggml_tooling.gen import Allowlist, generate_bindings
from ggml_tooling.helpers import env_flag, env_present, host_target_triple
from ggml_tooling.link import LinkDirective, emit_link_directives, render_directives
from ggml_tooling.metadata import MetadataChannel
from ggml_tooling.variants import VARIANTS, Variant, variants_for_mode

log = logging.getLogger(__name__)

DOCS_SIGNALS = ("READTHEDOCS", "GGML_TOOLING_DOCS_ONLY")

FEATURES_ENV = "GGML_TOOLING_FEATURES"
MULTI_VARIANT_ENV = "GGML_TOOLING_MULTI_VARIANT"
TARGET_ENV = "TARGET"


@dataclass
class PipelineOptions:
    """Caller-supplied inputs. None means "not given here": fall back to env, then YAML, then default."""

    project_root: Path = field(default_factory=Path.cwd)
    out_dir: Path | None = None
    target: str | None = None
    features: Sequence[str] | None = None
    multi_variant: bool | None = None
    jobs: int | None = None
    stage_runtime_dir: Path | None = None
    environ: Mapping[str, str] | None = None
    variants: Sequence[Variant] = VARIANTS
    cmake: str = "cmake"


@dataclass
class PipelineResult:
    bindings_path: Path
    docs_only: bool = False
    multi_variant: bool = False
    artifact_sets: list[BuildArtifactSet] = field(default_factory=list)
    directives: list[LinkDirective] = field(default_factory=list)
    metadata_path: Path | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    staged: list[Path] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedPaths:
    project_root: Path
    source_dir: Path
    include_dir: Path
    wrapper_header: Path
    out_dir: Path
    bindings_path: Path
    metadata_path: Path
    package_name: str


def docs_signal(environ: Mapping[str, str]) -> str | None:
    """Name of the restricted-environment variable that is set, if any."""
    return env_present(environ, DOCS_SIGNALS)


def resolve_paths(project_root: Path, layout: Mapping[str, str], out_dir: Path | None) -> ResolvedPaths:
    root = project_root.resolve()
    source_dir = (root / layout["source_dir"]).resolve()
    out = (out_dir if out_dir is not None else root / layout["out_dir"]).resolve()
    return ResolvedPaths(
        project_root=root,
        source_dir=source_dir,
        include_dir=source_dir / "include",
        wrapper_header=(root / layout["wrapper_header"]).resolve(),
        out_dir=out,
        bindings_path=out / layout["bindings_file"],
        metadata_path=out / layout["metadata_file"],
        package_name=layout["package_name"],
    )


def required_source_paths(paths: ResolvedPaths) -> list[Path]:
    return [
        paths.source_dir,
        paths.source_dir / "CMakeLists.txt",
        paths.include_dir / "ggml.h",
        paths.include_dir / "gguf.h",
        paths.wrapper_header,
    ]


def check_source_tree(paths: ResolvedPaths) -> None:
    """Raise SourceNotFoundError naming the first required path that is missing."""
    for p in required_source_paths(paths):
        if not p.exists():
            msg = f"Required source path not found: {p}"
            raise SourceNotFoundError(
                msg,
                hint="Is the ggml source tree vendored (git submodule update --init)?",
                context={"source_dir": str(paths.source_dir)},
            )


def _features_option(options: PipelineOptions, env: Mapping[str, str], file_opts: Mapping[str, Any]) -> list[str]:
    if options.features is not None:
        return list(options.features)
    if FEATURES_ENV in env:
        return [env[FEATURES_ENV]]
    value = file_opts.get("features") or []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _multi_variant_option(options: PipelineOptions, env: Mapping[str, str], file_opts: Mapping[str, Any]) -> bool:
    if options.multi_variant is not None:
        return options.multi_variant
    if MULTI_VARIANT_ENV in env:
        return env_flag(env, MULTI_VARIANT_ENV)
    return bool(file_opts.get("multi_variant", False))


def _jobs_option(options: PipelineOptions, file_opts: Mapping[str, Any]) -> int | None:
    if options.jobs is not None:
        return options.jobs
    value = file_opts.get("jobs")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        msg = f"jobs must be an integer, got {value!r}"
        raise ConfigurationError(msg) from e


def _allowlist_option(file_opts: Mapping[str, Any]) -> Allowlist:
    extra = file_opts.get("allowlist") or {}
    if not isinstance(extra, Mapping):
        msg = "allowlist must be a mapping of functions/types/constants to pattern lists"
        raise ConfigurationError(msg)
    return Allowlist().extended(
        functions=tuple(extra.get("functions") or ()),
        types=tuple(extra.get("types") or ()),
        constants=tuple(extra.get("constants") or ()),
    )


def resolve(options: PipelineOptions) -> tuple[BuildConfig, ResolvedPaths, dict[str, Any]]:
    """Merge CLI > environment > ggml-tooling.yaml > defaults. Touches nothing on disk.

    Under a restricted-environment signal the features are parsed but not validated: no
    native build follows, so missing SDKs and compiler conflicts do not matter.
    """
    env = os.environ if options.environ is None else options.environ
    project = load_project_config(options.project_root)
    file_opts = project["options"]
    paths = resolve_paths(options.project_root, project["layout"], options.out_dir)
    target = options.target or env.get(TARGET_ENV) or host_target_triple()
    config = resolve_build_config(
        _features_option(options, env, file_opts),
        target,
        multi_variant=_multi_variant_option(options, env, file_opts),
        environ=env,
        validate=docs_signal(env) is None,
    )
    extras = {
        "jobs": _jobs_option(options, file_opts),
        "allowlist": _allowlist_option(file_opts),
    }
    return config, paths, extras


def run_pipeline(options: PipelineOptions) -> PipelineResult:
    """Run every stage once. Raises ToolingError subclasses on any fatal condition."""
    env = os.environ if options.environ is None else options.environ
    config, paths, extras = resolve(options)
    check_source_tree(paths)
    log.debug("Source tree %s, output %s", paths.source_dir, paths.out_dir)

    bindings_path, _surface = generate_bindings(
        paths.wrapper_header,
        [paths.include_dir],
        paths.bindings_path,
        extras["allowlist"],
    )

    signal = docs_signal(env)
    if signal is not None:
        print(f"📚 {signal} is set: bindings only, skipping native build")
        return PipelineResult(bindings_path=bindings_path, docs_only=True)

    channel = MetadataChannel(paths.package_name)
    channel.publish_include(paths.include_dir)

    artifact_sets: list[BuildArtifactSet] = []
    for variant in variants_for_mode(config.multi_variant, options.variants):
        artifacts = build_variant(
            config,
            variant,
            paths.source_dir,
            paths.out_dir,
            jobs=extras["jobs"],
            cmake=options.cmake,
        )
        channel.publish_variant(artifacts)
        log.debug("Staged metadata for %s", variant.name)
        artifact_sets.append(artifacts)

    directives = emit_link_directives(config, artifact_sets)
    channel.commit(paths.metadata_path)

    staged: list[Path] = []
    if options.stage_runtime_dir is not None:
        for artifacts in artifact_sets:
            staged.extend(stage_runtime_libraries(artifacts, options.stage_runtime_dir, config.target))

    return PipelineResult(
        bindings_path=bindings_path,
        artifact_sets=artifact_sets,
        multi_variant=config.multi_variant,
        directives=directives,
        metadata_path=paths.metadata_path,
        metadata=channel.values,
        staged=staged,
    )


def print_error(err: ToolingError) -> None:
    print(f"❌ {err}", file=sys.stderr)


def run(options: PipelineOptions) -> int:
    """Run the pipeline and print directives. Returns 0/1; errors go to stderr."""
    try:
        result = run_pipeline(options)
    except ToolingError as e:
        print_error(e)
        return 1
    if result.docs_only:
        return 0
    for line in render_directives(result.directives):
        print(line)
    mode = "multi-variant" if result.multi_variant else "single-variant"
    print(f"✅ Built {len(result.artifact_sets)} variant(s) ({mode}); metadata: {result.metadata_path}")
    return 0
