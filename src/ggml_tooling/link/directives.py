"""Linker directives for the final program.

Single-variant mode links the unnamespaced build directly. Multi-variant mode only
publishes search paths: each downstream consumer reads the metadata for the one
variant it embeds and links that variant itself (see consumer_link_directives).
Platform wiring (C++ runtime, frameworks, GPU runtimes) depends on BuildConfig only
and is emitted once in either mode.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from ggml_tooling.build.artifacts import BuildArtifactSet
from ggml_tooling.build.platform import cpp_link_stdlib
from ggml_tooling.features import Backend, BuildConfig
from ggml_tooling.helpers import is_apple, is_windows


class DirectiveKind(StrEnum):
    SEARCH = "search"
    LIBRARY = "library"
    SYSTEM = "system"


@dataclass(frozen=True)
class LinkDirective:
    """kind + value; modifier is native (search), dylib or framework (libraries)."""

    kind: DirectiveKind
    value: str
    modifier: str = "dylib"

    def render(self) -> str:
        if self.kind == DirectiveKind.SEARCH:
            return f"link-search={self.modifier}={self.value}"
        return f"link-lib={self.modifier}={self.value}"


def search(path: Path | str) -> LinkDirective:
    return LinkDirective(DirectiveKind.SEARCH, str(path), "native")


def library(name: str) -> LinkDirective:
    return LinkDirective(DirectiveKind.LIBRARY, name, "dylib")


def system(name: str, modifier: str = "dylib") -> LinkDirective:
    return LinkDirective(DirectiveKind.SYSTEM, name, modifier)


def system_link_directives(config: BuildConfig) -> list[LinkDirective]:
    """Platform and backend runtime libraries required by any variant of the build."""
    target = config.target
    out: list[LinkDirective] = []
    stdlib = cpp_link_stdlib(target)
    if stdlib:
        out.append(system(stdlib))
    if is_apple(target):
        out.append(system("Accelerate", "framework"))
        if config.has(Backend.METAL):
            for fw in ("Foundation", "Metal", "MetalKit"):
                out.append(system(fw, "framework"))
    if config.has(Backend.OPENBLAS):
        blas_path = config.env("OPENBLAS_PATH")
        if blas_path:
            out.append(search(Path(blas_path) / "lib"))
        out.append(system("libopenblas" if is_windows(target) else "openblas"))
    if config.has(Backend.CUDA):
        for lib in ("cublas", "cudart", "culibos"):
            out.append(system(lib))
    if config.has(Backend.VULKAN):
        sdk = config.env("VULKAN_SDK")
        if is_windows(target):
            out.append(system("vulkan-1"))
            if sdk:
                out.append(search(Path(sdk) / "Lib"))
        else:
            out.append(system("vulkan"))
            if sdk and is_apple(target):
                out.append(search(Path(sdk) / "lib"))
    return out


def emit_link_directives(
    config: BuildConfig, artifact_sets: Sequence[BuildArtifactSet]
) -> list[LinkDirective]:
    """Directives for this build: search paths always, library links only in single-variant mode."""
    out: list[LinkDirective] = []
    for artifacts in artifact_sets:
        out.append(search(artifacts.lib_dir))
        if not config.multi_variant:
            out.extend(library(name) for name in artifacts.libraries)
    out.extend(system_link_directives(config))
    return out


def consumer_link_directives(artifacts: BuildArtifactSet) -> list[LinkDirective]:
    """What a downstream stage emits to link exactly one variant read from metadata."""
    out = [search(artifacts.lib_dir)]
    names = artifacts.libraries or (artifacts.basename,)
    out.extend(library(n) for n in names)
    return out


def library_directives(directives: Iterable[LinkDirective]) -> list[LinkDirective]:
    return [d for d in directives if d.kind == DirectiveKind.LIBRARY]


def render_directives(directives: Iterable[LinkDirective]) -> list[str]:
    return [d.render() for d in directives]
