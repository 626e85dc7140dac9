"""Drive the upstream CMake build once per variant.

Every variant configures the same source tree into its own build directory and install
prefix (<out_dir>/<variant>/). Namespaced variants pass GGML_NAME=<basename> so the
primary library and its sub-libraries come out as <basename>, <basename>-base,
<basename>-cpu, <basename>-<backend>.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from ggml_tooling.build.artifacts import BuildArtifactSet
from ggml_tooling.build.package_config import patch_package_config
from ggml_tooling.errors import NativeBuildError
from ggml_tooling.features import BuildConfig
from ggml_tooling.helpers import cmake_cache_args
from ggml_tooling.variants import Variant

log = logging.getLogger(__name__)

BUILD_TYPE = "Release"

BASE_DEFINES: dict[str, str] = {
    "BUILD_SHARED_LIBS": "ON",
    "CMAKE_BUILD_TYPE": BUILD_TYPE,
    "CMAKE_POSITION_INDEPENDENT_CODE": "ON",
    "CMAKE_INSTALL_LIBDIR": "lib",
    "CMAKE_INSTALL_BINDIR": "bin",
    "GGML_ALL_WARNINGS": "OFF",
    "GGML_ALL_WARNINGS_3RD_PARTY": "OFF",
    "GGML_BUILD_TESTS": "OFF",
    "GGML_BUILD_EXAMPLES": "OFF",
}

# Tail of captured output kept in the error when a step fails.
_OUTPUT_TAIL = 4000


def variant_prefix(out_dir: Path, variant: Variant) -> Path:
    """Install prefix owned by one variant."""
    return out_dir / variant.name


def variant_defines(config: BuildConfig, variant: Variant, prefix: Path) -> dict[str, str]:
    """All -D defines for one variant: base, backend/platform, then the variant's own layout.

    The install layout and library name decide what metadata advertises, so forwarded
    environment defines never override them.
    """
    defines = dict(BASE_DEFINES)
    defines.update(config.cmake_defines())
    pinned = {
        "BUILD_SHARED_LIBS": BASE_DEFINES["BUILD_SHARED_LIBS"],
        "CMAKE_INSTALL_PREFIX": str(prefix),
        "CMAKE_INSTALL_LIBDIR": BASE_DEFINES["CMAKE_INSTALL_LIBDIR"],
        "CMAKE_INSTALL_BINDIR": BASE_DEFINES["CMAKE_INSTALL_BINDIR"],
    }
    if variant.namespaced:
        pinned["GGML_NAME"] = variant.basename
    elif defines.pop("GGML_NAME", None) is not None:
        log.warning("Ignoring GGML_NAME from the environment for the %s variant", variant.name)
    for key, value in pinned.items():
        if defines.get(key, value) != value:
            log.warning("Ignoring %s=%s from the environment for variant %s", key, defines[key], variant.name)
    defines.update(pinned)
    return defines


def build_type(defines: dict[str, str]) -> str:
    return defines.get("CMAKE_BUILD_TYPE") or BUILD_TYPE


def configure_command(
    source_dir: Path, build_dir: Path, defines: dict[str, str], cmake: str = "cmake"
) -> list[str]:
    return [cmake, "-S", str(source_dir), "-B", str(build_dir), *cmake_cache_args(defines)]


def build_command(
    build_dir: Path, jobs: int | None = None, cmake: str = "cmake", config: str = BUILD_TYPE
) -> list[str]:
    n = jobs if jobs and jobs > 0 else (os.cpu_count() or 1)
    return [cmake, "--build", str(build_dir), "--config", config, "--parallel", str(n)]


def install_command(build_dir: Path, cmake: str = "cmake", config: str = BUILD_TYPE) -> list[str]:
    return [cmake, "--install", str(build_dir), "--config", config]


def _tail(text: str | None) -> str:
    if not text:
        return ""
    return text[-_OUTPUT_TAIL:]


def _run_step(cmd: list[str], *, variant: Variant, step: str, cwd: Path) -> None:
    log.debug("[%s] %s: %s", variant.name, step, " ".join(cmd))
    try:
        r = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
    except FileNotFoundError as e:
        msg = f"{cmd[0]} not found while running CMake {step} for variant {variant.name}"
        raise NativeBuildError(
            msg, variant=variant.name, hint="Install CMake and a C/C++ toolchain"
        ) from e
    if r.returncode != 0:
        msg = f"CMake {step} failed for variant {variant.name} (exit code {r.returncode})"
        raise NativeBuildError(
            msg,
            variant=variant.name,
            context={
                "command": " ".join(cmd),
                "stdout": _tail(r.stdout),
                "stderr": _tail(r.stderr),
            },
        )
    log.debug("[%s] %s ok", variant.name, step)


def build_variant(
    config: BuildConfig,
    variant: Variant,
    source_dir: Path,
    out_dir: Path,
    *,
    jobs: int | None = None,
    cmake: str = "cmake",
) -> BuildArtifactSet:
    """Configure, build and install one variant. Raises NativeBuildError on any failed step."""
    source_dir = source_dir.resolve()
    prefix = variant_prefix(out_dir.resolve(), variant)
    build_dir = prefix / "build"
    defines = variant_defines(config, variant, prefix)

    print(f"🔨 Building {variant.name} variant ({variant.basename})...")
    _run_step(
        configure_command(source_dir, build_dir, defines, cmake),
        variant=variant,
        step="configure",
        cwd=source_dir,
    )
    build_config = build_type(defines)
    _run_step(
        build_command(build_dir, jobs, cmake, build_config), variant=variant, step="build", cwd=source_dir
    )
    _run_step(install_command(build_dir, cmake, build_config), variant=variant, step="install", cwd=source_dir)

    if variant.namespaced:
        patch_package_config(prefix, variant.basename)

    artifacts = BuildArtifactSet(
        variant=variant.name,
        basename=variant.basename,
        include_dir=source_dir / "include",
        lib_dir=prefix / "lib",
        bin_dir=prefix / "bin",
        libraries=tuple(variant.library_names(config.library_suffixes())),
    )
    if artifacts.lib_dir.is_dir():
        for p in sorted(artifacts.lib_dir.iterdir()):
            log.debug("[%s] installed: %s", variant.name, p.name)
    print(f"✅ {variant.name} variant built: {artifacts.lib_dir}")
    return artifacts
