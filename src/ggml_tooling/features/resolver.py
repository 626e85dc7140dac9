"""Resolve feature flags + target triple into an immutable BuildConfig.

Reads the environment mapping only; never touches the filesystem. Every failure is a
ConfigurationError naming the feature or variable at fault.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from ggml_tooling.errors import ConfigurationError
from ggml_tooling.helpers import is_apple, is_msvc, is_windows, split_list

log = logging.getLogger(__name__)


class Backend(StrEnum):
    """Optional compute backends, named as they are spelled in --features."""

    CUDA = "cuda"
    METAL = "metal"
    VULKAN = "vulkan"
    OPENBLAS = "openblas"
    HIPBLAS = "hipblas"
    INTEL_SYCL = "intel-sycl"


OPENMP_FEATURE = "openmp"


@dataclass(frozen=True)
class BackendSpec:
    """How one backend is switched on upstream and what it produces."""

    suffix: str
    cmake: Mapping[str, str]
    compilers: tuple[str, str] | None = None
    apple_only: bool = False
    required_env: str | None = None
    required_env_on: tuple[str, ...] = ()


BACKEND_SPECS: dict[Backend, BackendSpec] = {
    Backend.CUDA: BackendSpec(
        suffix="cuda",
        cmake={"GGML_CUDA": "ON", "CMAKE_CUDA_FLAGS": "-Xcompiler=-fPIC"},
    ),
    Backend.METAL: BackendSpec(
        suffix="metal",
        cmake={"GGML_METAL": "ON", "GGML_METAL_NDEBUG": "ON", "GGML_METAL_EMBED_LIBRARY": "ON"},
        apple_only=True,
    ),
    Backend.VULKAN: BackendSpec(
        suffix="vulkan",
        cmake={"GGML_VULKAN": "ON"},
        required_env="VULKAN_SDK",
        required_env_on=("windows", "apple"),
    ),
    Backend.OPENBLAS: BackendSpec(
        suffix="blas",
        cmake={"GGML_BLAS": "ON", "GGML_BLAS_VENDOR": "OpenBLAS"},
        required_env="BLAS_INCLUDE_DIRS",
    ),
    Backend.HIPBLAS: BackendSpec(
        suffix="hip",
        cmake={"GGML_HIP": "ON"},
        compilers=("hipcc", "hipcc"),
    ),
    Backend.INTEL_SYCL: BackendSpec(
        suffix="sycl",
        cmake={"GGML_SYCL": "ON", "GGML_SYCL_TARGET": "INTEL"},
        compilers=("icx", "icpx"),
    ),
}

# Optional inputs forwarded when present; never required.
OPTIONAL_ENV = ("AMDGPU_TARGETS", "OPENBLAS_PATH")

# The tooling's own switches share the GGML_ prefix but are not CMake defines.
_PASSTHROUGH_PREFIXES = ("GGML_", "CMAKE_")
_OWN_PREFIX = "GGML_TOOLING_"


def platform_library_suffixes(target: str) -> list[str]:
    """Backend sub-libraries upstream builds without being asked for them on this target."""
    if is_apple(target):
        # GGML_BLAS defaults to ON with Accelerate on Apple targets.
        return ["blas"]
    return []


@dataclass(frozen=True)
class BuildConfig:
    """Normalized, read-only build options for one invocation."""

    target: str
    backends: frozenset[Backend] = frozenset()
    openmp: bool = False
    multi_variant: bool = False
    env_inputs: tuple[tuple[str, str], ...] = ()
    passthrough: tuple[tuple[str, str], ...] = field(default=())

    def has(self, backend: Backend) -> bool:
        return backend in self.backends

    def env(self, key: str) -> str | None:
        """SDK location or optional input captured at resolve time."""
        return dict(self.env_inputs).get(key)

    @property
    def ordered_backends(self) -> list[Backend]:
        return [b for b in Backend if b in self.backends]

    def library_suffixes(self) -> list[str]:
        """Sub-library suffixes for enabled backends (e.g. ["cuda", "blas"]), then platform defaults."""
        suffixes = [BACKEND_SPECS[b].suffix for b in self.ordered_backends]
        for s in platform_library_suffixes(self.target):
            if s not in suffixes:
                suffixes.append(s)
        return suffixes

    def cmake_defines(self) -> dict[str, str]:
        """Backend, platform and pass-through defines. Identical for every variant."""
        defines: dict[str, str] = {}
        for b in self.ordered_backends:
            spec = BACKEND_SPECS[b]
            defines.update(spec.cmake)
            if spec.compilers:
                defines["CMAKE_C_COMPILER"], defines["CMAKE_CXX_COMPILER"] = spec.compilers
        if is_apple(self.target) and not self.has(Backend.METAL):
            # Upstream turns Metal on by default for Apple targets.
            defines["GGML_METAL"] = "OFF"
        if not self.openmp:
            defines["GGML_OPENMP"] = "OFF"
        if self.has(Backend.OPENBLAS):
            defines["BLAS_INCLUDE_DIRS"] = self.env("BLAS_INCLUDE_DIRS") or ""
        if self.has(Backend.HIPBLAS) and self.env("AMDGPU_TARGETS"):
            defines["AMDGPU_TARGETS"] = self.env("AMDGPU_TARGETS") or ""
        if is_msvc(self.target):
            defines["CMAKE_CXX_FLAGS"] = "/utf-8"
        defines.update(dict(self.passthrough))
        return defines


def parse_features(features: str | Iterable[str]) -> tuple[frozenset[Backend], bool]:
    """Split feature names into (backends, openmp). Raises ConfigurationError on unknown names.

    Accepts "cuda,openblas", "cuda openblas" or an iterable of such items.
    """
    if isinstance(features, str):
        features = [features]
    backends: set[Backend] = set()
    openmp = False
    known = [b.value for b in Backend] + [OPENMP_FEATURE]
    for raw in (name for item in features for name in split_list(item)):
        name = raw.strip().lower()
        if not name:
            continue
        if name == OPENMP_FEATURE:
            openmp = True
            continue
        try:
            backends.add(Backend(name))
        except ValueError:
            msg = f"Unknown feature: {raw}"
            raise ConfigurationError(msg, hint=f"Known features: {', '.join(known)}") from None
    return frozenset(backends), openmp


def _platform_family(target: str) -> str:
    if is_windows(target):
        return "windows"
    if is_apple(target):
        return "apple"
    return "other"


def _check_compiler_conflicts(backends: frozenset[Backend]) -> None:
    selecting = [b for b in Backend if b in backends and BACKEND_SPECS[b].compilers]
    if len(selecting) > 1:
        names = " and ".join(b.value for b in selecting)
        msg = f"Features {names} are mutually exclusive: each selects its own C/C++ compiler"
        raise ConfigurationError(msg, context={"features": ", ".join(b.value for b in selecting)})


def _collect_env_inputs(
    backends: frozenset[Backend], target: str, environ: Mapping[str, str], *, strict: bool = True
) -> dict[str, str]:
    family = _platform_family(target)
    inputs: dict[str, str] = {}
    for b in Backend:
        if b not in backends:
            continue
        spec = BACKEND_SPECS[b]
        if not strict:
            if spec.required_env and environ.get(spec.required_env):
                inputs[spec.required_env] = environ[spec.required_env]
            continue
        if spec.apple_only and family != "apple":
            msg = f"Feature {b.value} is only available on Apple targets (target: {target})"
            raise ConfigurationError(msg)
        if spec.required_env is None:
            continue
        if spec.required_env_on and family not in spec.required_env_on:
            continue
        value = environ.get(spec.required_env)
        if not value:
            msg = f"Feature {b.value} requires the {spec.required_env} environment variable"
            raise ConfigurationError(
                msg,
                hint=f"Install the SDK and set {spec.required_env} to its location",
                context={"variable": spec.required_env},
            )
        inputs[spec.required_env] = value
    for key in OPTIONAL_ENV:
        if environ.get(key):
            inputs[key] = environ[key]
    return inputs


def _collect_passthrough(environ: Mapping[str, str]) -> list[tuple[str, str]]:
    return sorted(
        (k, v)
        for k, v in environ.items()
        if k.startswith(_PASSTHROUGH_PREFIXES) and not k.startswith(_OWN_PREFIX)
    )


def resolve_build_config(
    features: str | Iterable[str],
    target: str,
    *,
    multi_variant: bool = False,
    environ: Mapping[str, str] | None = None,
    validate: bool = True,
) -> BuildConfig:
    """Validate features for target and capture the environment inputs they need.

    With validate=False (bindings-only runs) unknown feature names still raise, but compiler
    conflicts, platform restrictions and missing SDK variables are not checked.
    """
    env = os.environ if environ is None else environ
    if not target:
        msg = "Target triple is required"
        raise ConfigurationError(msg, hint="Pass --target or set TARGET")
    backends, openmp = parse_features(features)
    if validate:
        _check_compiler_conflicts(backends)
    inputs = _collect_env_inputs(backends, target, env, strict=validate)
    config = BuildConfig(
        target=target,
        backends=backends,
        openmp=openmp,
        multi_variant=multi_variant,
        env_inputs=tuple(sorted(inputs.items())),
        passthrough=tuple(_collect_passthrough(env)),
    )
    log.debug(
        "Resolved build config: target=%s backends=%s openmp=%s multi_variant=%s",
        target,
        [b.value for b in config.ordered_backends],
        openmp,
        multi_variant,
    )
    return config
