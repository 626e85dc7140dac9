"""Native build driver: one CMake configure/build/install per variant, plus per-target naming."""

from .artifacts import BuildArtifactSet
from .native import (
    BASE_DEFINES,
    build_command,
    build_type,
    build_variant,
    configure_command,
    install_command,
    variant_defines,
    variant_prefix,
)
from .package_config import patch_package_config, rewrite_package_config
from .platform import cpp_link_stdlib, link_stub_filename, shared_library_filename
from .runtime import stage_runtime_libraries

__all__ = [
    "BASE_DEFINES",
    "BuildArtifactSet",
    "build_command",
    "build_type",
    "build_variant",
    "configure_command",
    "cpp_link_stdlib",
    "install_command",
    "link_stub_filename",
    "patch_package_config",
    "rewrite_package_config",
    "shared_library_filename",
    "stage_runtime_libraries",
    "variant_defines",
    "variant_prefix",
]
