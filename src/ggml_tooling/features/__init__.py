"""Feature resolution: backend toggles + target triple -> BuildConfig."""

from .resolver import (
    BACKEND_SPECS,
    Backend,
    BackendSpec,
    BuildConfig,
    parse_features,
    platform_library_suffixes,
    resolve_build_config,
)

__all__ = [
    "BACKEND_SPECS",
    "Backend",
    "BackendSpec",
    "BuildConfig",
    "parse_features",
    "platform_library_suffixes",
    "resolve_build_config",
]
