"""Variant registry: variant name -> library basename."""

from .registry import (
    CORE_MODULES,
    DEFAULT_BASENAME,
    DEFAULT_VARIANT,
    VARIANTS,
    Variant,
    get_variant,
    validate_registry,
    variants_for_mode,
)

__all__ = [
    "CORE_MODULES",
    "DEFAULT_BASENAME",
    "DEFAULT_VARIANT",
    "VARIANTS",
    "Variant",
    "get_variant",
    "validate_registry",
    "variants_for_mode",
]
