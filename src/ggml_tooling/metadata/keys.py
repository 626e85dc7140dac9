"""Metadata key names, scoped by the publishing package's identity.

    DEP_<PACKAGE>_INCLUDE                       shared include directory
    DEP_<PACKAGE>_GGML_<VARIANT>_LIB_DIR        per variant
    DEP_<PACKAGE>_GGML_<VARIANT>_BIN_DIR
    DEP_<PACKAGE>_GGML_<VARIANT>_BASENAME

The unnamespaced single-variant build drops the GGML_<VARIANT> segment.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum

from ggml_tooling.errors import MetadataKeyError
from ggml_tooling.helpers import to_env_key
from ggml_tooling.variants import DEFAULT_BASENAME, DEFAULT_VARIANT, Variant

DEFAULT_PACKAGE = "ggml-tooling"

INCLUDE_FIELD = "INCLUDE"


class MetadataField(StrEnum):
    LIB_DIR = "LIB_DIR"
    BIN_DIR = "BIN_DIR"
    BASENAME = "BASENAME"


def package_prefix(package: str) -> str:
    return f"DEP_{to_env_key(package)}"


def include_key(package: str) -> str:
    return f"{package_prefix(package)}_{INCLUDE_FIELD}"


def _variant_prefix(package: str, variant: str) -> str:
    if variant == DEFAULT_VARIANT.name:
        return package_prefix(package)
    return f"{package_prefix(package)}_{to_env_key(DEFAULT_BASENAME)}_{to_env_key(variant)}"


def variant_key(package: str, variant: str, field: MetadataField | str) -> str:
    """Key for one per-variant fact. An unknown field raises MetadataKeyError naming the key."""
    try:
        f = MetadataField(field)
    except ValueError:
        raise MetadataKeyError(
            f"{_variant_prefix(package, variant)}_{to_env_key(str(field))}",
            hint=f"Per-variant fields: {', '.join(m.value for m in MetadataField)}",
        ) from None
    return f"{_variant_prefix(package, variant)}_{f.value}"


def expected_keys(package: str, variants: Sequence[Variant]) -> list[str]:
    """Every key a successful run publishes for these variants, include key first."""
    keys = [include_key(package)]
    for v in variants:
        keys.extend(variant_key(package, v.name, f) for f in MetadataField)
    return keys
