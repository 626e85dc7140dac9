"""Registry of namespaced variants of the native library.

Each variant is built under its own basename so two consumers can link their own copy
into one program without duplicate symbols or duplicate library names. Adding a
namespace means adding a row to VARIANTS.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ggml_tooling.errors import ConfigurationError

DEFAULT_BASENAME = "ggml"

# Sub-libraries every build produces, after the primary library itself.
CORE_MODULES = ("base", "cpu")


@dataclass(frozen=True)
class Variant:
    name: str
    basename: str

    @property
    def namespaced(self) -> bool:
        return self.basename != DEFAULT_BASENAME

    def library_names(self, backend_suffixes: Iterable[str] = ()) -> list[str]:
        """Primary library, core modules, then one module per backend suffix."""
        names = [self.basename]
        names.extend(f"{self.basename}-{m}" for m in CORE_MODULES)
        names.extend(f"{self.basename}-{s}" for s in backend_suffixes)
        return names


VARIANTS: tuple[Variant, ...] = (
    Variant(name="llama", basename="ggml_llama"),
    Variant(name="whisper", basename="ggml_whisper"),
)

# Single-variant mode builds the library once under its upstream names.
DEFAULT_VARIANT = Variant(name="default", basename=DEFAULT_BASENAME)


def validate_registry(variants: Sequence[Variant]) -> None:
    """Names and basenames must be unique, and no basename may equal DEFAULT_BASENAME."""
    seen_names: set[str] = set()
    seen_basenames: set[str] = set()
    for v in variants:
        if v.name in seen_names:
            msg = f"Duplicate variant name in registry: {v.name}"
            raise ConfigurationError(msg)
        if v.basename in seen_basenames:
            msg = f"Duplicate variant basename in registry: {v.basename}"
            raise ConfigurationError(msg, context={"variant": v.name})
        if v.basename == DEFAULT_BASENAME:
            msg = f"Variant {v.name} reuses the unnamespaced basename {DEFAULT_BASENAME}"
            raise ConfigurationError(msg)
        seen_names.add(v.name)
        seen_basenames.add(v.basename)


def get_variant(name: str, variants: Sequence[Variant] = VARIANTS) -> Variant:
    for v in variants:
        if v.name == name:
            return v
    msg = f"Unknown variant: {name}"
    raise ConfigurationError(msg, hint=f"Registered: {', '.join(v.name for v in variants)}")


def variants_for_mode(multi_variant: bool, variants: Sequence[Variant] = VARIANTS) -> list[Variant]:
    """Every registered variant in multi-variant mode, else just the default build."""
    if not multi_variant:
        return [DEFAULT_VARIANT]
    validate_registry(variants)
    return list(variants)
