"""Inter-stage metadata: publisher (this build) and reader (downstream builds)."""

from .channel import MetadataChannel
from .consumer import MetadataReader
from .keys import (
    DEFAULT_PACKAGE,
    MetadataField,
    expected_keys,
    include_key,
    package_prefix,
    variant_key,
)

__all__ = [
    "DEFAULT_PACKAGE",
    "MetadataChannel",
    "MetadataField",
    "MetadataReader",
    "expected_keys",
    "include_key",
    "package_prefix",
    "variant_key",
]
