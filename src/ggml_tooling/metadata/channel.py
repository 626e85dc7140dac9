"""Publish build facts for downstream build stages.

Values are staged in memory while the pipeline runs and written in one atomic commit
at the end, so a failed invocation leaves no partial record behind. A variant's three
keys are staged together or not at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from ggml_tooling.build.artifacts import BuildArtifactSet
from ggml_tooling.errors import MetadataConflictError
from ggml_tooling.helpers import atomic_write_text
from ggml_tooling.metadata.keys import (
    DEFAULT_PACKAGE,
    MetadataField,
    include_key,
    variant_key,
)

log = logging.getLogger(__name__)


class MetadataChannel:
    """Package-scoped key/value record for one build invocation."""

    def __init__(self, package: str = DEFAULT_PACKAGE):
        self.package = package
        self._values: dict[str, str] = {}

    def _stage(self, items: Mapping[str, str]) -> None:
        for key, value in items.items():
            old = self._values.get(key)
            if old is not None and old != value:
                raise MetadataConflictError(key, old, value)
        self._values.update(items)
        for key, value in items.items():
            log.debug("staged %s=%s", key, value)

    def publish_include(self, include_dir: Path) -> str:
        key = include_key(self.package)
        self._stage({key: str(include_dir)})
        return key

    def publish_variant(self, artifacts: BuildArtifactSet) -> list[str]:
        items = {
            variant_key(self.package, artifacts.variant, MetadataField.LIB_DIR): str(
                artifacts.lib_dir
            ),
            variant_key(self.package, artifacts.variant, MetadataField.BIN_DIR): str(
                artifacts.bin_dir
            ),
            variant_key(self.package, artifacts.variant, MetadataField.BASENAME): artifacts.basename,
        }
        self._stage(items)
        return list(items)

    @property
    def values(self) -> dict[str, str]:
        return dict(self._values)

    def as_environ(self) -> dict[str, str]:
        """Record as an environment mapping for the next stage."""
        return dict(sorted(self._values.items()))

    def to_json(self) -> str:
        payload = {"package": self.package, "values": dict(sorted(self._values.items()))}
        return json.dumps(payload, indent=2, sort_keys=True) + "\n"

    def commit(self, path: Path) -> Path:
        """Write the whole record to path in one replace. Same input, same bytes."""
        atomic_write_text(path, self.to_json())
        log.debug("Committed %d metadata keys to %s", len(self._values), path)
        return path
