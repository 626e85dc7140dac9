"""Read published build facts from a downstream build stage.

Typical use in a consumer's own build step:

    reader = MetadataReader.from_environ(package="ggml-tooling")
    artifacts = reader.artifacts("llama")
    for line in render_directives(consumer_link_directives(artifacts)):
        print(line)

Every missing key raises MetadataKeyError naming the exact key that was expected.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path

from ggml_tooling.build.artifacts import BuildArtifactSet
from ggml_tooling.errors import ConfigurationError, MetadataKeyError
from ggml_tooling.features import platform_library_suffixes
from ggml_tooling.metadata.keys import (
    DEFAULT_PACKAGE,
    MetadataField,
    include_key,
    package_prefix,
    variant_key,
)
from ggml_tooling.variants import Variant


class MetadataReader:
    def __init__(
        self,
        values: Mapping[str, str],
        package: str = DEFAULT_PACKAGE,
        source: str | None = None,
    ):
        self.package = package
        self.values = dict(values)
        self.source = source

    @classmethod
    def from_file(cls, path: Path, package: str | None = None) -> MetadataReader:
        """Load a committed record. A missing file yields an empty reader (reads then fail with the key)."""
        if not path.is_file():
            return cls({}, package or DEFAULT_PACKAGE, source=f"{path} (missing)")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            msg = f"Metadata file is not valid JSON: {path}"
            raise ConfigurationError(msg, context={"error": str(e)}) from e
        return cls(
            data.get("values") or {},
            package or data.get("package") or DEFAULT_PACKAGE,
            source=str(path),
        )

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str] | None = None, package: str = DEFAULT_PACKAGE
    ) -> MetadataReader:
        """Pick the package's keys out of an environment mapping (default os.environ)."""
        env = os.environ if environ is None else environ
        prefix = package_prefix(package) + "_"
        values = {k: v for k, v in env.items() if k.startswith(prefix)}
        return cls(values, package, source="environment")

    def _hint(self) -> str:
        where = f" in {self.source}" if self.source else ""
        return (
            f"No value{where}. Is {self.package} a build dependency, and did its build run "
            "with the variant you need?"
        )

    def get(self, key: str) -> str:
        try:
            return self.values[key]
        except KeyError:
            raise MetadataKeyError(key, hint=self._hint()) from None

    def include_dir(self) -> Path:
        return Path(self.get(include_key(self.package)))

    def read(self, variant: str, field: MetadataField | str) -> str:
        return self.get(variant_key(self.package, variant, field))

    def artifacts(self, variant: str, target: str | None = None) -> BuildArtifactSet:
        """Rebuild the BuildArtifactSet for one variant from its published keys.

        Libraries are the primary and core modules, plus the sub-libraries upstream builds
        by default for target when one is given.
        """
        suffixes = platform_library_suffixes(target) if target else []
        basename = self.read(variant, MetadataField.BASENAME)
        return BuildArtifactSet(
            variant=variant,
            basename=basename,
            include_dir=self.include_dir(),
            lib_dir=Path(self.read(variant, MetadataField.LIB_DIR)),
            bin_dir=Path(self.read(variant, MetadataField.BIN_DIR)),
            libraries=tuple(Variant(variant, basename).library_names(suffixes)),
        )
