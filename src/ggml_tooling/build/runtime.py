"""Copy a variant's shared libraries next to the consumer's executables."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ggml_tooling.build.artifacts import BuildArtifactSet
from ggml_tooling.build.platform import shared_library_filename
from ggml_tooling.helpers import is_windows

log = logging.getLogger(__name__)


def runtime_library_candidates(artifacts: BuildArtifactSet, name: str, target: str) -> list[Path]:
    """Where the runtime image for one library may have been installed."""
    filename = shared_library_filename(name, target)
    if is_windows(target):
        return [artifacts.bin_dir / filename, artifacts.lib_dir / filename]
    return [artifacts.lib_dir / filename]


def stage_runtime_libraries(artifacts: BuildArtifactSet, dest: Path, target: str) -> list[Path]:
    """Copy each of artifacts.libraries into dest. Missing files are reported, not fatal. Returns copied paths."""
    dest.mkdir(parents=True, exist_ok=True)
    copied: list[Path] = []
    for name in artifacts.libraries:
        src = next((p for p in runtime_library_candidates(artifacts, name, target) if p.is_file()), None)
        if src is None:
            log.debug("Runtime library %s not found for %s", name, artifacts.variant)
            print(f"⚠️  {artifacts.variant}: runtime library {name} not found, skipping")
            continue
        dst = dest / src.name
        shutil.copy2(src, dst)
        copied.append(dst)
        print(f"📦 Copying {src.name} -> {dst}")
    return copied
