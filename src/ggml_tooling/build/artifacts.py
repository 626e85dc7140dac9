"""Per-variant build outputs handed to the link emitter and metadata publisher."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BuildArtifactSet:
    """Absolute locations of one variant's installed artifacts.

    include_dir is shared by every variant (headers are identical); lib_dir and bin_dir
    are owned by the variant. On Windows bin_dir holds the DLLs and lib_dir the import
    libraries; elsewhere shared libraries live in lib_dir.
    """

    variant: str
    basename: str
    include_dir: Path
    lib_dir: Path
    bin_dir: Path
    libraries: tuple[str, ...] = ()
