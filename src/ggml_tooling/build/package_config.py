"""Rewrite the installed ggml-config.cmake so find_library looks for namespaced files.

Imported target names (ggml::ggml-base, ...) are left alone so CMake consumers keep
their target_link_libraries lines; only the library file names change.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ggml_tooling.features import BACKEND_SPECS
from ggml_tooling.variants import CORE_MODULES, DEFAULT_BASENAME

log = logging.getLogger(__name__)

CONFIG_NAME = "ggml-config.cmake"

_TARGET_RE = re.compile(rf"{DEFAULT_BASENAME}::[A-Za-z0-9_-]+")


def _module_names() -> list[str]:
    return [*CORE_MODULES, *sorted({s.suffix for s in BACKEND_SPECS.values()})]


def config_candidates(prefix: Path) -> list[Path]:
    """Installed location first, then the build tree copy."""
    return [
        prefix / "lib" / "cmake" / DEFAULT_BASENAME / CONFIG_NAME,
        prefix / "build" / CONFIG_NAME,
    ]


def rewrite_package_config(text: str, basename: str) -> str:
    """Return text with ggml / ggml-<module> library names replaced by basename equivalents."""
    targets: list[str] = []

    def _hide(m: re.Match[str]) -> str:
        targets.append(m.group(0))
        return f"\x00{len(targets) - 1}\x00"

    out = _TARGET_RE.sub(_hide, text)
    modules = "|".join(re.escape(m) for m in _module_names())
    out = re.sub(
        rf"{DEFAULT_BASENAME}-({modules})(?![A-Za-z0-9_])",
        lambda m: f"{basename}-{m.group(1)}",
        out,
    )
    # Bare primary library name as a find_library/set argument.
    out = re.sub(rf"(?<=\s){DEFAULT_BASENAME}(?=[\s)])", basename, out)
    return re.sub(r"\x00(\d+)\x00", lambda m: targets[int(m.group(1))], out)


def patch_package_config(prefix: Path, basename: str) -> Path | None:
    """Patch the first ggml-config.cmake found under prefix. Returns its path, or None if none exists."""
    for path in config_candidates(prefix):
        if not path.is_file():
            log.debug("No package config at %s", path)
            continue
        content = path.read_text()
        patched = rewrite_package_config(content, basename)
        if patched != content:
            path.write_text(patched)
            log.debug("Patched %s for %s", path, basename)
        else:
            log.debug("%s already uses %s names", path, basename)
        return path
    return None
