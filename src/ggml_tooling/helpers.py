"""Shared helpers for ggml_tooling (text, env flags, files, host triple).

Used by features, build, metadata, gen and the CLI.
"""

from __future__ import annotations

import os
import platform
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

# --- Text ---


def to_env_key(name: str) -> str:
    """Convert a package or variant name to an env-style key (e.g. ggml-tooling -> GGML_TOOLING)."""
    return re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_").upper()


def split_list(text: str | None) -> list[str]:
    """Split a comma/space separated list, dropping empty items (e.g. "cuda, openblas")."""
    if not text:
        return []
    return [x for x in re.split(r"[,\s]+", text.strip()) if x]


# --- Env ---

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(environ: Mapping[str, str], key: str) -> bool:
    """True when key is set to a truthy value (1/true/yes/on, case-insensitive)."""
    return environ.get(key, "").strip().lower() in _TRUTHY


def env_present(environ: Mapping[str, str], keys: Iterable[str]) -> str | None:
    """Return the first key that is set (any value, even empty), else None."""
    for k in keys:
        if k in environ:
            return k
    return None


# --- CMake ---


def cmake_cache_args(cache_vars: Mapping[str, str]) -> list[str]:
    return [f"-D{key}={value}" for key, value in cache_vars.items()]


# --- File ---


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to path via a sibling temp file and os.replace, so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


# --- Host ---

_MACHINE_ARCH = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def host_target_triple() -> str:
    """Best-effort target triple for the host (e.g. x86_64-unknown-linux-gnu)."""
    machine = platform.machine().lower()
    arch = _MACHINE_ARCH.get(machine, machine or "x86_64")
    system = platform.system().lower()
    if system == "darwin":
        return f"{arch}-apple-darwin"
    if system == "windows":
        return f"{arch}-pc-windows-msvc"
    if system == "freebsd":
        return f"{arch}-unknown-freebsd"
    return f"{arch}-unknown-linux-gnu"


def is_apple(target: str) -> bool:
    return "apple" in target


def is_windows(target: str) -> bool:
    return "windows" in target


def is_msvc(target: str) -> bool:
    return "msvc" in target
