"""Per-target naming: C++ runtime link name and shared-library file names."""

from __future__ import annotations

from ggml_tooling.helpers import is_apple, is_msvc, is_windows


def cpp_link_stdlib(target: str) -> str | None:
    """C++ standard library to link for mixed C/C++ objects, or None when the toolchain links it implicitly (MSVC)."""
    if is_msvc(target):
        return None
    if is_apple(target) or "freebsd" in target or "openbsd" in target:
        return "c++"
    if "android" in target:
        return "c++_shared"
    return "stdc++"


def shared_library_filename(name: str, target: str) -> str:
    """Runtime image file name (libggml.so, libggml.dylib, ggml.dll)."""
    if is_windows(target):
        return f"{name}.dll"
    if is_apple(target):
        return f"lib{name}.dylib"
    return f"lib{name}.so"


def link_stub_filename(name: str, target: str) -> str:
    """File the linker consumes. Differs from the runtime image only on Windows (import .lib)."""
    if is_windows(target):
        return f"{name}.lib" if is_msvc(target) else f"lib{name}.dll.a"
    return shared_library_filename(name, target)
