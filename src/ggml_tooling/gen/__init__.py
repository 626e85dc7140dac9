"""FFI binding generation (libclang -> ctypes module)."""

from .bindings import generate_bindings
from .render import render_module
from .surface import (
    Allowlist,
    BindingSurface,
    CEnum,
    CFunction,
    CStruct,
    CTypedef,
)

__all__ = [
    "Allowlist",
    "BindingSurface",
    "CEnum",
    "CFunction",
    "CStruct",
    "CTypedef",
    "generate_bindings",
    "render_module",
]
