"""Render a BindingSurface as a ctypes Python module.

The generated module only declares types and signatures. Nothing is loaded at import;
callers open the library themselves and hand it to ``bind(lib)``.
"""

from __future__ import annotations

from ggml_tooling.gen.surface import BindingSurface, CStruct

CTYPES_IMPORTS = (
    "POINTER",
    "Structure",
    "Union",
    "c_bool",
    "c_byte",
    "c_char",
    "c_char_p",
    "c_double",
    "c_float",
    "c_int",
    "c_long",
    "c_longdouble",
    "c_longlong",
    "c_short",
    "c_ubyte",
    "c_uint",
    "c_ulong",
    "c_ulonglong",
    "c_ushort",
    "c_void_p",
    "c_wchar",
)


def _header(source: str) -> list[str]:
    lines = [
        '"""ctypes declarations for the ggml public API.',
        "",
        f"Generated by ggml-tooling from {source}. Do not edit.",
        "",
        "Usage:",
        "    lib = ctypes.CDLL(path_to_ggml)",
        "    bind(lib)",
        '"""',
        "",
        "from ctypes import (",
    ]
    lines.extend(f"    {name}," for name in CTYPES_IMPORTS)
    lines.append(")")
    lines.append("")
    return lines


def _fields(struct: CStruct) -> list[str]:
    lines = [f"{struct.name}._fields_ = ["]
    for name, ctype, width in struct.fields:
        if width is None:
            lines.append(f"    ({name!r}, {ctype}),")
        else:
            lines.append(f"    ({name!r}, {ctype}, {width}),")
    lines.append("]")
    return lines


def render_module(surface: BindingSurface, source: str = "wrapper.h") -> str:
    lines = _header(source)

    if surface.constants:
        lines += ["", "# Constants", ""]
        lines.extend(f"{name} = {value!r}" for name, value in surface.constants.items())

    if surface.enums:
        lines += ["", "# Enums", ""]
        for enum in surface.enums:
            lines.append(f"{enum.name} = c_int")
            lines.extend(f"{name} = {value!r}" for name, value in enum.values.items())
            lines.append("")

    if surface.structs:
        # Classes first, layouts after, so fields may refer to any struct in any order.
        lines += ["", "# Structures", ""]
        for struct in surface.structs:
            base = "Union" if struct.union else "Structure"
            lines += ["", f"class {struct.name}({base}):", "    pass", ""]

    if surface.typedefs:
        lines += ["", "# Type aliases", ""]
        lines.extend(f"{t.name} = {t.ctype}" for t in surface.typedefs)

    laid_out = [s for s in surface.structs if not s.opaque]
    if laid_out:
        lines += ["", "# Structure layouts", ""]
        for struct in laid_out:
            lines.extend(_fields(struct))

    lines += ["", "# Functions: name -> (argtypes, restype)", "", "_FUNCTIONS = {"]
    for fn in surface.functions:
        args = ", ".join(fn.argtypes)
        note = "  # variadic" if fn.variadic else ""
        lines.append(f"    {fn.name!r}: ([{args}], {fn.restype}),{note}")
    lines += [
        "}",
        "",
        "",
        "def bind(lib):",
        '    """Set argtypes and restype on every known function lib exports. Returns lib."""',
        "    for name, (argtypes, restype) in _FUNCTIONS.items():",
        "        fn = getattr(lib, name, None)",
        "        if fn is None:",
        "            continue",
        "        fn.argtypes = argtypes",
        "        fn.restype = restype",
        "    return lib",
        "",
    ]
    return "\n".join(lines)
