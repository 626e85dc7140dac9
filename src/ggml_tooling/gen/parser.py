"""Parse the ggml public headers with libclang into a BindingSurface.

Only top-level declarations whose names pass the allowlist are kept; everything the
headers pull in from the system (stdio, stdint, ...) is dropped by name.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from clang.cindex import (
    CursorKind,
    Diagnostic,
    Index,
    TranslationUnit,
    TypeKind,
)

from ggml_tooling.errors import BindingGenerationError
from ggml_tooling.gen.surface import (
    Allowlist,
    BindingSurface,
    CEnum,
    CFunction,
    CStruct,
    CTypedef,
)

log = logging.getLogger(__name__)

PRIMITIVES = {
    TypeKind.VOID: "None",
    TypeKind.BOOL: "c_bool",
    TypeKind.CHAR_S: "c_char",
    TypeKind.SCHAR: "c_byte",
    TypeKind.CHAR_U: "c_ubyte",
    TypeKind.UCHAR: "c_ubyte",
    TypeKind.SHORT: "c_short",
    TypeKind.USHORT: "c_ushort",
    TypeKind.INT: "c_int",
    TypeKind.UINT: "c_uint",
    TypeKind.LONG: "c_long",
    TypeKind.ULONG: "c_ulong",
    TypeKind.LONGLONG: "c_longlong",
    TypeKind.ULONGLONG: "c_ulonglong",
    TypeKind.FLOAT: "c_float",
    TypeKind.DOUBLE: "c_double",
    TypeKind.LONGDOUBLE: "c_longdouble",
    TypeKind.WCHAR: "c_wchar",
}

CHAR_KINDS = {TypeKind.CHAR_S, TypeKind.CHAR_U, TypeKind.SCHAR}
FUNCTION_KINDS = {TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO}

_INT_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|\d+)[uUlL]*$")
_FLOAT_RE = re.compile(r"^(\d+\.\d*|\.\d+)([eE][-+]?\d+)?[fFlL]?$")
_STRING_RE = re.compile(r'^"([^"\\]|\\.)*"$')


def compile_args(include_dirs: Sequence[Path], extra_args: Sequence[str] = ()) -> list[str]:
    args = ["-x", "c", "-std=c11"]
    args.extend(f"-I{d}" for d in include_dirs)
    args.extend(extra_args)
    return args


def _literal(text: str) -> int | float | str | None:
    if _INT_RE.match(text):
        digits = text.rstrip("uUlL")
        if digits.lower().startswith("0x"):
            return int(digits, 16)
        if len(digits) > 1 and digits.startswith("0"):
            return int(digits, 8)
        return int(digits)
    if _FLOAT_RE.match(text):
        return float(text.rstrip("fFlL"))
    if _STRING_RE.match(text):
        return text[1:-1]
    return None


def macro_value(tokens: Sequence[str]) -> int | float | str | None:
    """Value of an object-like macro body made of one literal, or None.

    Accepts an optional sign and wrapping parentheses: ``(-1)``, ``0x10u``, ``"GGUF"``.
    """
    toks = list(tokens)
    while len(toks) >= 2 and toks[0] == "(" and toks[-1] == ")":
        toks = toks[1:-1]
    sign = 1
    if len(toks) == 2 and toks[0] in ("-", "+"):
        sign = -1 if toks[0] == "-" else 1
        toks = toks[1:]
    if len(toks) != 1:
        return None
    value = _literal(toks[0])
    if value is None or isinstance(value, str):
        return value if sign == 1 else None
    return sign * value


def _unnamed(spelling: str) -> bool:
    # older libclang spells unnamed records as "", newer as "struct (unnamed at f.h:3:9)"
    return not spelling or "(unnamed" in spelling or "(anonymous" in spelling


def _strip_tag(spelling: str) -> str:
    for prefix in ("const ", "volatile ", "struct ", "union ", "enum "):
        while spelling.startswith(prefix):
            spelling = spelling[len(prefix) :]
    return spelling.strip()


class HeaderParser:
    """Walk one translation unit and collect the allowlisted API surface."""

    def __init__(self, allowlist: Allowlist | None = None):
        self.allowlist = allowlist or Allowlist()
        self.index = Index.create()
        self._records: set[str] = set()
        # declaration hash of `typedef struct { ... } name;` -> name
        self._anonymous: dict[int, str] = {}

    # --- Types ---

    def _record_name(self, clang_type) -> str:
        decl = clang_type.get_declaration()
        return self._anonymous.get(decl.hash) or decl.spelling or _strip_tag(clang_type.spelling)

    def ctype(self, clang_type) -> str:
        """ctypes expression for a clang type."""
        canonical = clang_type.get_canonical()
        kind = canonical.kind

        if kind in PRIMITIVES:
            return PRIMITIVES[kind]
        if kind == TypeKind.ENUM:
            return "c_int"
        if kind == TypeKind.POINTER:
            pointee = canonical.get_pointee().get_canonical()
            if pointee.kind == TypeKind.VOID:
                return "c_void_p"
            if pointee.kind in CHAR_KINDS:
                return "c_char_p"
            if pointee.kind in FUNCTION_KINDS:
                return "c_void_p"
            if pointee.kind == TypeKind.RECORD and self._record_name(pointee) not in self._records:
                return "c_void_p"
            return f"POINTER({self.ctype(pointee)})"
        if kind == TypeKind.CONSTANTARRAY:
            return f"({self.ctype(canonical.element_type)} * {canonical.element_count})"
        if kind == TypeKind.INCOMPLETEARRAY:
            return f"POINTER({self.ctype(canonical.element_type)})"
        if kind == TypeKind.RECORD:
            name = self._record_name(canonical)
            if name in self._records:
                return name
            size = canonical.get_size()
            if size > 0:
                return f"(c_ubyte * {size})"
        log.warning("No ctypes mapping for %s; using c_void_p", clang_type.spelling)
        return "c_void_p"

    # --- Declarations ---

    def _function(self, cursor) -> CFunction:
        argtypes = [self.ctype(arg.type) for arg in cursor.get_arguments()]
        variadic = cursor.type.kind == TypeKind.FUNCTIONPROTO and cursor.type.is_function_variadic()
        return CFunction(
            name=cursor.spelling,
            restype=self.ctype(cursor.result_type),
            argtypes=argtypes,
            variadic=variadic,
        )

    def _struct_fields(self, cursor) -> list[tuple[str, str, int | None]]:
        fields: list[tuple[str, str, int | None]] = []
        for child in cursor.get_children():
            if child.kind != CursorKind.FIELD_DECL:
                continue
            width = child.get_bitfield_width() if child.is_bitfield() else None
            fields.append((child.spelling, self.ctype(child.type), width))
        return fields

    def _enum(self, cursor) -> CEnum:
        values = {
            child.spelling: child.enum_value
            for child in cursor.get_children()
            if child.kind == CursorKind.ENUM_CONSTANT_DECL
        }
        return CEnum(name=cursor.spelling, values=values)

    def _macro(self, cursor) -> int | float | str | None:
        spellings = [t.spelling for t in cursor.get_tokens()][1:]
        value = macro_value(spellings)
        # some libclang releases hand back one token past the macro body
        if value is None and len(spellings) > 1:
            value = macro_value(spellings[:-1])
        return value

    def parse(
        self,
        header: Path,
        include_dirs: Sequence[Path] = (),
        extra_args: Sequence[str] = (),
    ) -> BindingSurface:
        args = compile_args(include_dirs, extra_args)
        log.debug("libclang parse %s %s", header, " ".join(args))
        tu = self.index.parse(
            str(header),
            args=args,
            options=TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD
            | TranslationUnit.PARSE_SKIP_FUNCTION_BODIES,
        )

        errors = [d for d in tu.diagnostics if d.severity >= Diagnostic.Error]
        if errors:
            first = errors[0]
            msg = f"Failed to parse {header}: {first.spelling}"
            raise BindingGenerationError(
                msg,
                hint="Check the include directories and that the ggml headers are complete.",
                context={
                    "location": f"{first.location.file}:{first.location.line}",
                    "diagnostics": "; ".join(d.spelling for d in errors),
                },
            )

        cursors = list(tu.cursor.get_children())
        allow = self.allowlist

        # Register record names first so pointers and by-value fields can refer to any of them.
        for cur in cursors:
            if cur.kind in (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL) and allow.type(cur.spelling):
                self._records.add(cur.spelling)
            elif cur.kind == CursorKind.TYPEDEF_DECL and allow.type(cur.spelling):
                decl = cur.underlying_typedef_type.get_canonical().get_declaration()
                if decl.kind in (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL) and _unnamed(decl.spelling):
                    self._anonymous[decl.hash] = cur.spelling
                    self._records.add(cur.spelling)

        surface = BindingSurface()
        structs: dict[str, CStruct] = {}
        seen_functions: set[str] = set()
        seen_enums: set[str] = set()
        seen_typedefs: set[str] = set()

        for cur in cursors:
            kind = cur.kind
            name = cur.spelling

            if kind == CursorKind.MACRO_DEFINITION:
                if allow.constant(name) and name not in surface.constants:
                    value = self._macro(cur)
                    if value is not None:
                        surface.constants[name] = value
            elif kind == CursorKind.FUNCTION_DECL:
                if allow.function(name) and name not in seen_functions:
                    seen_functions.add(name)
                    surface.functions.append(self._function(cur))
            elif kind in (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL):
                name = self._anonymous.get(cur.hash, name)
                if name not in self._records:
                    continue
                struct = structs.get(name)
                if struct is None:
                    struct = CStruct(name=name, union=kind == CursorKind.UNION_DECL)
                    structs[name] = struct
                    surface.structs.append(struct)
                if cur.is_definition() and struct.opaque:
                    struct.fields = self._struct_fields(cur)
                    struct.opaque = False
            elif kind == CursorKind.ENUM_DECL:
                enum = self._enum(cur)
                if name and allow.type(name):
                    if name not in seen_enums:
                        seen_enums.add(name)
                        surface.enums.append(enum)
                else:
                    # anonymous or foreign enum: keep the allowlisted values as constants
                    for key, value in enum.values.items():
                        if allow.constant(key):
                            surface.constants.setdefault(key, value)
            elif kind == CursorKind.TYPEDEF_DECL:
                if not allow.type(name) or name in seen_typedefs or name in self._records or name in seen_enums:
                    continue
                seen_typedefs.add(name)
                surface.typedefs.append(CTypedef(name=name, ctype=self.ctype(cur.underlying_typedef_type)))

        log.debug("Parsed %s: %s", header, surface.summary())
        return surface
