"""Parsed API surface: what the binding generator found in the public headers."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache

DEFAULT_FUNCTION_PATTERNS = ("ggml_.*", "gguf_.*")
DEFAULT_TYPE_PATTERNS = ("ggml_.*", "gguf_.*")
DEFAULT_CONSTANT_PATTERNS = ("GGML_.*", "GGUF_.*")


@lru_cache(maxsize=None)
def _compile(patterns: tuple[str, ...]) -> re.Pattern[str] | None:
    pats = [p for p in patterns if p]
    if not pats:
        return None
    return re.compile("|".join(f"(?:{p})" for p in pats))


@dataclass(frozen=True)
class Allowlist:
    """Full-match regexes selecting which names make it into the bindings."""

    functions: tuple[str, ...] = DEFAULT_FUNCTION_PATTERNS
    types: tuple[str, ...] = DEFAULT_TYPE_PATTERNS
    constants: tuple[str, ...] = DEFAULT_CONSTANT_PATTERNS

    def extended(
        self,
        functions: Sequence[str] = (),
        types: Sequence[str] = (),
        constants: Sequence[str] = (),
    ) -> Allowlist:
        return Allowlist(
            functions=(*self.functions, *functions),
            types=(*self.types, *types),
            constants=(*self.constants, *constants),
        )

    def _match(self, patterns: tuple[str, ...], name: str) -> bool:
        rx = _compile(patterns)
        return bool(name) and rx is not None and rx.fullmatch(name) is not None

    def function(self, name: str) -> bool:
        return self._match(self.functions, name)

    def type(self, name: str) -> bool:
        return self._match(self.types, name)

    def constant(self, name: str) -> bool:
        return self._match(self.constants, name)


@dataclass
class CFunction:
    name: str
    restype: str
    argtypes: list[str] = field(default_factory=list)
    variadic: bool = False


@dataclass
class CStruct:
    name: str
    # (field name, ctypes expression, bit width or None)
    fields: list[tuple[str, str, int | None]] = field(default_factory=list)
    opaque: bool = True
    union: bool = False


@dataclass
class CTypedef:
    name: str
    ctype: str


@dataclass
class CEnum:
    name: str
    values: dict[str, int] = field(default_factory=dict)


@dataclass
class BindingSurface:
    """Everything allowlisted from one header, in declaration order."""

    functions: list[CFunction] = field(default_factory=list)
    structs: list[CStruct] = field(default_factory=list)
    enums: list[CEnum] = field(default_factory=list)
    typedefs: list[CTypedef] = field(default_factory=list)
    constants: dict[str, int | float | str] = field(default_factory=dict)

    def names(self) -> list[str]:
        out: list[str] = list(self.constants)
        for e in self.enums:
            out.append(e.name)
            out.extend(e.values)
        out.extend(s.name for s in self.structs)
        out.extend(t.name for t in self.typedefs)
        out.extend(f.name for f in self.functions)
        return out

    def is_empty(self) -> bool:
        return not (self.functions or self.structs or self.enums or self.typedefs or self.constants)

    def summary(self) -> str:
        return (
            f"{len(self.functions)} functions, {len(self.structs)} structs, "
            f"{len(self.enums)} enums, {len(self.typedefs)} typedefs, "
            f"{len(self.constants)} constants"
        )
