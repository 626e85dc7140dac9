"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers, one per failure class of the pipeline."""

    CONFIG = "E_CONFIG"
    SOURCE = "E_SOURCE"
    BINDINGS = "E_BINDINGS"
    NATIVE_BUILD = "E_NATIVE_BUILD"
    METADATA_KEY = "E_METADATA_KEY"
    METADATA_CONFLICT = "E_METADATA_CONFLICT"


class ToolingError(Exception):
    """Base error class that carries code, optional hint, and context."""

    message: str
    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for k, v in self.context.items():
            if v:
                parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigurationError(ToolingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class SourceNotFoundError(ToolingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SOURCE, hint=hint, context=context)


class BindingGenerationError(ToolingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BINDINGS, hint=hint, context=context)


class NativeBuildError(ToolingError):
    """The external native build failed for one variant."""

    variant: str

    def __init__(
        self,
        message: str,
        *,
        variant: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        ctx = {"variant": variant, **dict(context or {})}
        super().__init__(message, code=ErrorCode.NATIVE_BUILD, hint=hint, context=ctx)
        self.variant = variant


class MetadataKeyError(ToolingError, KeyError):
    """A downstream stage asked for a metadata key that was never published."""

    key: str

    def __init__(self, key: str, *, hint: str | None = None) -> None:
        super().__init__(
            f"Metadata key not found: {key}",
            code=ErrorCode.METADATA_KEY,
            hint=hint,
            context={"key": key},
        )
        self.key = key


class MetadataConflictError(ToolingError):
    def __init__(self, key: str, old: str, new: str) -> None:
        super().__init__(
            f"Metadata key {key} already published with a different value",
            code=ErrorCode.METADATA_CONFLICT,
            context={"key": key, "published": old, "rejected": new},
        )
        self.key = key


__all__ = [
    "BindingGenerationError",
    "ConfigurationError",
    "ErrorCode",
    "MetadataConflictError",
    "MetadataKeyError",
    "NativeBuildError",
    "SourceNotFoundError",
    "ToolingError",
]
