"""Link directive emitter (single- vs multi-variant consumption)."""

from .directives import (
    DirectiveKind,
    LinkDirective,
    consumer_link_directives,
    emit_link_directives,
    library_directives,
    render_directives,
    system_link_directives,
)

__all__ = [
    "DirectiveKind",
    "LinkDirective",
    "consumer_link_directives",
    "emit_link_directives",
    "library_directives",
    "render_directives",
    "system_link_directives",
]
