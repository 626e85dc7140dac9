"""Generate the FFI bindings module from the ggml wrapper header."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ggml_tooling.errors import BindingGenerationError
from ggml_tooling.gen.render import render_module
from ggml_tooling.gen.surface import Allowlist, BindingSurface
from ggml_tooling.helpers import atomic_write_text

log = logging.getLogger(__name__)


def generate_bindings(
    wrapper_header: Path,
    include_dirs: Sequence[Path],
    out_path: Path,
    allowlist: Allowlist | None = None,
    *,
    extra_args: Sequence[str] = (),
) -> tuple[Path, BindingSurface]:
    """Parse wrapper_header and write the ctypes module to out_path.

    Raises BindingGenerationError when the header does not parse or when nothing in it
    matches the allowlist. The output file is replaced in one step, so a failed run
    keeps whatever a previous run wrote.
    """
    from ggml_tooling.gen.parser import HeaderParser

    if not wrapper_header.is_file():
        msg = f"Wrapper header not found: {wrapper_header}"
        raise BindingGenerationError(msg, hint="The wrapper header must include ggml.h and gguf.h.")

    print(f"🔗 Generating bindings from {wrapper_header.name}...")
    surface = HeaderParser(allowlist).parse(wrapper_header, include_dirs, extra_args)
    if surface.is_empty():
        msg = f"No allowlisted declarations found in {wrapper_header}"
        raise BindingGenerationError(
            msg,
            hint="Check that the wrapper header includes the ggml headers and the allowlist patterns.",
            context={"include_dirs": ", ".join(str(d) for d in include_dirs)},
        )

    atomic_write_text(out_path, render_module(surface, source=wrapper_header.name))
    print(f"✅ Bindings written to {out_path} ({surface.summary()})")
    return out_path, surface
