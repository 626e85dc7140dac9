"""Pytest fixtures for ggml tooling tests."""

from pathlib import Path

import pytest


@pytest.fixture
def ggml_project(tmp_path: Path) -> Path:
    """Minimal project: vendored ggml tree (headers + CMakeLists.txt) and wrapper.h. Returns project root."""
    include = tmp_path / "ggml" / "include"
    include.mkdir(parents=True)
    (include / "ggml.h").write_text("#define GGML_MAX_DIMS 4\nstruct ggml_context;\n")
    (include / "gguf.h").write_text("struct gguf_context;\n")
    (tmp_path / "ggml" / "CMakeLists.txt").write_text("project(ggml C CXX)\n")
    (tmp_path / "wrapper.h").write_text('#include "ggml.h"\n#include "gguf.h"\n')
    return tmp_path


@pytest.fixture
def ok_run():
    """Factory for subprocess.run results with returncode 0."""

    def make(*_args, **_kwargs):
        return type("R", (), {"returncode": 0, "stdout": "", "stderr": ""})()

    return make
