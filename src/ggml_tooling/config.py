"""Project layout and option configuration (paths, package identity, features).

Layout defaults are overridden by an optional ggml-tooling.yaml at the project root:

    source_dir: ggml                # vendored native source tree
    wrapper_header: wrapper.h       # header fed to the binding generator
    out_dir: build/ggml-tooling     # per-invocation output root
    package_name: ggml-tooling      # identity used to prefix metadata keys
    features: [openblas]            # optional, same names as --features
    multi_variant: true             # optional
    jobs: 8                         # optional
    allowlist:                      # optional extra patterns
      functions: ["llama_.*"]

Paths are relative to the project root.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ggml_tooling.errors import ConfigurationError

CONFIG_FILE_NAME = "ggml-tooling.yaml"

DEFAULT_LAYOUT: dict[str, str] = {
    "source_dir": "ggml",
    "wrapper_header": "wrapper.h",
    "out_dir": "build/ggml-tooling",
    "bindings_file": "bindings.py",
    "metadata_file": "metadata.json",
    "package_name": "ggml-tooling",
}

OPTION_KEYS = ("features", "multi_variant", "jobs", "allowlist")


def resolve_layout(layout: dict[str, Any] | None) -> dict[str, str]:
    """Return layout dict with defaults filled. Unknown keys are dropped."""
    if layout is None:
        return dict(DEFAULT_LAYOUT)
    out = dict(DEFAULT_LAYOUT)
    out.update({k: str(v) for k, v in layout.items() if k in out and v is not None})
    return out


def load_project_config(project_root: Path) -> dict[str, Any]:
    """Load ggml-tooling.yaml from project_root if present.

    Returns {"layout": <resolved layout>, "options": {...}} where options holds only
    the keys in OPTION_KEYS that the file sets. Raises ConfigurationError when the file
    exists but is not a YAML mapping.
    """
    path = project_root / CONFIG_FILE_NAME
    data: dict[str, Any] = {}
    if path.is_file():
        try:
            with path.open() as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in {path}"
            raise ConfigurationError(msg, context={"error": str(e)}) from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            msg = f"{path} must contain a mapping at top level"
            raise ConfigurationError(msg)
        data = loaded

    options = {k: data[k] for k in OPTION_KEYS if k in data}
    return {"layout": resolve_layout(data), "options": options}
