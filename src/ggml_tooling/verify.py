"""Check a project's ggml source layout and show what downstream stages will read."""

from __future__ import annotations

import sys
from pathlib import Path

from ggml_tooling.config import CONFIG_FILE_NAME, load_project_config
from ggml_tooling.errors import ToolingError
from ggml_tooling.metadata import expected_keys
from ggml_tooling.pipeline import required_source_paths, resolve_paths
from ggml_tooling.variants import DEFAULT_VARIANT, VARIANTS, validate_registry


def run(project_root: Path) -> int:
    """Print one line per required path plus the metadata key names. Returns 0/1."""
    try:
        project = load_project_config(project_root)
        validate_registry(VARIANTS)
    except ToolingError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    layout = project["layout"]
    paths = resolve_paths(project_root, layout, None)

    cfg = paths.project_root / CONFIG_FILE_NAME
    if cfg.is_file():
        print(f"✅ {cfg}")
    else:
        print(f"⚠️  {CONFIG_FILE_NAME} not found, using default layout")

    missing = 0
    for p in required_source_paths(paths):
        if p.exists():
            print(f"✅ {p}")
        else:
            print(f"❌ {p} not found", file=sys.stderr)
            missing += 1

    package = paths.package_name
    print(f"📦 Metadata keys published by {package}:")
    print("  single-variant:")
    for key in expected_keys(package, [DEFAULT_VARIANT]):
        print(f"    {key}")
    print("  multi-variant:")
    for key in expected_keys(package, VARIANTS):
        print(f"    {key}")

    if missing:
        print(f"❌ {missing} required path(s) missing under {paths.project_root}", file=sys.stderr)
        return 1
    print("✅ Source layout OK")
    return 0
