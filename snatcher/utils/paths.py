"""Output path utilities."""

import os
import posixpath
from pathlib import Path

DEFAULT_OUTPUT_DIR = "recovered-files"


def get_default_output_dir() -> Path:
    """Get the output directory path, with environment variable override support."""
    env_override = os.environ.get("SNATCHER_OUTPUT_DIR")
    if env_override:
        return Path(env_override).expanduser()

    return Path(DEFAULT_OUTPUT_DIR)


def resolve_destination(output_dir: Path, source: str) -> Path:
    """Join a sourcemap source path under the output root.

    Backslashes are treated as separators, ``.`` and ``..`` segments are
    collapsed and any ``..`` that would climb above the root is dropped, so
    the result always stays inside ``output_dir``.
    """
    normalized = posixpath.normpath("/" + source.replace("\\", "/"))
    parts = [part for part in normalized.split("/") if part and part != ".."]
    if not parts:
        raise ValueError(f"Source path {source!r} has no file component")
    return output_dir.joinpath(*parts)
