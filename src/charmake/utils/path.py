"""
Path and directory utilities for charmake.

Handles the batch layout: one character per top-level subdirectory of the
input directory.
"""

from __future__ import annotations

from pathlib import Path


def should_skip_dir(dirname: str) -> bool:
    """Skip hidden and private folders (".git", "_old", "__pycache__")."""
    return dirname.startswith(".") or dirname.startswith("_")


def list_character_dirs(input_dir: Path) -> list[Path]:
    """Return the top-level subdirectories of `input_dir`, sorted by name.

    Raises:
        OSError: `input_dir` can't be listed.
    """
    return sorted(
        (p for p in input_dir.iterdir() if p.is_dir() and not should_skip_dir(p.name)),
        key=lambda p: p.name,
    )
