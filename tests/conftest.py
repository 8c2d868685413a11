from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image


def write_frames(directory: Path, indices, base: str = "char_", width: int = 2, ext: str = ".png") -> list[Path]:
    """Create frame files whose content names the index they were created at."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in indices:
        p = directory / f"{base}{i:0{width}d}{ext}"
        p.write_text(f"frame-{i}")
        paths.append(p)
    return paths


def listing(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())


def contents_by_name(directory: Path) -> dict[str, str]:
    return {p.name: p.read_text() for p in directory.iterdir() if p.is_file() and p.suffix != ".gif"}


@pytest.fixture
def make_design():
    def _make(directory: Path, mode: str = "under", size: tuple[int, int] = (64, 48)) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"design.{mode}.png"
        Image.new("RGBA", size, (255, 0, 0, 128)).save(path)
        return path

    return _make
