"""Image metadata helpers. Pixel data is never read or modified here."""

from __future__ import annotations

from pathlib import Path

from PIL import Image


def image_dimensions(path: Path) -> tuple[int, int]:
    """Return (width, height) of an image file.

    Raises:
        OSError: The file can't be opened or isn't a recognized image.
    """
    with Image.open(path) as im:
        return im.size
