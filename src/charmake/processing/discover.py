"""
Frame sequence discovery.

`validate_sequence` is a pure check over a list of filenames and returns either
a FrameSequence or the specific error describing why the names don't form one.
`discover_sequence` adds the (read-only) directory listing and raises.
Nothing in this module renames or writes files.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from ..core.errors import (
    EmptySequenceError,
    MalformedSequenceError,
    NonContiguousSequenceError,
    SequenceError,
)
from ..core.types import FrameSequence, IndexedFile


def list_sequence_files(directory: Path) -> list[str]:
    """Return the names of regular files in `directory`, sorted."""
    return sorted(p.name for p in directory.iterdir() if p.is_file())


def parse_sequence_files(filenames: list[str]) -> list[IndexedFile]:
    """Keep only names matching the sequence pattern, parsed."""
    parsed = (IndexedFile.parse(name) for name in filenames)
    return [f for f in parsed if f is not None]


def _distinct(values) -> list:
    seen: list = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def validate_sequence(directory: Path, filenames: list[str]) -> FrameSequence | SequenceError:
    """Check that `filenames` hold one complete, consistent sequence.

    Args:
        directory: Directory the names belong to (used for paths and messages).
        filenames: Bare filenames; non-matching names are ignored.

    Returns:
        FrameSequence when valid, otherwise the SequenceError instance
        (EmptySequenceError, MalformedSequenceError or NonContiguousSequenceError).
    """
    directory = directory.resolve()
    files = parse_sequence_files(filenames)
    if not files:
        return EmptySequenceError(directory)

    for field in ("base_name", "extension", "padding_width"):
        values = _distinct(getattr(f, field) for f in files)
        if len(values) > 1:
            return MalformedSequenceError(directory, field.replace("_", " "), values)

    files.sort(key=lambda f: f.index)
    indices = [f.index for f in files]
    min_index, max_index, count = indices[0], indices[-1], len(indices)

    duplicates = sorted(i for i, n in Counter(indices).items() if n > 1)
    if duplicates or (max_index - min_index + 1) != count:
        return NonContiguousSequenceError(directory, min_index, max_index, count, duplicates)

    return FrameSequence(directory=directory, files=tuple(files))


def discover_sequence(directory: Path) -> FrameSequence:
    """Scan `directory` and return its validated frame sequence.

    Raises:
        EmptySequenceError: No matching files.
        MalformedSequenceError: Mixed base names, extensions or padding widths.
        NonContiguousSequenceError: Gaps or duplicate indices.
        OSError: The directory can't be listed.
    """
    result = validate_sequence(directory, list_sequence_files(directory))
    if isinstance(result, SequenceError):
        raise result
    return result
