"""
Core data types for charmake.

These are plain frozen dataclasses: a sequence is parsed once per directory
scan, validated, reversed at most once and then thrown away.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

SEQUENCE_PATTERN = re.compile(r"([a-z_\-]+)([0-9]+)(\.[a-z]+)", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class IndexedFile:
    """One frame file, split into `<base_name><digits><extension>`."""

    full_filename: str
    base_name: str
    index: int
    extension: str
    padding_width: int

    @classmethod
    def parse(cls, filename: str) -> IndexedFile | None:
        """Parse a bare filename; returns None when it doesn't match the sequence pattern.

        Examples:
            "char_07.png" -> IndexedFile("char_07.png", "char_", 7, ".png", 2)
            "design.over.png" -> None
        """
        match = SEQUENCE_PATTERN.fullmatch(filename)
        if not match:
            return None
        base_name, digits, extension = match.groups()
        return cls(
            full_filename=filename,
            base_name=base_name,
            index=int(digits),
            extension=extension,
            padding_width=len(digits),
        )


@dataclass(frozen=True)
class FrameSequence:
    """A validated, contiguous frame sequence in one directory.

    `files` is sorted ascending by index and shares base name, extension
    and padding width across all members.
    """

    directory: Path
    files: tuple[IndexedFile, ...]

    def __len__(self) -> int:
        return len(self.files)

    @property
    def base_name(self) -> str:
        return self.files[0].base_name

    @property
    def extension(self) -> str:
        return self.files[0].extension

    @property
    def padding_width(self) -> int:
        return self.files[0].padding_width

    @property
    def min_index(self) -> int:
        return self.files[0].index

    @property
    def max_index(self) -> int:
        return self.files[-1].index

    @property
    def paths(self) -> list[Path]:
        return [self.directory / f.full_filename for f in self.files]

    @property
    def printf_pattern(self) -> str:
        """Numeric filename pattern for ffmpeg's image2 demuxer, e.g. "char_%02d.png"."""
        return f"{self.base_name}%0{self.padding_width}d{self.extension}"

    def filename_for(self, index: int) -> str:
        """Regenerate the filename for `index` at the sequence's padding width."""
        return f"{self.base_name}{index:0{self.padding_width}d}{self.extension}"


@dataclass(frozen=True)
class RenameStep:
    """One planned move: source -> staged (phase 1) -> target (phase 2)."""

    source: Path
    staged: Path
    target: Path


@dataclass(frozen=True)
class ReversalPlan:
    """Ordered rename steps reversing one sequence: pairs outside-in, then the middle element."""

    sequence: FrameSequence
    steps: tuple[RenameStep, ...]

    @property
    def staged_paths(self) -> list[Path]:
        return [s.staged for s in self.steps]

    @property
    def target_paths(self) -> list[Path]:
        return sorted(s.target for s in self.steps)


@dataclass(frozen=True)
class CharacterSequence:
    """A character directory ready for GIF assembly."""

    name: str
    directory: Path
    design_file: Path
    design_mode: str  # "under" or "over"
    sequence: FrameSequence
    pattern: str
    sequence_files: tuple[Path, ...]
