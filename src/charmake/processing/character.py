"""
Character directory processing.

A character directory holds one design overlay (design.under.png or
design.over.png) and one numbered frame sequence. Everything that can fail
without touching the disk (design lookup, sequence validation) runs before
the sequence is reversed.
"""

from __future__ import annotations

from pathlib import Path

from ..config import DESIGN_NAMES, STAGING_SUFFIX, DesignMode
from ..core.errors import ConfigError, DesignNotFoundError
from ..core.types import CharacterSequence
from .discover import discover_sequence
from .reverse import RenameObserver, reverse_sequence


def find_design_file(directory: Path, names: tuple[str, ...] = DESIGN_NAMES) -> Path:
    """Return the first existing design file in `directory`.

    Raises:
        DesignNotFoundError: None of `names` exists.
    """
    for name in names:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    raise DesignNotFoundError(directory, names)


def build_character_sequence(
    directory: Path,
    *,
    reverse: bool = True,
    rollback: bool = False,
    suffix: str = STAGING_SUFFIX,
    design_names: tuple[str, ...] = DESIGN_NAMES,
    on_rename: RenameObserver | None = None,
) -> CharacterSequence:
    """Validate a character directory and (optionally) reverse its frames.

    Raises:
        DesignNotFoundError: No design overlay.
        SequenceError: Discovery or reversal failed (see core.errors).
    """
    directory = directory.resolve()
    design = find_design_file(directory, design_names)
    try:
        mode = DesignMode.from_filename(design.name)
    except ValueError as ex:
        raise ConfigError(str(ex)) from ex
    sequence = discover_sequence(directory)

    if reverse:
        files = reverse_sequence(sequence, suffix=suffix, rollback=rollback, on_rename=on_rename)
    else:
        files = sequence.paths

    return CharacterSequence(
        name=directory.name,
        directory=directory,
        design_file=design,
        design_mode=mode.value,
        sequence=sequence,
        pattern=f"{sequence.base_name}*{sequence.extension}",
        sequence_files=tuple(files),
    )
