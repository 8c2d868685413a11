"""
Exception hierarchy for charmake.

Discovery errors are raised before anything on disk is touched. Reversal
errors carry enough context (source, target, phase) for an operator to find
files left under a staged name.
"""

from __future__ import annotations

from pathlib import Path


class CharmakeError(Exception):
    """Base class for all charmake errors."""


class ConfigError(CharmakeError):
    """Invalid user-supplied setting (size, crop rectangle, ...)."""


class DesignNotFoundError(CharmakeError):
    """Neither design.under.png nor design.over.png exists in a character directory."""

    def __init__(self, directory: Path, candidates: tuple[str, ...]):
        self.directory = directory
        self.candidates = candidates
        names = " or ".join(candidates)
        super().__init__(f"Error [{directory}]: {names} doesn't exist")


class SequenceError(CharmakeError):
    """Base class for problems with one frame sequence directory."""

    def __init__(self, directory: Path, message: str):
        self.directory = directory
        super().__init__(f"Error [{directory}]: {message}")


class EmptySequenceError(SequenceError):
    """No file in the directory matches the sequence pattern."""

    def __init__(self, directory: Path):
        super().__init__(directory, "No valid animation sequence exists")


class MalformedSequenceError(SequenceError):
    """Matching files disagree on base name, extension or padding width."""

    def __init__(self, directory: Path, field: str, values: list):
        self.field = field
        self.values = values
        shown = ", ".join(repr(v) for v in values)
        super().__init__(directory, f"Inconsistent {field} across sequence files: {shown}")


class NonContiguousSequenceError(SequenceError):
    """Indices have gaps or duplicates."""

    def __init__(self, directory: Path, min_index: int, max_index: int, count: int, duplicates: list[int] | None = None):
        self.min_index = min_index
        self.max_index = max_index
        self.count = count
        self.duplicates = duplicates or []
        message = (
            "File indexes don't match the total number of files. "
            f"Min Index: {min_index}, Max Index: {max_index}, Total Files: {count}"
        )
        if self.duplicates:
            message += f", Duplicate Indexes: {self.duplicates}"
        super().__init__(directory, message)


class StagingConflictError(SequenceError):
    """A staged name is already taken, usually by a leftover from an interrupted run."""

    def __init__(self, directory: Path, conflicts: list[Path]):
        self.conflicts = conflicts
        names = ", ".join(p.name for p in conflicts)
        super().__init__(directory, f"Staged names already exist, run recovery first: {names}")


class RenameFailureError(SequenceError):
    """A rename failed mid-operation.

    Attributes:
        source: Path being moved.
        target: Destination path.
        phase: One of "stage", "destage", "rollback" or "recover".
        rolled_back: True when every earlier rename of the operation was undone.
    """

    def __init__(self, source: Path, target: Path, phase: str, reason: str, rolled_back: bool = False):
        self.source = source
        self.target = target
        self.phase = phase
        self.rolled_back = rolled_back
        super().__init__(source.parent, f"Rename failed during {phase}: {source.name} -> {target.name} ({reason})")
