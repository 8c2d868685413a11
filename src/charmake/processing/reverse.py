"""
In-place frame sequence reversal using only renames.

The reversal is done in two phases so no rename ever targets a live file:

1. Stage: every file is renamed to `<its final name><suffix>`. Pairs are
   handled outside-in (0 <-> n-1, 1 <-> n-2, ...); the middle element of an
   odd-length sequence is staged to its own name.
2. Destage: once *all* files are staged, the suffix is stripped from each.

A crash between the phases leaves `<name>.bak` files that already encode
where they belong; `recover_staged` finishes (or undoes) such a run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..config import STAGING_SUFFIX
from ..core.errors import RenameFailureError, StagingConflictError
from ..core.types import FrameSequence, IndexedFile, RenameStep, ReversalPlan

RenameObserver = Callable[[Path, Path], None]


def mirror_positions(count: int) -> list[tuple[int, int]]:
    """Return (position, target_position) pairs in processing order.

    Examples:
        4 -> [(0, 3), (3, 0), (1, 2), (2, 1)]
        5 -> [(0, 4), (4, 0), (1, 3), (3, 1), (2, 2)]
    """
    order: list[tuple[int, int]] = []
    for i in range(count // 2):
        j = count - 1 - i
        order.append((i, j))
        order.append((j, i))
    if count % 2:
        mid = count // 2
        order.append((mid, mid))
    return order


def plan_reversal(sequence: FrameSequence, suffix: str = STAGING_SUFFIX) -> ReversalPlan:
    """Compute the rename steps that reverse `sequence`. Pure; never modifies the disk."""
    steps: list[RenameStep] = []
    directory = sequence.directory.resolve()
    for pos, target_pos in mirror_positions(len(sequence)):
        source = directory / sequence.files[pos].full_filename
        target_name = sequence.filename_for(sequence.min_index + target_pos)
        steps.append(
            RenameStep(
                source=source,
                staged=directory / f"{target_name}{suffix}",
                target=directory / target_name,
            )
        )
    return ReversalPlan(sequence=sequence, steps=tuple(steps))


def check_plan(plan: ReversalPlan) -> None:
    """Refuse to start when any staged name is already taken.

    Raises:
        StagingConflictError: One or more staged paths exist.
    """
    conflicts = [p for p in plan.staged_paths if p.exists() or p.is_symlink()]
    if conflicts:
        raise StagingConflictError(plan.sequence.directory, conflicts)


def _rename(source: Path, target: Path, phase: str) -> None:
    """Rename without ever replacing an existing file."""
    if target.exists() or target.is_symlink():
        err = FileExistsError(f"destination exists: {target}")
        raise RenameFailureError(source, target, phase, str(err)) from err
    try:
        source.rename(target)
    except OSError as ex:
        raise RenameFailureError(source, target, phase, f"{type(ex).__name__}: {ex}") from ex


class _RenameJournal:
    """Records completed renames so a failed reversal can be undone."""

    def __init__(self, observer: RenameObserver | None = None):
        self.done: list[tuple[Path, Path]] = []
        self._observer = observer

    def move(self, source: Path, target: Path, phase: str) -> None:
        _rename(source, target, phase)
        self.done.append((source, target))
        if self._observer is not None:
            self._observer(source, target)

    def rollback(self) -> bool:
        """Undo recorded renames newest-first. Returns False if any undo failed."""
        while self.done:
            source, target = self.done[-1]
            try:
                _rename(target, source, "rollback")
            except RenameFailureError:
                return False
            self.done.pop()
            if self._observer is not None:
                self._observer(target, source)
        return True


def execute_plan(plan: ReversalPlan, *, rollback: bool = False, on_rename: RenameObserver | None = None) -> list[Path]:
    """Run both phases of a reversal plan.

    Args:
        plan: Output of plan_reversal.
        rollback: When True, a failure undoes every rename already made
            before the error propagates. When False, files stay where the
            failure left them (possibly under staged names).
        on_rename: Called as on_rename(source, target) after each rename.

    Returns:
        Final paths, sorted.

    Raises:
        StagingConflictError: Before any rename, if a staged name is taken.
        RenameFailureError: A rename failed; `rolled_back` tells whether the
            directory was restored.
    """
    check_plan(plan)
    journal = _RenameJournal(on_rename)
    try:
        for step in plan.steps:
            journal.move(step.source, step.staged, "stage")
        # Every source name is free from here on, so destaging can't collide.
        for step in plan.steps:
            journal.move(step.staged, step.target, "destage")
    except RenameFailureError as err:
        if rollback:
            err.rolled_back = journal.rollback()
        raise
    return plan.target_paths


def reverse_sequence(
    sequence: FrameSequence,
    *,
    suffix: str = STAGING_SUFFIX,
    rollback: bool = False,
    on_rename: RenameObserver | None = None,
) -> list[Path]:
    """Reverse a validated sequence in place and return the sorted final paths.

    The lowest index ends up holding what was at the highest index and vice
    versa; the index range, base name, extension and padding are unchanged.
    """
    plan = plan_reversal(sequence, suffix)
    return execute_plan(plan, rollback=rollback, on_rename=on_rename)


# ------------------------------
# Recovery after an interrupted run
# ------------------------------


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of recover_staged.

    mode is "clean" (nothing staged), "completed" (staged files were
    destaged) or "reverted" (staged files were returned to their source names).
    """

    mode: str
    renamed: tuple[tuple[Path, Path], ...]


def find_staged_files(directory: Path, suffix: str = STAGING_SUFFIX) -> list[tuple[Path, IndexedFile]]:
    """Return (staged_path, parsed_target) for each `<sequence name><suffix>` file."""
    staged: list[tuple[Path, IndexedFile]] = []
    for p in sorted(directory.iterdir()):
        if not p.is_file() or not p.name.endswith(suffix):
            continue
        parsed = IndexedFile.parse(p.name[: -len(suffix)])
        if parsed is not None:
            staged.append((p, parsed))
    return staged


def recover_staged(directory: Path, suffix: str = STAGING_SUFFIX) -> RecoveryResult:
    """Repair a directory left mid-reversal.

    Staging and destaging walk the same outside-in step order, so the set of
    staged targets tells the two apart: a suffix of that order means the
    destage phase was cut short (finish it), a proper prefix means the stage
    phase was (send each staged file back to the mirror index it came from).

    Raises:
        RenameFailureError: A destination is unexpectedly taken, the staged
            set fits neither phase, or a rename fails.
    """
    directory = directory.resolve()
    staged = find_staged_files(directory, suffix)
    if not staged:
        return RecoveryResult(mode="clean", renamed=())

    first = staged[0][1]
    live = [IndexedFile.parse(p.name) for p in directory.iterdir() if p.is_file()]
    live_indices = [
        f.index for f in live
        if f is not None and (f.base_name, f.extension) == (first.base_name, first.extension)
    ]
    staged_targets = {t.index for _, t in staged}
    k = len(staged_targets)

    # The highest index is always present (live or as the first staged
    # target), the lowest may not be: derive it from the file count.
    count = len(live_indices) + len(staged)
    hi = max(live_indices + list(staged_targets))
    lo = hi - count + 1
    if lo < 0 or any(i < lo for i in live_indices) or any(t < lo for t in staged_targets):
        path = staged[0][0]
        raise RenameFailureError(path, path, "recover", f"staged files don't fit a contiguous range ending at {hi}")

    order = [lo + target_pos for _, target_pos in mirror_positions(count)]

    renamed: list[tuple[Path, Path]] = []
    if set(order[len(order) - k:]) == staged_targets:
        mode = "completed"
        moves = [(path, directory / target.full_filename) for path, target in staged]
    elif set(order[:k]) == staged_targets:
        mode = "reverted"
        moves = []
        for path, target in staged:
            source_index = lo + hi - target.index
            source_name = f"{target.base_name}{source_index:0{target.padding_width}d}{target.extension}"
            moves.append((path, directory / source_name))
    else:
        path = staged[0][0]
        raise RenameFailureError(path, path, "recover", "staged files match neither an interrupted stage nor destage")

    for path, dest in moves:
        _rename(path, dest, "recover")
        renamed.append((path, dest))
    return RecoveryResult(mode=mode, renamed=tuple(renamed))
