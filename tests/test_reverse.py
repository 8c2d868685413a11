import hashlib
from pathlib import Path

import pytest

from conftest import contents_by_name, listing, write_frames
from charmake.core.errors import RenameFailureError, StagingConflictError
from charmake.processing.discover import discover_sequence, validate_sequence
from charmake.processing.reverse import mirror_positions, plan_reversal, reverse_sequence


def digest_by_index(directory: Path) -> dict[int, str]:
    seq = discover_sequence(directory)
    return {f.index: hashlib.sha256((directory / f.full_filename).read_bytes()).hexdigest() for f in seq.files}


def test_mirror_positions():
    assert mirror_positions(1) == [(0, 0)]
    assert mirror_positions(4) == [(0, 3), (3, 0), (1, 2), (2, 1)]
    assert mirror_positions(5) == [(0, 4), (4, 0), (1, 3), (3, 1), (2, 2)]


def test_plan_is_pure(tmp_path: Path):
    write_frames(tmp_path, range(4))
    before = listing(tmp_path)

    plan = plan_reversal(discover_sequence(tmp_path))

    assert listing(tmp_path) == before
    first = plan.steps[0]
    assert first.source.name == "char_00.png"
    assert first.staged.name == "char_03.png.bak"
    assert first.target.name == "char_03.png"


def test_five_frame_scenario(tmp_path: Path):
    write_frames(tmp_path, range(5))

    out = reverse_sequence(discover_sequence(tmp_path))

    names = [f"char_{i:02d}.png" for i in range(5)]
    assert [p.name for p in out] == names
    assert all(p.is_absolute() for p in out)
    assert listing(tmp_path) == names
    assert [(tmp_path / n).read_text() for n in names] == [f"frame-{i}" for i in [4, 3, 2, 1, 0]]


def test_odd_middle_stays_put(tmp_path: Path):
    write_frames(tmp_path, range(5))
    reverse_sequence(discover_sequence(tmp_path))
    assert (tmp_path / "char_02.png").read_text() == "frame-2"


def test_even_count_and_non_zero_start(tmp_path: Path):
    write_frames(tmp_path, range(10, 16), base="walk_")

    out = reverse_sequence(discover_sequence(tmp_path))

    assert [p.name for p in out] == [f"walk_{i}.png" for i in range(10, 16)]
    contents = contents_by_name(tmp_path)
    assert contents["walk_10.png"] == "frame-15"
    assert contents["walk_15.png"] == "frame-10"
    assert contents["walk_12.png"] == "frame-13"


def test_single_frame(tmp_path: Path):
    write_frames(tmp_path, [7])
    out = reverse_sequence(discover_sequence(tmp_path))
    assert [p.name for p in out] == ["char_07.png"]
    assert (tmp_path / "char_07.png").read_text() == "frame-7"


def test_padding_width_preserved(tmp_path: Path):
    write_frames(tmp_path, range(10), base="frame", width=3)

    out = reverse_sequence(discover_sequence(tmp_path))

    assert [p.name for p in out] == [f"frame{i:03d}.png" for i in range(10)]
    assert (tmp_path / "frame000.png").read_text() == "frame-9"


def test_double_reversal_round_trips(tmp_path: Path):
    write_frames(tmp_path, range(3, 10), base="idle-")
    before = digest_by_index(tmp_path)

    reverse_sequence(discover_sequence(tmp_path))
    assert digest_by_index(tmp_path) != before
    reverse_sequence(discover_sequence(tmp_path))

    assert digest_by_index(tmp_path) == before


def test_renames_never_overwrite_and_stage_before_destage(tmp_path: Path, monkeypatch):
    write_frames(tmp_path, range(6))
    (tmp_path / "design.under.png").write_bytes(b"d")
    targets: list[str] = []
    original_rename = Path.rename

    def guarded_rename(self, target):
        assert not Path(target).exists(), f"rename onto live file {target}"
        targets.append(Path(target).name)
        return original_rename(self, target)

    monkeypatch.setattr(Path, "rename", guarded_rename)

    def check_unique(source: Path, target: Path):
        names = listing(tmp_path)
        assert len(names) == len(set(names)) == 7

    reverse_sequence(discover_sequence(tmp_path), on_rename=check_unique)

    assert len(targets) == 12
    assert all(t.endswith(".bak") for t in targets[:6])
    assert not any(t.endswith(".bak") for t in targets[6:])


def test_leftover_staged_file_blocks_reversal(tmp_path: Path):
    write_frames(tmp_path, range(5))
    (tmp_path / "char_04.png.bak").write_text("stale")
    before = contents_by_name(tmp_path)

    with pytest.raises(StagingConflictError) as info:
        reverse_sequence(discover_sequence(tmp_path))

    assert [p.name for p in info.value.conflicts] == ["char_04.png.bak"]
    assert contents_by_name(tmp_path) == before


def fail_on_call(monkeypatch, n: int):
    """Make the n-th Path.rename call raise PermissionError."""
    original_rename = Path.rename
    calls = {"count": 0}

    def flaky_rename(self, target):
        calls["count"] += 1
        if calls["count"] == n:
            raise PermissionError(13, "Permission denied", str(target))
        return original_rename(self, target)

    monkeypatch.setattr(Path, "rename", flaky_rename)


def test_rename_failure_without_rollback_leaves_staged_files(tmp_path: Path, monkeypatch):
    write_frames(tmp_path, range(5))
    seq = discover_sequence(tmp_path)
    fail_on_call(monkeypatch, 3)

    with pytest.raises(RenameFailureError) as info:
        reverse_sequence(seq)

    err = info.value
    assert err.phase == "stage"
    assert err.rolled_back is False
    assert isinstance(err.__cause__, PermissionError)
    assert err.source.name == "char_01.png"
    assert err.target.name == "char_03.png.bak"
    names = listing(tmp_path)
    assert "char_04.png.bak" in names and "char_00.png.bak" in names
    # Nothing was lost: all five contents still exist somewhere
    assert sorted(contents_by_name(tmp_path).values()) == [f"frame-{i}" for i in range(5)]


def test_rename_failure_with_rollback_restores_directory(tmp_path: Path, monkeypatch):
    write_frames(tmp_path, range(5))
    before = contents_by_name(tmp_path)
    seq = discover_sequence(tmp_path)
    fail_on_call(monkeypatch, 8)  # during destage

    with pytest.raises(RenameFailureError) as info:
        reverse_sequence(seq, rollback=True)

    assert info.value.phase == "destage"
    assert info.value.rolled_back is True
    assert contents_by_name(tmp_path) == before


def test_custom_suffix(tmp_path: Path):
    write_frames(tmp_path, range(3))
    seen: list[str] = []
    reverse_sequence(discover_sequence(tmp_path), suffix=".swap", on_rename=lambda s, t: seen.append(t.name))
    assert seen[0] == "char_02.png.swap"
    assert listing(tmp_path) == ["char_00.png", "char_01.png", "char_02.png"]


def test_relative_directory_returns_absolute_paths(tmp_path: Path, monkeypatch):
    write_frames(tmp_path / "frames", range(3))
    monkeypatch.chdir(tmp_path)

    seq = validate_sequence(Path("frames"), listing(tmp_path / "frames"))
    paths = reverse_sequence(seq)

    assert paths == sorted(paths)
    assert all(p.is_absolute() for p in paths)
    assert paths[0] == (tmp_path / "frames" / "char_00.png").resolve()
    assert paths[0].read_text() == "frame-2"
