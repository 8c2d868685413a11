from pathlib import Path

import pytest

from conftest import contents_by_name, listing, write_frames
from charmake.core.errors import RenameFailureError
from charmake.processing.discover import discover_sequence
from charmake.processing.reverse import find_staged_files, recover_staged, reverse_sequence


class Interrupted(Exception):
    pass


def interrupt_after(n: int):
    """Observer that simulates a crash right after the n-th rename."""
    calls = {"count": 0}

    def observer(source: Path, target: Path):
        calls["count"] += 1
        if calls["count"] == n:
            raise Interrupted()

    return observer


@pytest.mark.parametrize("count", [4, 5])
@pytest.mark.parametrize("crash_after", range(1, 10))
def test_recover_after_crash(tmp_path: Path, count: int, crash_after: int):
    if crash_after >= 2 * count:
        pytest.skip("no crash point past the last rename")
    write_frames(tmp_path, range(count))
    original = contents_by_name(tmp_path)

    with pytest.raises(Interrupted):
        reverse_sequence(discover_sequence(tmp_path), on_rename=interrupt_after(crash_after))
    assert find_staged_files(tmp_path)

    result = recover_staged(tmp_path)

    assert not find_staged_files(tmp_path)
    assert listing(tmp_path) == sorted(original)
    contents = contents_by_name(tmp_path)
    if crash_after < count:
        assert result.mode == "reverted"
        assert contents == original
    else:
        assert result.mode == "completed"
        assert contents["char_00.png"] == f"frame-{count - 1}"
        assert contents[f"char_{count - 1:02d}.png"] == "frame-0"


def test_recover_clean_directory(tmp_path: Path):
    write_frames(tmp_path, range(3))
    result = recover_staged(tmp_path)
    assert result.mode == "clean"
    assert result.renamed == ()


def test_recover_refuses_unknown_state(tmp_path: Path):
    write_frames(tmp_path, [1, 2, 3])
    # Reversal stages the highest target first, so a lone staged 00 fits neither phase
    (tmp_path / "char_00.png.bak").write_text("frame-x")
    before = listing(tmp_path)

    with pytest.raises(RenameFailureError) as info:
        recover_staged(tmp_path)

    assert info.value.phase == "recover"
    assert listing(tmp_path) == before


def test_recover_refuses_out_of_range_state(tmp_path: Path):
    write_frames(tmp_path, [0, 1])
    (tmp_path / "char_01.png.bak").write_text("frame-x")
    with pytest.raises(RenameFailureError):
        recover_staged(tmp_path)
