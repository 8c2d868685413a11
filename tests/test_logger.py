import io
from pathlib import Path

from rich.console import Console

from charmake.output.logger import SimpleLogger


def make_logger(tmp_path: Path, verbose: bool):
    out, err = io.StringIO(), io.StringIO()
    logger = SimpleLogger(
        tmp_path / "logs" / "charmake.log",
        verbose=verbose,
        console=Console(file=out, width=120),
        err_console=Console(file=err, width=120),
    )
    return logger, out, err


def test_quiet_logger_still_writes_file(tmp_path: Path):
    logger, out, err = make_logger(tmp_path, verbose=False)

    logger.info("scanning hero")
    logger.warning("empty directory [skipped]")
    logger.error("bad sequence")

    assert "scanning hero" not in out.getvalue()
    assert "[WARNING] empty directory [skipped]" in out.getvalue()
    assert "[ERROR] bad sequence" in err.getvalue()

    content = (tmp_path / "logs" / "charmake.log").read_text()
    assert "Session started:" in content
    assert "[INFO] scanning hero" in content
    assert "[ERROR] bad sequence" in content


def test_verbose_logger_prints_tables_and_sections(tmp_path: Path):
    logger, out, _ = make_logger(tmp_path, verbose=True)

    logger.info("scanning hero")
    logger.section("Summary")
    logger.table(["Characters", "Failed"], [["3", "1"]])

    printed = out.getvalue()
    assert "[INFO] scanning hero" in printed
    assert "Summary" in printed
    assert "Characters" in printed
    content = (tmp_path / "logs" / "charmake.log").read_text()
    assert "Characters\tFailed" in content
    assert "3\t1" in content
