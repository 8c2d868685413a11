"""
External tool validation for charmake.

GIF assembly shells out to ffmpeg; frame reversal needs nothing external.
A tool only counts as present when it resolves on PATH and answers
`-version`, so a broken install is caught before any frame is renamed.
"""

from __future__ import annotations

from shutil import which

from ..utils.subprocess import run_subprocess

REQUIRED_TOOLS = ("ffmpeg",)
VERSION_TIMEOUT_SEC = 10


def resolve_tools(tools: tuple[str, ...] = REQUIRED_TOOLS) -> dict[str, str | None]:
    """Map each tool name to its absolute path on PATH, or None."""
    return {name: which(name) for name in tools}


def check_tools(tools: tuple[str, ...] = REQUIRED_TOOLS) -> tuple[bool, list[str]]:
    """Check availability of required external tools.

    Returns:
        Tuple[bool, List[str]]: (all_ok, problems). If `all_ok` is False, problems lists the issues.
    """
    problems: list[str] = []
    for name, path in resolve_tools(tools).items():
        if path is None:
            problems.append(f"{name} not found in PATH")
            continue
        code, stderr = run_subprocess([path, "-version"], log=False, timeout=VERSION_TIMEOUT_SEC)
        if code != 0:
            detail = stderr.strip() or f"exit code {code}"
            problems.append(f"{name} at {path} does not run: {detail}")
    return (len(problems) == 0, problems)
