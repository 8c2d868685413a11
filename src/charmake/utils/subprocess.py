"""Subprocess and external command utilities."""

import shlex
import subprocess


def format_cmd(cmd: list[str]) -> str:
    """Shell-quoted rendering of a command for logs."""
    return " ".join(shlex.quote(part) for part in cmd)


def run_subprocess(cmd: list[str], *, log: bool = True, timeout: int | None = None) -> tuple[int, str]:
    """Run subprocess command with proper error handling.

    Args:
        cmd: Command and arguments list
        log: Whether to print the command before running it
        timeout: Optional timeout in seconds

    Returns:
        Tuple of (return_code, stderr_output)
    """
    if log:
        print(f"Running: {format_cmd(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        return result.returncode, result.stderr
    except subprocess.TimeoutExpired:
        return -1, f"Command timed out after {timeout} seconds"
    except OSError as e:
        return -1, f"{type(e).__name__}: {e}"
