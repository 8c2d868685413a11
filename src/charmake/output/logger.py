"""
Run logger: timestamped console output via Rich, plain text in a log file.
"""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

PREFIX_STYLES = {
    "[INFO]": "cyan",
    "[SUCCESS]": "green",
    "[WARNING]": "yellow",
    "[ERROR]": "bold red",
}


class SimpleLogger:
    """Logger that writes to a Rich console and, optionally, a log file.

    Args:
        log_file: Append plain-text lines here when given.
        verbose: When False, info() and plain log() lines only go to the file.
        console: Console for normal output (defaults to stdout).
        err_console: Console for errors (defaults to stderr).
    """

    def __init__(
        self,
        log_file: Optional[Path] = None,
        verbose: bool = True,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.log_file = log_file
        self.verbose = verbose
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.start_time = time.time()

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(f"\n{'='*60}\n")
                f.write(f"Session started: {datetime.now().isoformat()}\n")
                f.write(f"{'='*60}\n")

    def log(self, message: str, prefix: str = "", error: bool = False, quiet: bool = False) -> None:
        """Log a message to console and file.

        Args:
            message: The message to log
            prefix: Optional prefix like [INFO], [ERROR], etc.
            error: Whether to write to the error console
            quiet: Write to the file only (used for non-verbose info)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        formatted = f"[{timestamp}] {prefix} {message}" if prefix else f"[{timestamp}] {message}"

        if not quiet:
            console = self.err_console if error else self.console
            console.print(formatted, style=PREFIX_STYLES.get(prefix), markup=False)

        self._write_file(formatted)

    def _write_file(self, line: str) -> None:
        if not self.log_file:
            return
        try:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError as ex:
            self.err_console.print(f"log file write failed: {ex}", markup=False)
            self.log_file = None

    def table(self, headers: List[str], rows: List[List[str]], title: str = "") -> None:
        """Print a Rich table; the file gets one tab-separated line per row."""
        if not headers or not rows:
            return

        table = Table(title=title or None)
        for h in headers:
            table.add_column(h)
        for row in rows:
            table.add_row(*(str(cell) for cell in row))
        if self.verbose:
            self.console.print(table)

        self._write_file("\t".join(headers))
        for row in rows:
            self._write_file("\t".join(str(cell) for cell in row))

    def section(self, title: str) -> None:
        """Print a section header."""
        if self.verbose:
            self.console.rule(title)
        self._write_file(f"{'=' * 20} {title} {'=' * 20}")

    def elapsed(self) -> float:
        return time.time() - self.start_time

    def success(self, message: str) -> None:
        """Log a success message."""
        self.log(message, prefix="[SUCCESS]")

    def error(self, message: str) -> None:
        """Log an error message."""
        self.log(message, prefix="[ERROR]", error=True)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.log(message, prefix="[WARNING]")

    def info(self, message: str) -> None:
        """Log an info message; console only when verbose."""
        self.log(message, prefix="[INFO]", quiet=not self.verbose)
