"""User-facing progress feedback for CLI operations.

Design principles:
- Single line updates, no spam
- Graceful degradation in non-TTY (CI, pipes, cron)
- Suppress structlog console output during spinners to avoid line collision

Usage::

    from bridgepool.core.progress import status, task

    with task("Fetching snapshots"):
        fetch()

    status("Exported 3 files", style="success")  # ✓ Exported 3 files
"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_suppress_console_logs = threading.local()


def is_console_suppressed() -> bool:
    """Check if console logging is currently suppressed."""
    return getattr(_suppress_console_logs, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Suppress structlog console output while a live display is active.

    File handlers keep receiving records.
    """
    _suppress_console_logs.active = True
    try:
        yield
    finally:
        _suppress_console_logs.active = False


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from bridgepool.core.logging import get_logger

    return get_logger("progress")


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)
    _get_logger().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return "1 file" / "3 files"."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def task(name: str) -> Iterator[None]:
    """Named task with a spinner on TTYs and timing on completion.

    Usage::

        with task("Parsing snapshots"):
            ...
        # Prints: ✓ Parsing snapshots (3.2s)
    """
    log = _get_logger()
    log.debug("task_start", task=name)
    start = time.perf_counter()

    try:
        if _is_tty():
            with suppress_console_logs(), _console.status(f"[cyan]{name}[/cyan]", spinner="dots"):
                yield
        else:
            status(f"{name}...", style="none")
            yield
    except Exception as e:
        elapsed = time.perf_counter() - start
        status(f"{name} failed: {e}", style="error")
        log.error("task_failed", task=name, elapsed_s=elapsed, error=str(e))
        raise

    elapsed = time.perf_counter() - start
    status(f"{name} ({elapsed:.1f}s)", style="success")
    log.debug("task_done", task=name, elapsed_s=elapsed)


def make_summary_table(counts: Mapping[str, int], *, title: str | None = None) -> Table:
    """Two-column table of labelled counts, right-aligned."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("label", style="dim")
    table.add_column("count", justify="right", style="bold")
    for label, count in counts.items():
        table.add_row(label, f"{count:,}")
    return table
