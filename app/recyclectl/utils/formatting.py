"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys
from datetime import datetime

from rich.console import Console

from recyclectl.core.theme import get_theme
from recyclectl.models.record import RecordStatus


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())

_STATUS_STYLES: dict[str, str] = {
    RecordStatus.SUCCESS.value: "success",
    RecordStatus.FAILED.value: "error",
    RecordStatus.PARTIAL_FAILED.value: "error",
    RecordStatus.DRY_RUN.value: "dry_run",
}

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: int | None) -> str:
    """Format a byte count for humans (1024-based units)."""
    value = float(size or 0)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{int(value)} B"


def format_timestamp(ts_millis: int | None) -> str:
    """Format epoch milliseconds as local ``YYYY-MM-DD HH:MM``."""
    if not ts_millis:
        return "-"
    return datetime.fromtimestamp(ts_millis / 1000).strftime("%Y-%m-%d %H:%M")


def format_status(status: str) -> str:
    """Wrap a record status in its theme style."""
    style = _STATUS_STYLES.get(status, "skipped" if status.startswith("skipped") else "text")
    return f"[{style}]{status}[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
