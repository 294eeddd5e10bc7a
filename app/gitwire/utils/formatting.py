"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

WIRE_THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "progress": "#0e8ac8",
        "failed": "#d44ebc",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=WIRE_THEME, color_system=_detect_color_system(), highlight=False)
err_console = Console(
    theme=WIRE_THEME, stderr=True, color_system=_detect_color_system(), highlight=False
)


def create_cache_table(title: str = "Cached Repositories") -> Table:
    """Create a pre-configured table for displaying cache metadata.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for cache display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Key", no_wrap=True, style="info")
    table.add_column("Repository", overflow="fold")
    table.add_column("Revision", style="muted")
    table.add_column("Commit", style="muted", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Last access", style="muted", no_wrap=True)
    return table


def format_size(size_bytes: int) -> str:
    """Render a byte count in a human readable unit.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Size string such as "1.2 MB".
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]")


def print_progress(message: str) -> None:
    """Print a per-entry progress line."""
    console.print(f"[progress]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")


def print_failure(message: str) -> None:
    """Print a failure message."""
    console.print(f"[failed]{escape(message)}[/]")
