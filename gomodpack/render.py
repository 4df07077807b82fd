"""
Rendering functions for gomodpack output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional, Tuple

from . import semver
from .domain import VersionInfo, format_time

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def render_versions_table(module_path: str, versions: List[Tuple[str, Optional[VersionInfo]]]) -> None:
    """Render the cached versions of a module."""
    rows = []
    for version, info in versions:
        kind = "pseudo" if semver.is_pseudo_version(version) else "release"
        time_text = format_time(info.time) if info else "[red]missing .info[/red]"
        rows.append([version, kind, time_text])
    render_table(["Version", "Kind", "Commit time"], rows, title=module_path)
