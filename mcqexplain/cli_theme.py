# mcqexplain/cli_theme.py
"""Terminal styling for the mcqexplain CLI.

Amber on slate.  Every helper returns Rich markup or renderables and takes the
console explicitly, so commands stay printable under ``CliRunner``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from rich import box
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.style import Style
from rich.table import Table
from rich.text import Text

BRAND = "M C Q E X P L A I N"
AMBER = "#E0A53C"
SLATE = "#8A99A8"
MUTED = "dim"
RULE_WIDTH = 56

# Badge colours keyed by what is being labelled.
_BADGE_COLORS = {
    "correct": "green",
    "wrong": "red",
    "warn": "yellow",
}


def print_version(version: str, console: Console) -> None:
    console.print(Text.assemble((BRAND, f"bold {AMBER}"), (f"  v{version}", MUTED)))


def section(title: str, console: Console, number: Optional[str] = None) -> None:
    """``01 · TITLE`` followed by a slate rule."""
    heading = Text("  ")
    if number:
        heading.append(number, style=f"bold {AMBER}")
        heading.append(" · ", style=MUTED)
    heading.append(title.upper(), style="bold")
    console.print()
    console.print(heading)
    console.print("  " + "─" * RULE_WIDTH, style=SLATE)


def make_table(**kwargs: object) -> Table:
    return Table(box=box.ROUNDED, border_style=SLATE, header_style="bold", padding=(0, 1), **kwargs)


def make_kv_table() -> Table:
    t = make_table(show_header=False)
    t.add_column("Key", style=f"bold {AMBER}", no_wrap=True)
    t.add_column("Value")
    return t


def badge(label: str, variant: str = "default") -> str:
    color = _BADGE_COLORS.get(variant, AMBER)
    return f"[reverse {color}] {label} [/reverse {color}]"


def _status(symbol: str, color: str, msg: str) -> str:
    return f"  [bold {color}]{symbol}[/bold {color}] {msg}"


def ok(msg: str) -> str:
    return _status("✓", "green", msg)


def warn(msg: str) -> str:
    return _status("!", "yellow", f"[yellow]{msg}[/yellow]")


def err(msg: str) -> str:
    return _status("✗", "red", msg)


def info(msg: str) -> str:
    return _status("›", AMBER, f"[{MUTED}]{msg}[/{MUTED}]")


@contextmanager
def spinner(label: str, console: Console) -> Generator[None, None, None]:
    """Transient spinner shown while waiting on the provider."""
    with Progress(
        SpinnerColumn("dots", style=Style(color=AMBER)),
        TextColumn(f"[{MUTED}]{label}[/{MUTED}]"),
        console=console,
        transient=True,
    ) as p:
        p.add_task(label, total=None)
        yield
