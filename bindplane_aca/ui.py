"""Colorized console output for bindplane-aca runs.

Thin wrapper around :mod:`rich` that degrades gracefully when stdout
is not a TTY (e.g. piped, CI).  All user-facing status messages flow
through this module; ``logger.*`` calls are kept for debug logging.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

# Shared consoles; force_terminal=None lets Rich detect a TTY.
console = Console(stderr=False, force_terminal=None)
err_console = Console(stderr=True, force_terminal=None)

# ── Symbols ────────────────────────────────────────────────────────────────

_PASS = "[bold green]✓[/]"
_FAIL = "[bold red]✗[/]"
_WARN = "[bold yellow]⚠[/]"
_ARROW = "[bold cyan]›[/]"
_DOT = "[dim]·[/]"


def phase(title: str) -> None:
    """Print a bold phase header (e.g. ``VALIDATE``, ``RENDER``)."""
    console.print()
    console.print(f"[bold blue]── {title} ──[/]")


def ok(msg: str) -> None:
    console.print(f"  {_PASS} {escape(msg)}", highlight=False)


def fail(msg: str) -> None:
    err_console.print(f"  {_FAIL} [red]{escape(msg)}[/]", highlight=False)


def warn(msg: str) -> None:
    err_console.print(f"  {_WARN} [yellow]{escape(msg)}[/]", highlight=False)


def step(msg: str) -> None:
    """Cyan arrow + action message (in-progress)."""
    console.print(f"  {_ARROW} {escape(msg)}", highlight=False)


def info(msg: str) -> None:
    console.print(f"  {_DOT} [dim]{escape(msg)}[/]", highlight=False)


def detail(key: str, value: str) -> None:
    """Key-value pair, indented."""
    console.print(f"    [bold]{key}[/]: {escape(value)}", highlight=False)


def error_msg(msg: str) -> None:
    """Bold red error message (not indented), on stderr."""
    err_console.print(f"[bold red]Error:[/] {escape(msg)}", highlight=False)


def success_panel(title: str, body: str) -> None:
    """Green-bordered success panel."""
    console.print()
    console.print(
        Panel(
            body,
            title=f"[bold green]{title}[/]",
            border_style="green",
            padding=(1, 2),
        )
    )


def error_panel(title: str, body: str) -> None:
    """Red-bordered error panel."""
    err_console.print()
    err_console.print(
        Panel(
            body,
            title=f"[bold red]{title}[/]",
            border_style="red",
            padding=(1, 2),
        )
    )
