"""Shared Rich consoles for the tagbridge CLI.

Diagnostics (warnings, errors, progress) go to the stderr console that
logging also writes to; command results go to stdout so they can be piped.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
)

# Diagnostics console, replaced by the CLI once logging is configured
_console: Console | None = None
_output = Console(soft_wrap=True)


def get_console() -> Console:
    """The diagnostics console; a plain stderr console until ``set_console`` is called."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console


def output() -> Console:
    """Console for command results (stdout)."""
    return _output


@contextmanager
def make_progress(transient: bool = True) -> Iterator[Progress]:
    """Progress bar on the diagnostics console.

    Example:
        with make_progress() as progress:
            task = progress.add_task("Reading tags...", total=len(paths))
            progress.update(task, advance=1)
    """
    columns = [
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
    ]
    with Progress(*columns, transient=transient, console=get_console()) as progress:
        yield progress


def print_json(data: Any) -> None:
    """Print ``data`` as JSON to stdout."""
    _output.print_json(data=data, default=str)


def print_error(message: str) -> None:
    get_console().print(f"[red]Error: {escape(message)}[/red]", highlight=False)


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]Warning: {escape(message)}[/yellow]", highlight=False)


def print_success(message: str) -> None:
    get_console().print(f"[green]{escape(message)}[/green]", highlight=False)
