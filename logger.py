"""
Logging helpers: coloured, timestamped output with rich-style sections.
"""
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

import config as cfg

_console     = Console()
_console_err = Console(stderr=True)


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def info(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [blue]ℹ[/blue]  {escape(msg)}")


def debug(msg: str) -> None:
    if cfg.DEBUG:
        _console.print(f"[dim]{_ts()}  ·  {escape(msg)}[/dim]")


def success(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold green]✔[/bold green]  {escape(msg)}")


def warn(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold yellow]⚠[/bold yellow]  {escape(msg)}")


def error(msg: str) -> None:
    _console_err.print(f"[dim]{_ts()}[/dim]  [bold red]✖[/bold red]  {escape(msg)}")


def task(name: str) -> None:
    """Announce that a task's action is about to run."""
    _console.print(f"[dim]{_ts()}[/dim]  [bold magenta]▶[/bold magenta]  [bold]{escape(name)}[/bold]",
                   highlight=False)


def banner(title: str, subtitle: str = "") -> None:
    text = Text(title, style="bold cyan")
    if subtitle:
        text.append(f"\n{subtitle}", style="dim")
    _console.print(Panel(text, border_style="cyan"))


def print_table(table) -> None:
    _console.print(table)


def duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    m, s = divmod(int(seconds), 60)
    return f"{m}m{s:02d}s"
