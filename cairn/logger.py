"""
Console logging for cairn: timestamped, coloured output via rich.

Everything user-facing goes through these helpers so that the CLI, the
resolver and the plugins share one look.  ``debug`` is silent unless verbose
mode is on (``--verbose`` or the ``CAIRN_VERBOSE`` environment variable).
"""
import os
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

_console     = Console()
_console_err = Console(stderr=True)

_verbose = os.environ.get("CAIRN_VERBOSE", "") not in ("", "0", "false")


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def section(title: str) -> None:
    _console.rule(f"[bold cyan]{escape(title)}[/bold cyan]")


def info(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [blue]ℹ[/blue]  {escape(msg)}")


def debug(msg: str) -> None:
    if _verbose:
        _console.print(f"[dim]{_ts()}  ·  {escape(msg)}[/dim]")


def success(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold green]✔[/bold green]  {escape(msg)}")


def warn(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold yellow]⚠[/bold yellow]  {escape(msg)}")


def error(msg: str) -> None:
    _console_err.print(f"[dim]{_ts()}[/dim]  [bold red]✖[/bold red]  {escape(msg)}")


def step(index: int, total: int, msg: str) -> None:
    label = f"[{index}/{total}]"
    _console.print(f"[dim]{_ts()}[/dim]  [bold magenta]{escape(label)}[/bold magenta]  {escape(msg)}")


def banner(title: str, subtitle: str = "") -> None:
    text = Text(title, style="bold cyan")
    if subtitle:
        text.append(f"\n{subtitle}", style="dim")
    _console.print(Panel(text, border_style="cyan"))


def print_table(table) -> None:
    """Render a ``rich.table.Table`` on the shared console."""
    _console.print(table)


def duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    m, s = divmod(int(seconds), 60)
    return f"{m}m{s:02d}s"
