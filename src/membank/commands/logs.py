"""Command-log viewer."""

import typer
from pathlib import Path
from rich.console import Console
from rich.markup import escape

from ..config import find_membank_root
from ..logging import LogEntry, parse_log_file, get_log_file

app = typer.Typer(help="Show membank command and update logs.")
console = Console()

MAX_DETAIL_WIDTH = 60


def _render(entry: LogEntry) -> str:
    details = entry.args
    if len(details) > MAX_DETAIL_WIDTH:
        details = details[:MAX_DETAIL_WIDTH] + "..."
    details = escape(details)
    when = entry.timestamp[:19]

    if entry.failed:
        return f"[bold blue]{when}[/] [red]{entry.command}[/] {details}"
    if entry.is_event:
        return f"[bold blue]{when}[/] [yellow]{entry.command}[/] {details}"
    return f"[dim]{when}[/] {entry.command} {details}"


@app.command("show")
def logs_show(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of recent entries to show"),
    events_only: bool = typer.Option(False, "--events", help="Only update and restore events"),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
):
    """Show recent log entries, newest last.

    Example:
        membank logs show --events -n 20
    """
    entries = parse_log_file(find_membank_root(base) or base)
    if events_only:
        entries = [entry for entry in entries if entry.is_event]

    if not entries:
        console.print("[yellow]No log entries found.[/yellow]")
        return

    for entry in entries[-lines:]:
        console.print(_render(entry))


@app.command("clear")
def logs_clear(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
):
    """Delete the command log (rotated copies included)."""
    log_file = get_log_file(find_membank_root(base) or base)
    rotated = log_file.with_name(log_file.name + ".1")
    present = [path for path in (log_file, rotated) if path.exists()]

    if not present:
        console.print("[yellow]No log file to clear.[/yellow]")
        return

    if not force and not typer.confirm("Clear all log entries?"):
        raise typer.Abort()

    for path in present:
        path.unlink()
    console.print(f"[green]Cleared {len(present)} log file(s).[/green]")
