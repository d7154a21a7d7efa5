"""Status and classification commands."""
import typer
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich import box

from ..backups import BackupManager
from ..classifier import classify, classify_tree
from ..config import (
    NOT_INITIALIZED_MESSAGE,
    find_membank_root,
    get_membank_path,
    load_config,
    load_env,
    resolve_source,
)
from ..errors import ConfigError, VersionParseError
from ..models import FileCategory
from ..versioning import read_version_file

CATEGORY_LABELS = {
    FileCategory.ALWAYS_UPDATE: "system (always updated)",
    FileCategory.SMART_UPDATE: "stack guides (updated unless edited)",
    FileCategory.NEVER_UPDATE: "project notes and your own files (never updated)",
}


def status(
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Show the installed version, release source, files and backups."""
    root = find_membank_root(base)
    if root is None:
        typer.echo(f"Error: {NOT_INITIALIZED_MESSAGE}", err=True)
        raise typer.Exit(1)

    membank_path = get_membank_path(root)
    load_env(root)
    try:
        config = load_config(membank_path)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    console = Console()

    try:
        version = str(read_version_file(root / config.version_file))
    except VersionParseError as e:
        version = f"[red]unreadable[/red] ({e})"

    console.print(f"[bold]Version:[/bold] {version}")
    console.print(f"[bold]Source:[/bold]  {resolve_source(config.model_dump()) or '[dim](not set)[/dim]'}")
    console.print()

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Category", style="cyan")
    table.add_column("Files", justify="right")
    grouped = classify_tree(root)
    for category in (FileCategory.ALWAYS_UPDATE, FileCategory.SMART_UPDATE, FileCategory.NEVER_UPDATE):
        table.add_row(CATEGORY_LABELS[category], str(len(grouped[category])))
    console.print(table)

    manager = BackupManager(membank_path, root, config.backup_retention)
    latest = manager.latest()
    count = len(manager.list_backups())
    if latest:
        console.print(f"Backups: {count} (latest {latest.label})")
    else:
        console.print("Backups: none")


def classify_cmd(
    paths: list[str] = typer.Argument(..., help="Paths relative to the memory-bank root"),
) -> None:
    """Show how update treats each path.

    Example:
        membank classify CLAUDE.md stacks/auth/auth-better-auth.md my-notes.md
    """
    for path in paths:
        typer.echo(f"{path}: {classify(path).value}")
