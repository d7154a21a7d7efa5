"""Restore and backup-listing commands."""
import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table
from rich import box

from ..backups import BackupManager
from ..config import NOT_INITIALIZED_MESSAGE, find_membank_root, get_membank_path, load_config
from ..errors import BackupIntegrityError, ConfigError, NoBackupError
from ..logging import log_event, RESTORE_EVENT_PREFIX


def _open_manager(base: Path) -> BackupManager:
    root = find_membank_root(base)
    if root is None:
        typer.echo(f"Error: {NOT_INITIALIZED_MESSAGE}", err=True)
        raise typer.Exit(1)
    membank_path = get_membank_path(root)
    try:
        config = load_config(membank_path)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    return BackupManager(membank_path, root, config.backup_retention)


def restore(
    label: Optional[str] = typer.Option(
        None, "--label", "-l",
        help="Backup to restore (default: most recent)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Roll system and stack files back to a backup.

    Project notes are never touched. The backup is checked for missing or
    damaged files before anything is written.

    Example:
        membank restore
        membank restore --label 0002_v1.3.0_20260101-120000
    """
    manager = _open_manager(base)

    record = manager.get(label) if label else manager.latest()
    if record is None:
        if label:
            typer.echo(f"Error: Nothing to restore: no backup labelled {label}.", err=True)
        else:
            typer.echo("Error: Nothing to restore: no backups found.", err=True)
        raise typer.Exit(1)

    typer.echo(f"Restoring backup {record.label}")
    typer.echo(f"  Version: {record.version}")
    typer.echo(f"  Created: {record.created:%Y-%m-%d %H:%M:%S}")
    typer.echo(f"  Files:   {len(record.files)}")

    if not yes and not typer.confirm("Overwrite current system and stack files?"):
        typer.echo("Aborted.")
        raise typer.Exit(0)

    try:
        result = manager.restore(record.label)
    except (NoBackupError, BackupIntegrityError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except OSError as e:
        log_event(f"{RESTORE_EVENT_PREFIX}failed", {"label": record.label, "error": str(e)}, manager.root)
        typer.echo(f"Error: Restore from {record.label} stopped part way: {e}", err=True)
        typer.echo("  Run the restore again once the problem is fixed.", err=True)
        raise typer.Exit(1)

    log_event(f"{RESTORE_EVENT_PREFIX}done", {"label": record.label, "files": len(result.restored)}, manager.root)
    typer.echo(f"Restored {len(result.restored)} files from {record.label}.")


def backups(
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """List retained backups, oldest first."""
    manager = _open_manager(base)
    records = manager.list_backups()

    if not records:
        typer.echo("No backups.")
        return

    console = Console()
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Label", style="cyan")
    table.add_column("Version")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    for record in records:
        table.add_row(
            record.label,
            record.version,
            f"{record.created:%Y-%m-%d %H:%M:%S}",
            str(len(record.files)),
        )
    console.print(table)
    console.print(f"[dim]Keeping the latest {manager.retention}.[/dim]")
