"""Update commands - check for and apply a new memory-bank release."""
import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table
from rich.syntax import Syntax
from rich.prompt import Prompt, Confirm
from rich import box

from ..config import (
    NOT_INITIALIZED_MESSAGE,
    find_membank_root,
    get_membank_path,
    load_config,
    load_env,
    resolve_source,
)
from ..errors import AmbiguousAnswerError, ConfigError, RemoteFetchError, UpdateError, VersionParseError
from ..models import FileAction, UpdateMode, UpdateState, VersionChange
from ..remote import RemoteSource
from ..session import UpdateSession, UpdateCheck, FileChange, parse_mode_choice

app = typer.Typer(help="Update the memory bank from its published release")

ACTION_STYLES = {
    FileAction.CREATE: "[green]create[/green]",
    FileAction.OVERWRITE: "[cyan]overwrite[/cyan]",
    FileAction.UNCHANGED: "[dim]unchanged[/dim]",
    FileAction.CONFLICT: "[yellow]modified locally[/yellow]",
    FileAction.SKIP: "[dim]skip[/dim]",
}


def open_session(base: Path) -> UpdateSession:
    """Build an update session for the memory bank at or above base, or exit with an error."""
    root = find_membank_root(base)
    if root is None:
        typer.echo(f"Error: {NOT_INITIALIZED_MESSAGE}", err=True)
        raise typer.Exit(1)

    load_env(root)
    try:
        config = load_config(get_membank_path(root))
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    location = resolve_source(config.model_dump())
    if not location:
        typer.echo("Error: No release source configured.", err=True)
        typer.echo("Set one with: membank config set source <url-or-directory>", err=True)
        raise typer.Exit(1)

    source = RemoteSource(
        location,
        descriptor=config.descriptor,
        version_label=config.version_label,
        timeout=config.fetch_timeout,
    )
    return UpdateSession(root, source, config)


def run_check(session: UpdateSession, force: bool = False) -> UpdateCheck:
    """Run the version check, turning failures into CLI errors."""
    try:
        return session.check(force=force)
    except VersionParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except RemoteFetchError as e:
        typer.echo("Error: Unable to determine remote version.", err=True)
        typer.echo(f"  {e}", err=True)
        raise typer.Exit(1)


def _describe_check(check: UpdateCheck) -> str:
    if check.change == VersionChange.SAME:
        return f"Already up to date ({check.local})."
    if check.change == VersionChange.OLDER:
        return (
            f"Local version {check.local} is newer than the release ({check.remote}). "
            "Downgrades are not supported."
        )
    return f"Update available: {check.local} -> {check.remote} ({check.change.value})"


def _choose_mode(console: Console) -> UpdateMode:
    console.print()
    console.print("How should the update be applied?")
    console.print("  [bold]A[/bold]  Full update: system files and stack guides")
    console.print("  [bold]B[/bold]  System files only: leave stack guides as they are")
    while True:
        answer = Prompt.ask("Choose A or B", default="A", console=console)
        try:
            return parse_mode_choice(answer)
        except AmbiguousAnswerError as e:
            console.print(f"[yellow]{e}[/yellow]")


def _print_plan(console: Console, changes: list[FileChange]) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("File", style="cyan")
    table.add_column("Category")
    table.add_column("Action")
    for change in changes:
        action = ACTION_STYLES[change.action]
        if change.reason and change.action == FileAction.SKIP:
            action = f"{action} [dim]({change.reason})[/dim]"
        table.add_row(change.path, change.category.value.replace("_", " "), action)
    console.print(table)


def _ask_conflicts(console: Console, changes: list[FileChange]) -> dict[str, bool]:
    decisions: dict[str, bool] = {}
    for change in changes:
        if change.action != FileAction.CONFLICT:
            continue
        console.print()
        console.print(f"[yellow]{change.path}[/yellow] was modified since the last update:")
        console.print(Syntax(change.diff or "", "diff", theme="ansi_dark"))
        decisions[change.path] = Confirm.ask(
            f"Replace {change.path} with the released version?",
            default=False,
            console=console,
        )
    return decisions


@app.callback(invoke_without_command=True)
def update(
    ctx: typer.Context,
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m",
        help="A/full (system files and stack guides) or B/system-only"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Don't prompt; locally modified stack guides are kept"
    ),
    force: bool = typer.Option(
        False, "--force",
        help="Re-apply the release even when already up to date"
    ),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Update the memory bank to the latest release.

    Backs up system and stack files, replaces system files, replaces stack
    guides you haven't edited, and asks before replacing ones you have.
    Project notes (projectbrief.md, progress.md, ...) are never touched.

    Example:
        membank update
        membank update --mode B
        membank update check
    """
    if ctx.invoked_subcommand is not None:
        return

    console = Console()
    session = open_session(base)
    check = run_check(session, force=force)

    if session.state == UpdateState.DONE:
        typer.echo(_describe_check(check))
        return

    if check.change == VersionChange.SAME:
        console.print(f"Re-applying release {check.remote}")
    else:
        console.print(f"[bold]{_describe_check(check)}[/bold]")
    if check.release.notes:
        console.print(f"[dim]{check.release.notes}[/dim]")

    if mode:
        try:
            chosen = parse_mode_choice(mode)
        except AmbiguousAnswerError as e:
            session.cancel()
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    elif session.config.default_mode is not None:
        chosen = session.config.default_mode
    elif yes:
        chosen = UpdateMode.FULL
    else:
        chosen = _choose_mode(console)

    try:
        changes = session.plan(chosen)
    except RemoteFetchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    console.print()
    _print_plan(console, changes)

    decisions: dict[str, bool] = {}
    if not yes:
        decisions = _ask_conflicts(console, changes)
        console.print()
        if not Confirm.ask("Apply update?", default=True, console=console):
            session.cancel()
            typer.echo("Aborted.")
            raise typer.Exit(0)

    try:
        result = session.apply(
            chosen,
            resolve_conflict=lambda change: decisions.get(change.path, False),
            changes=changes,
        )
    except UpdateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    console.print()
    console.print(f"[green]Updated to {result.to_version}[/green] (backup: {result.backup_label})")
    console.print(f"  Created: {len(result.created)}  Replaced: {len(result.overwritten)}  "
                  f"Unchanged: {len(result.unchanged)}  Skipped: {len(result.skipped)}")
    if result.kept:
        console.print(f"  [yellow]Kept your edits to:[/yellow] {', '.join(result.kept)}")
    console.print("[dim]Undo with 'membank restore'.[/dim]")


@app.command("check")
def update_check(
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Check whether a newer release is available. Changes nothing.

    Example:
        membank update check
    """
    session = open_session(base)
    check = run_check(session)

    typer.echo(f"Local version:  {check.local}")
    typer.echo(f"Remote version: {check.remote}")
    typer.echo(_describe_check(check))
    if check.update_available and check.release.notes:
        typer.echo("")
        typer.echo(check.release.notes)
