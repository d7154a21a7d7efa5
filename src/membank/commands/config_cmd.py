"""Settings commands: show, set and reset .membank/config.json."""
import os
import typer
from pathlib import Path
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich import box

from ..config import (
    CONFIG_FILE,
    NOT_INITIALIZED_MESSAGE,
    SOURCE_ENV_VAR,
    find_membank_root,
    get_membank_path,
    load_config,
)
from ..errors import ConfigError
from ..models import MembankConfig
from ..storage import read_json, write_json

app = typer.Typer(help="Show or change membank settings.")


def _config_file(base: Path) -> Path:
    """config.json of the memory bank at or above base, or exit."""
    root = find_membank_root(base)
    if root is None:
        typer.echo(f"Error: {NOT_INITIALIZED_MESSAGE}", err=True)
        raise typer.Exit(1)
    return get_membank_path(root) / CONFIG_FILE


def _read_stored(config_file: Path) -> dict:
    """Raw settings from config.json, or exit when it is not a JSON object."""
    if not config_file.exists():
        return {}
    try:
        data = read_json(config_file)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: Cannot read {config_file}: {e}", err=True)
        typer.echo("  Fix the file by hand or run: membank config reset", err=True)
        raise typer.Exit(1)
    if not isinstance(data, dict):
        typer.echo(f"Error: {config_file} does not hold a JSON object.", err=True)
        raise typer.Exit(1)
    return data


def _parse_value(value: str) -> object:
    """Interpret a CLI string as bool, int or None where it looks like one."""
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    if lowered in ("", "none", "null"):
        return None
    if lowered.isdigit():
        return int(lowered)
    return value


@app.command("show")
def config_show(
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
    plain: bool = typer.Option(False, "--plain", "-p", help="No colours or box styling"),
) -> None:
    """List every setting with its value, marking changed ones.

    Example:
        membank config show
    """
    config_file = _config_file(base)
    try:
        current = load_config(config_file.parent).model_dump(mode="json")
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        typer.echo("  Fix the value with: membank config set KEY VALUE", err=True)
        raise typer.Exit(1)
    defaults = MembankConfig().model_dump(mode="json")

    console = Console(force_terminal=not plain, no_color=plain)
    console.print(f"[dim]{config_file}[/dim]")

    table = Table(box=None if plain else box.ROUNDED, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_column("", justify="center")
    for name, value in current.items():
        marker = "[dim]default[/dim]" if value == defaults[name] else "[green]custom[/green]"
        table.add_row(name, "-" if value is None else str(value), marker)
    console.print(table)

    env_source = os.environ.get(SOURCE_ENV_VAR)
    if env_source:
        console.print(f"[yellow]{SOURCE_ENV_VAR}[/yellow] overrides source: {env_source}")


@app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value ('none' clears optional settings)"),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Change one setting. The value is validated before it is saved.

    Examples:
        membank config set source https://example.com/memory-bank
        membank config set backup_retention 5
        membank config set default_mode system-only
    """
    if key not in MembankConfig.model_fields:
        typer.echo(f"Error: '{key}' is not a config key.", err=True)
        typer.echo(f"Valid keys: {', '.join(MembankConfig.model_fields)}", err=True)
        raise typer.Exit(1)

    config_file = _config_file(base)
    data = _read_stored(config_file)
    data[key] = _parse_value(value)

    try:
        config = MembankConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or key
        typer.echo(f"Error: invalid value for {field}: {first['msg']}", err=True)
        raise typer.Exit(1)

    write_json(config_file, config)
    typer.echo(f"{key} = {config.model_dump(mode='json')[key]}")


@app.command("reset")
def config_reset(
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
    keep_source: bool = typer.Option(True, "--keep-source/--clear-source", help="Keep the configured release source"),
) -> None:
    """Put every setting back to its default."""
    config_file = _config_file(base)

    source = None
    if keep_source and config_file.exists():
        try:
            stored = read_json(config_file)
        except (OSError, ValueError):
            stored = None
            typer.echo("Warning: config.json was unreadable, so its source was not kept.", err=True)
        if isinstance(stored, dict) and isinstance(stored.get("source"), str):
            source = stored["source"]

    write_json(config_file, MembankConfig(source=source))
    typer.echo("Settings reset to defaults.")
    typer.echo(f"  source: {source or '(not set)'}")
