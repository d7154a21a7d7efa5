"""Initialize membank in a memory-bank directory."""

import typer
from pathlib import Path
from typing import Optional
from ..config import (
    get_membank_path,
    CONFIG_FILE,
    CHECKSUMS_FILE,
    BACKUPS_DIR,
    MEMBANK_DIR,
    USER_DATA_FILES,
    USER_DATA_TEMPLATE,
)
from ..logging import MEMBANK_LOGS_DIR
from ..models import MembankConfig
from ..storage import write_json
from ..versioning import ZERO_VERSION, write_version_file


def ignore_membank_state(base_path: Path) -> list[str]:
    """Have git ignore the state and log directories next to the notes.

    Existing entries count in any spelling git treats the same
    (``.membank``, ``/.membank/``). Returns the entries appended.
    """
    gitignore = base_path / ".gitignore"
    text = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
    listed = {line.strip().strip("/") for line in text.splitlines()}

    added = [
        f"{name}/" for name in (MEMBANK_DIR, MEMBANK_LOGS_DIR)
        if name not in listed
    ]
    if not added:
        return []

    # Blank line between the user's entries and ours
    separator = "" if not text else ("\n" if text.endswith("\n") else "\n\n")
    block = "\n".join(["# membank backups, checksums and command log", *added])
    gitignore.write_text(f"{text}{separator}{block}\n", encoding="utf-8")
    return added


def _title_from_filename(name: str) -> str:
    """'productContext.md' -> 'Product Context'."""
    stem = name.rsplit(".", 1)[0]
    words = []
    current = ""
    for ch in stem:
        if ch.isupper() and current:
            words.append(current)
            current = ch
        else:
            current += ch
    words.append(current)
    return " ".join(w.capitalize() for w in words)


def seed_user_files(base_path: Path) -> list[str]:
    """Create skeletons for missing user-data files. Existing files are left alone."""
    created = []
    for name in USER_DATA_FILES:
        path = base_path / name
        if path.exists():
            continue
        path.write_text(USER_DATA_TEMPLATE.format(title=_title_from_filename(name)))
        created.append(name)
    return created


def init(
    path: Path = typer.Argument(
        Path("."),
        help="Memory-bank directory to initialize"
    ),
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="URL or directory of the published memory bank"
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Rewrite config.json if .membank already exists"
    ),
    no_seed: bool = typer.Option(
        False,
        "--no-seed",
        help="Don't create skeleton project notes"
    ),
) -> None:
    """Initialize membank in a memory-bank directory.

    Creates .membank/ with a default config, writes a 0.0.0 VERSION marker
    if none exists, creates empty project notes (projectbrief.md, ...) that
    are missing, and adds .membank/ and .membank-logs/ to .gitignore.

    Example:
        membank init --source https://example.com/memory-bank
        membank init ./docs/memory --force
    """
    membank_path = get_membank_path(path)

    if membank_path.exists() and not force:
        typer.echo(f"membank already initialized at {membank_path}")
        typer.echo("Use --force to reinitialize")
        raise typer.Exit(1)

    path.mkdir(parents=True, exist_ok=True)
    (membank_path / BACKUPS_DIR).mkdir(parents=True, exist_ok=True)

    config = MembankConfig(source=source)
    write_json(membank_path / CONFIG_FILE, config)
    if not (membank_path / CHECKSUMS_FILE).exists():
        write_json(membank_path / CHECKSUMS_FILE, {})

    typer.echo(f"Initialized membank at {membank_path}")

    version_file = path / config.version_file
    if not version_file.exists():
        write_version_file(version_file, ZERO_VERSION)
        typer.echo(f"  Wrote {config.version_file} ({ZERO_VERSION})")

    if not no_seed:
        created = seed_user_files(path)
        if created:
            typer.echo(f"  Created {len(created)} project notes: {', '.join(created)}")

    ignored = ignore_membank_state(path)
    if ignored:
        typer.echo(f"  Added {', '.join(ignored)} to .gitignore")

    typer.echo()
    if source:
        typer.echo("Next: run 'membank update' to install the latest release.")
    else:
        typer.echo("Next: set a release source with 'membank config set source <url>', then 'membank update'.")
