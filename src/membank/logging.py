"""Command and update-event log for membank.

Every CLI invocation and every update-session state change is appended to
``.membank-logs/commands.log`` as one ``timestamp | name | details`` line.
The log lives outside ``.membank/`` so restores and re-inits keep it.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Optional

MEMBANK_LOGS_DIR = ".membank-logs"
COMMAND_LOG_FILE = "commands.log"
MAX_LOG_SIZE_MB = 10
FIELD_SEPARATOR = " | "

UPDATE_EVENT_PREFIX = "UPDATE:"
RESTORE_EVENT_PREFIX = "RESTORE:"
EVENT_PREFIXES = (UPDATE_EVENT_PREFIX, RESTORE_EVENT_PREFIX)

# Commands whose name is two words
COMMAND_GROUPS = ("update", "config", "logs")


class LogEntry(NamedTuple):
    """One line of the command log."""

    timestamp: str
    command: str
    args: str = ""

    @property
    def is_event(self) -> bool:
        return self.command.startswith(EVENT_PREFIXES)

    @property
    def failed(self) -> bool:
        return self.command.endswith(":failed")

    def format(self) -> str:
        return FIELD_SEPARATOR.join(self) + "\n"

    @classmethod
    def parse(cls, line: str) -> Optional["LogEntry"]:
        parts = line.rstrip("\r\n").split(FIELD_SEPARATOR, 2)
        if len(parts) < 2:
            return None
        return cls(*parts)


def get_logs_path(base_path: Optional[Path] = None) -> Path:
    """Directory holding the command log for the memory bank at base_path."""
    return (base_path or Path.cwd()) / MEMBANK_LOGS_DIR


def get_log_file(base_path: Optional[Path] = None) -> Path:
    return get_logs_path(base_path) / COMMAND_LOG_FILE


def is_logging_enabled(base_path: Optional[Path] = None) -> bool:
    """Whether entries should be written for the memory bank at base_path.

    Nothing is logged outside an initialized memory bank. Inside one,
    ``command_logging`` in config.json decides; an unreadable config keeps
    logging on.
    """
    from .config import get_membank_path, CONFIG_FILE
    from .storage import read_json

    config_file = get_membank_path(base_path) / CONFIG_FILE
    if not config_file.exists():
        return False

    try:
        data = read_json(config_file)
    except (OSError, ValueError):
        return True
    if not isinstance(data, dict):
        return True
    return bool(data.get("command_logging", True))


def _rotate(log_file: Path) -> None:
    """Move an oversized log to commands.log.1, replacing any older one."""
    if not log_file.exists():
        return
    if log_file.stat().st_size <= MAX_LOG_SIZE_MB * 1024 * 1024:
        return
    log_file.replace(log_file.with_name(log_file.name + ".1"))


def _write(entry: LogEntry, base_path: Optional[Path]) -> None:
    if not is_logging_enabled(base_path):
        return

    log_file = get_log_file(base_path)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _rotate(log_file)
        with log_file.open("a", encoding="utf-8") as f:
            f.write(entry.format())
    except OSError:
        # An unwritable log must not stop a command or an update
        return


def _now() -> str:
    return datetime.now().isoformat()


def log_command(command: str, args: list[str], base_path: Optional[Path] = None) -> None:
    """Append a command invocation.

    Args:
        command: Command name, e.g. "update check".
        args: Remaining arguments; ones containing spaces are quoted.
        base_path: Memory-bank root. Defaults to cwd.
    """
    args_str = " ".join(f'"{a}"' if " " in a else a for a in args)
    _write(LogEntry(_now(), command, args_str), base_path)


def log_event(
    event: str, metadata: Optional[dict] = None, base_path: Optional[Path] = None
) -> None:
    """Append an update or restore event such as ``UPDATE:backing_up``.

    Metadata is stored as a JSON object.
    """
    details = json.dumps(metadata, default=str) if metadata else "{}"
    _write(LogEntry(_now(), event, details), base_path)


def split_argv(argv: list[str]) -> tuple[str, list[str], Optional[Path]]:
    """Split CLI arguments into (command name, remaining args, --base target).

    Grouped commands ("update check", "config set") keep their second word
    when it is not an option.
    """
    if not argv:
        return "unknown", [], None

    words = [argv[0]]
    rest = list(argv[1:])
    if argv[0] in COMMAND_GROUPS and rest and not rest[0].startswith("-"):
        words.append(rest.pop(0))

    base: Optional[Path] = None
    for i, arg in enumerate(rest[:-1]):
        if arg in ("--base", "-b"):
            base = Path(rest[i + 1])
            break

    return " ".join(words), rest, base


def log_from_cli() -> None:
    """Log the running CLI invocation from sys.argv.

    Called from the root callback so every membank command is captured in
    the memory bank it operates on.
    """
    if len(sys.argv) < 2:
        return
    command, args, base = split_argv(sys.argv[1:])
    log_command(command, args, base)


def parse_log_file(base_path: Optional[Path] = None) -> list[LogEntry]:
    """Read the command log, oldest entry first. Malformed lines are dropped."""
    log_file = get_log_file(base_path)
    if not log_file.exists():
        return []

    with log_file.open("r", encoding="utf-8") as f:
        entries = [LogEntry.parse(line) for line in f if line.strip()]
    return [entry for entry in entries if entry is not None]
