"""Configuration and environment loading for membank."""

from pathlib import Path
from typing import Optional, TYPE_CHECKING
import os

from dotenv import load_dotenv

if TYPE_CHECKING:
    from .models import MembankConfig


def load_env(base_path: Optional[Path] = None) -> bool:
    """Load environment variables from a .env file.

    Args:
        base_path: Directory to look for .env in. Defaults to cwd.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    if base_path is None:
        base_path = Path.cwd()

    env_file = base_path / ".env"
    if env_file.exists():
        load_dotenv(env_file)
        return True

    return False


# membank configuration constants
MEMBANK_DIR = ".membank"
CONFIG_FILE = "config.json"
CHECKSUMS_FILE = "checksums.json"
BACKUPS_DIR = "backups"
BACKUP_META_FILE = "backup.json"
VERSION_FILE = "VERSION"
DEFAULT_DESCRIPTOR = "version.json"
DEFAULT_VERSION_LABEL = "Version:"
DEFAULT_BACKUP_RETENTION = 3
DEFAULT_FETCH_TIMEOUT = 30

SOURCE_ENV_VAR = "MEMBANK_SOURCE"

# User-authored project notes, never overwritten
USER_DATA_FILES = [
    "projectbrief.md",
    "productContext.md",
    "activeContext.md",
    "systemPatterns.md",
    "techContext.md",
    "progress.md",
]

# Files replaced on every update
SYSTEM_FILES = [
    "CLAUDE.md",
    "UPDATE.md",
    VERSION_FILE,
]

# Directories whose contents are replaced on every update
SYSTEM_DIRS = [
    "workflows",
    "templates",
]

# Directories whose contents are replaced only when unmodified locally
SMART_DIRS = [
    "stacks",
]

# Skeleton written for missing user-data files on init
USER_DATA_TEMPLATE = "# {title}\n\n_Describe this part of the project here._\n"

NOT_INITIALIZED_MESSAGE = "membank not initialized. Run 'membank init' first."


def get_membank_path(base_path: Optional[Path] = None) -> Path:
    """Path of the .membank state directory for a memory-bank root (cwd by default)."""
    return (base_path or Path.cwd()) / MEMBANK_DIR


def find_membank_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Nearest directory at or above start_path that holds .membank/.

    Lets commands run from anywhere inside a memory bank.

    Returns:
        The memory-bank root, or None outside any memory bank.
    """
    current = (start_path or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if get_membank_path(candidate).is_dir():
            return candidate
    return None


def resolve_source(config: dict) -> Optional[str]:
    """Return the release source, letting MEMBANK_SOURCE override config.json."""
    env_source = os.environ.get(SOURCE_ENV_VAR)
    if env_source:
        return env_source
    return config.get("source") or None


def load_config(membank_path: Path) -> "MembankConfig":
    """Load config.json, falling back to defaults for missing keys.

    Raises:
        ConfigError: If the file is not valid JSON or a setting is invalid.
    """
    from .errors import ConfigError
    from .models import MembankConfig
    from .storage import read_json

    config_file = membank_path / CONFIG_FILE
    if not config_file.exists():
        return MembankConfig()
    # pydantic's ValidationError and JSONDecodeError are both ValueErrors
    try:
        return MembankConfig.model_validate(read_json(config_file))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot load {config_file}: {e}") from e
