"""Pydantic models for membank records."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from .config import (
    DEFAULT_BACKUP_RETENTION,
    DEFAULT_DESCRIPTOR,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_VERSION_LABEL,
    VERSION_FILE,
)


# === Classification ===

class FileCategory(str, Enum):
    """How a memory-bank file is treated on update."""

    NEVER_UPDATE = "never_update"
    ALWAYS_UPDATE = "always_update"
    SMART_UPDATE = "smart_update"


class VersionChange(str, Enum):
    """Magnitude of the difference between the local and remote versions."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    SAME = "same"
    OLDER = "older"  # Remote is behind local; never applied


# === Update session ===

class UpdateMode(str, Enum):
    """Update mode offered to the user as choice A or B."""

    FULL = "full"  # A: system files and stack guides
    SYSTEM_ONLY = "system-only"  # B: system files only


class UpdateState(str, Enum):
    """States of an update session."""

    IDLE = "idle"
    CHECKING_VERSION = "checking_version"
    AWAITING_MODE_CHOICE = "awaiting_mode_choice"
    BACKING_UP = "backing_up"
    COPYING = "copying"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


class FileAction(str, Enum):
    """What an update does to a single file."""

    CREATE = "create"
    OVERWRITE = "overwrite"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"  # Smart-update file edited locally
    SKIP = "skip"


# === Backups ===

class BackupFileEntry(BaseModel):
    """A file captured in a backup."""

    path: str
    sha256: str
    size: int = 0


class BackupRecord(BaseModel):
    """Metadata stored as backup.json inside each backup directory."""

    label: str
    version: str
    sequence: int
    created: datetime = Field(default_factory=datetime.now)
    files: list[BackupFileEntry] = Field(default_factory=list)
    checksums: dict[str, str] = Field(default_factory=dict)  # Snapshot of checksums.json


# === Remote release ===

class ReleaseDescriptor(BaseModel):
    """Machine-readable description of a published release."""

    version: str
    files: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


# === Config ===

class MembankConfig(BaseModel):
    """Configuration for membank."""

    source: Optional[str] = None  # URL or directory of the published release
    descriptor: str = DEFAULT_DESCRIPTOR
    version_label: str = DEFAULT_VERSION_LABEL  # Label prefix for plain-text descriptors
    version_file: str = VERSION_FILE
    backup_retention: int = Field(default=DEFAULT_BACKUP_RETENTION, ge=1)
    default_mode: Optional[UpdateMode] = None  # None asks every time
    command_logging: bool = True
    fetch_timeout: int = DEFAULT_FETCH_TIMEOUT
