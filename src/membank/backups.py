"""Backup and restore of system and smart-update files."""
from pathlib import Path
from datetime import datetime
from typing import Optional
from dataclasses import dataclass, field
import shutil

from .classifier import iter_managed_files, is_managed
from .config import BACKUPS_DIR, BACKUP_META_FILE, CHECKSUMS_FILE, DEFAULT_BACKUP_RETENTION
from .errors import NoBackupError, BackupIntegrityError
from .models import BackupRecord, BackupFileEntry
from .storage import read_json, read_json_typed, write_json, compute_file_hash, copy_file
from .versioning import Version


def make_label(sequence: int, version: Version | str, created: datetime) -> str:
    """Build a backup label whose lexicographic order is creation order."""
    return f"{sequence:04d}_v{version}_{created.strftime('%Y%m%d-%H%M%S')}"


@dataclass
class RestoreResult:
    """Outcome of a restore."""

    backup: BackupRecord
    restored: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class BackupManager:
    """Create, list, prune and restore memory-bank backups."""

    def __init__(
        self,
        membank_path: Path,
        root: Path,
        retention: int = DEFAULT_BACKUP_RETENTION,
    ):
        self.membank_path = membank_path
        self.root = root
        self.backups_path = membank_path / BACKUPS_DIR
        self.checksums_file = membank_path / CHECKSUMS_FILE
        self.retention = max(1, retention)

    def _load_record(self, backup_dir: Path) -> Optional[BackupRecord]:
        meta = backup_dir / BACKUP_META_FILE
        if not meta.exists():
            return None
        return read_json_typed(meta, BackupRecord)

    def list_backups(self) -> list[BackupRecord]:
        """List backups, oldest first."""
        if not self.backups_path.exists():
            return []

        records: list[BackupRecord] = []
        for backup_dir in sorted(self.backups_path.iterdir()):
            if not backup_dir.is_dir():
                continue
            record = self._load_record(backup_dir)
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: (r.sequence, r.label))
        return records

    def latest(self) -> Optional[BackupRecord]:
        """Return the most recently created backup, if any."""
        records = self.list_backups()
        return records[-1] if records else None

    def get(self, label: str) -> Optional[BackupRecord]:
        """Get a backup by label."""
        for record in self.list_backups():
            if record.label == label:
                return record
        return None

    def backup_dir(self, record: BackupRecord) -> Path:
        return self.backups_path / record.label

    def _read_checksums(self) -> dict[str, str]:
        if not self.checksums_file.exists():
            return {}
        return read_json(self.checksums_file)

    def create(self, version: Version | str) -> BackupRecord:
        """Snapshot every system and smart-update file, then prune old backups."""
        existing = self.list_backups()
        sequence = existing[-1].sequence + 1 if existing else 1
        created = datetime.now()
        label = make_label(sequence, version, created)

        target = self.backups_path / label
        target.mkdir(parents=True, exist_ok=False)

        entries: list[BackupFileEntry] = []
        try:
            for rel, _category in iter_managed_files(self.root):
                src = self.root / rel
                copy_file(src, target / rel)
                entries.append(BackupFileEntry(
                    path=rel,
                    sha256=compute_file_hash(src),
                    size=src.stat().st_size,
                ))

            record = BackupRecord(
                label=label,
                version=str(version),
                sequence=sequence,
                created=created,
                files=entries,
                checksums=self._read_checksums(),
            )
            write_json(target / BACKUP_META_FILE, record)
        except OSError:
            # Without backup.json the directory is invisible to list_backups and prune
            shutil.rmtree(target, ignore_errors=True)
            raise

        self.prune()
        return record

    def prune(self) -> list[str]:
        """Delete the oldest backups beyond the retention count.

        Returns:
            Labels of the removed backups.
        """
        records = self.list_backups()
        excess = len(records) - self.retention
        if excess <= 0:
            return []

        removed = []
        for record in records[:excess]:
            shutil.rmtree(self.backup_dir(record))
            removed.append(record.label)
        return removed

    def verify(self, record: BackupRecord) -> None:
        """Check every file listed in a backup is present and intact.

        Raises:
            BackupIntegrityError: On the first missing or altered file.
        """
        backup_dir = self.backup_dir(record)
        for entry in record.files:
            path = backup_dir / entry.path
            if not path.is_file():
                raise BackupIntegrityError(
                    f"Backup {record.label} is missing {entry.path}"
                )
            if compute_file_hash(path) != entry.sha256:
                raise BackupIntegrityError(
                    f"Backup {record.label} has a corrupted copy of {entry.path}"
                )

    def restore(self, label: Optional[str] = None) -> RestoreResult:
        """Copy a backup's files back over the memory bank.

        Uses the most recent backup unless a label is given. The backup is
        verified before anything is written. User-data files are never written.

        Raises:
            NoBackupError: If there is no backup (or no backup with that label).
            BackupIntegrityError: If the backup is incomplete.
        """
        if label is None:
            record = self.latest()
            if record is None:
                raise NoBackupError("Nothing to restore: no backups found")
        else:
            record = self.get(label)
            if record is None:
                raise NoBackupError(f"Nothing to restore: no backup labelled {label}")

        self.verify(record)

        result = RestoreResult(backup=record)
        backup_dir = self.backup_dir(record)
        for entry in record.files:
            if not is_managed(entry.path):
                result.skipped.append(entry.path)
                continue
            copy_file(backup_dir / entry.path, self.root / entry.path)
            result.restored.append(entry.path)

        write_json(self.checksums_file, record.checksums)
        return result
