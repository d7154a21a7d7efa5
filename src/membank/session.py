"""Update session - version check, backup, copy and verify as a state machine.

States and legal moves:

    IDLE -> CHECKING_VERSION -> AWAITING_MODE_CHOICE -> BACKING_UP
         -> COPYING -> VERIFYING -> DONE

Any working state may move to FAILED. CHECKING_VERSION goes straight to DONE
when there is nothing to update, and AWAITING_MODE_CHOICE goes to DONE when
the user cancels.
"""
from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .backups import BackupManager
from .classifier import classify, iter_managed_files
from .config import get_membank_path, CHECKSUMS_FILE
from .errors import (
    AmbiguousAnswerError,
    BackupIntegrityError,
    InvalidTransitionError,
    RemoteFetchError,
    UpdateError,
    VersionParseError,
)
from .logging import log_event, UPDATE_EVENT_PREFIX
from .models import FileAction, FileCategory, MembankConfig, UpdateMode, UpdateState, VersionChange
from .remote import Release, RemoteSource
from .storage import compute_file_hash, read_json, sha256_bytes, write_bytes, write_json
from .versioning import Version, compare, is_newer, read_version_file, write_version_file

TRANSITIONS: dict[UpdateState, list[UpdateState]] = {
    UpdateState.IDLE: [UpdateState.CHECKING_VERSION],
    UpdateState.CHECKING_VERSION: [
        UpdateState.AWAITING_MODE_CHOICE, UpdateState.DONE, UpdateState.FAILED,
    ],
    UpdateState.AWAITING_MODE_CHOICE: [
        UpdateState.BACKING_UP, UpdateState.DONE, UpdateState.FAILED,
    ],
    UpdateState.BACKING_UP: [UpdateState.COPYING, UpdateState.FAILED],
    UpdateState.COPYING: [UpdateState.VERIFYING, UpdateState.FAILED],
    UpdateState.VERIFYING: [UpdateState.DONE, UpdateState.FAILED],
    UpdateState.DONE: [],
    UpdateState.FAILED: [],
}

# Choice letters offered when asking for the update mode
MODE_CHOICES = {
    "A": UpdateMode.FULL,
    "B": UpdateMode.SYSTEM_ONLY,
}


def check_transition(current: UpdateState, target: UpdateState) -> tuple[bool, str]:
    """Check if a state transition is valid.

    Returns:
        (valid, message) tuple.
    """
    valid = TRANSITIONS.get(current)
    if valid is None:
        return False, f"Unknown state '{current}'"

    if target in valid:
        return True, f"{current.value} -> {target.value}"

    targets = ", ".join(s.value for s in valid) if valid else "none (terminal state)"
    return False, (
        f"Cannot transition {current.value} -> {target.value}. Valid targets: {targets}"
    )


def parse_mode_choice(answer: str) -> UpdateMode:
    """Map a user's answer (A, B, full, system-only) to an update mode."""
    text = answer.strip()
    if text.upper() in MODE_CHOICES:
        return MODE_CHOICES[text.upper()]
    for mode in UpdateMode:
        if text.lower() == mode.value:
            return mode
    raise AmbiguousAnswerError(
        f"Unrecognised choice '{answer}'. Answer A (full) or B (system-only)."
    )


@dataclass
class UpdateCheck:
    """Result of comparing the local version with the release."""

    local: Version
    remote: Version
    change: VersionChange
    release: Release

    @property
    def update_available(self) -> bool:
        return is_newer(self.change)


@dataclass
class FileChange:
    """Planned change to a single file."""

    path: str
    category: FileCategory
    action: FileAction
    content: bytes = b""
    diff: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class UpdateResult:
    """Outcome of an applied update."""

    from_version: Version
    to_version: Version
    mode: UpdateMode
    backup_label: str
    created: list[str] = field(default_factory=list)
    overwritten: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def unified_diff(path: str, local: bytes, remote: bytes) -> str:
    """Unified diff from the local copy to the released copy."""
    local_lines = local.decode("utf-8", errors="replace").splitlines(keepends=True)
    remote_lines = remote.decode("utf-8", errors="replace").splitlines(keepends=True)
    return "".join(difflib.unified_diff(
        local_lines,
        remote_lines,
        fromfile=f"local/{path}",
        tofile=f"release/{path}",
    ))


class UpdateSession:
    """One update run against a memory bank."""

    def __init__(
        self,
        root: Path,
        source: RemoteSource,
        config: Optional[MembankConfig] = None,
    ):
        self.root = root
        self.source = source
        self.config = config or MembankConfig()
        self.membank_path = get_membank_path(root)
        self.checksums_file = self.membank_path / CHECKSUMS_FILE
        self.version_file = root / self.config.version_file
        self.backups = BackupManager(self.membank_path, root, self.config.backup_retention)
        self.state = UpdateState.IDLE
        self.last_check: Optional[UpdateCheck] = None

    # ------------------------------------------------------------------ #
    # State handling
    # ------------------------------------------------------------------ #
    def _transition(self, target: UpdateState, **metadata) -> None:
        valid, message = check_transition(self.state, target)
        if not valid:
            raise InvalidTransitionError(message)
        self.state = target
        log_event(f"{UPDATE_EVENT_PREFIX}{target.value}", metadata or None, self.root)

    def _fail(self, error: Exception) -> None:
        if self.state not in (UpdateState.DONE, UpdateState.FAILED):
            self._transition(UpdateState.FAILED, error=str(error))

    def _require(self, state: UpdateState) -> None:
        if self.state != state:
            raise InvalidTransitionError(
                f"Session is {self.state.value}, expected {state.value}"
            )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def check(self, force: bool = False) -> UpdateCheck:
        """Compare the local version marker with the release.

        Moves to AWAITING_MODE_CHOICE when an update is available (or when
        ``force`` re-applies the same version), otherwise to DONE.

        Raises:
            VersionParseError: If either version is malformed.
            RemoteFetchError: If the release cannot be read.
        """
        self._transition(UpdateState.CHECKING_VERSION, source=self.source.location)

        try:
            local = read_version_file(self.version_file)
            release = self.source.fetch_release()
        except (VersionParseError, RemoteFetchError) as e:
            self._fail(e)
            raise

        change = compare(local, release.version)
        self.last_check = UpdateCheck(local, release.version, change, release)

        if is_newer(change) or (force and change == VersionChange.SAME):
            self._transition(
                UpdateState.AWAITING_MODE_CHOICE,
                local=str(local), remote=str(release.version), change=change.value,
            )
        else:
            self._transition(
                UpdateState.DONE,
                local=str(local), remote=str(release.version), change=change.value,
            )
        return self.last_check

    def cancel(self) -> None:
        """End the session without applying anything."""
        self._require(UpdateState.AWAITING_MODE_CHOICE)
        self._transition(UpdateState.DONE, cancelled=True)

    def _release_files(self, release: Release) -> list[str]:
        if release.structured:
            return list(release.files)
        # Plain-text release: refresh the managed files already installed
        return [
            rel for rel, _category in iter_managed_files(self.root)
            if rel != self.config.version_file
        ]

    def _inside_root(self, rel: str) -> bool:
        root = self.root.resolve()
        target = (self.root / rel).resolve()
        return target == root or root in target.parents

    def _read_checksums(self) -> dict[str, str]:
        if not self.checksums_file.exists():
            return {}
        return read_json(self.checksums_file)

    def plan(self, mode: UpdateMode) -> list[FileChange]:
        """Work out what the update does to each released file.

        Raises:
            RemoteFetchError: If a released file cannot be read.
        """
        self._require(UpdateState.AWAITING_MODE_CHOICE)
        release = self.last_check.release
        checksums = self._read_checksums()
        changes: list[FileChange] = []

        for rel in self._release_files(release):
            category = classify(rel)

            if category == FileCategory.NEVER_UPDATE:
                changes.append(FileChange(rel, category, FileAction.SKIP, reason="user data"))
                continue
            if not self._inside_root(rel):
                changes.append(FileChange(rel, category, FileAction.SKIP, reason="outside memory bank"))
                continue
            if category == FileCategory.SMART_UPDATE and mode == UpdateMode.SYSTEM_ONLY:
                changes.append(FileChange(rel, category, FileAction.SKIP, reason="system-only mode"))
                continue

            try:
                content = self.source.read_bytes(rel)
            except RemoteFetchError as e:
                self._fail(e)
                raise

            local_path = self.root / rel
            if not local_path.exists():
                changes.append(FileChange(rel, category, FileAction.CREATE, content))
                continue

            local = local_path.read_bytes()
            if local == content:
                changes.append(FileChange(rel, category, FileAction.UNCHANGED, content))
            elif category == FileCategory.ALWAYS_UPDATE:
                changes.append(FileChange(rel, category, FileAction.OVERWRITE, content))
            elif checksums.get(rel) == sha256_bytes(local):
                changes.append(FileChange(rel, category, FileAction.OVERWRITE, content))
            else:
                changes.append(FileChange(
                    rel, category, FileAction.CONFLICT, content,
                    diff=unified_diff(rel, local, content),
                    reason="modified locally",
                ))

        return changes

    def apply(
        self,
        mode: UpdateMode,
        resolve_conflict: Optional[Callable[[FileChange], bool]] = None,
        changes: Optional[list[FileChange]] = None,
    ) -> UpdateResult:
        """Back up, copy and verify the release.

        Args:
            mode: FULL or SYSTEM_ONLY.
            resolve_conflict: Called for each locally modified smart-update
                file; return True to overwrite it. Without a resolver local
                edits are kept.
            changes: A plan from :meth:`plan`; computed when omitted.

        Raises:
            UpdateError: If the backup, copy or verification fails. Files are
                rolled back from the backup taken at the start of the run.
        """
        self._require(UpdateState.AWAITING_MODE_CHOICE)
        check = self.last_check
        if changes is None:
            changes = self.plan(mode)

        result = UpdateResult(
            from_version=check.local,
            to_version=check.remote,
            mode=mode,
            backup_label="",
        )

        to_write: list[FileChange] = []
        for change in changes:
            if change.action == FileAction.SKIP:
                result.skipped.append(change.path)
            elif change.action == FileAction.UNCHANGED:
                result.unchanged.append(change.path)
            elif change.action == FileAction.CONFLICT:
                if resolve_conflict is not None and resolve_conflict(change):
                    to_write.append(change)
                else:
                    result.kept.append(change.path)
            else:
                to_write.append(change)

        self._transition(UpdateState.BACKING_UP, mode=mode.value)
        try:
            backup = self.backups.create(check.local)
        except OSError as e:
            self._fail(e)
            raise UpdateError(f"Backup failed, nothing was changed: {e}") from e
        result.backup_label = backup.label

        self._transition(UpdateState.COPYING, backup=backup.label, files=len(to_write))
        created: list[str] = []
        try:
            for change in to_write:
                if not self._inside_root(change.path):
                    raise UpdateError(f"Refusing to write outside the memory bank: {change.path}")
                target = self.root / change.path
                existed = target.exists()
                write_bytes(target, change.content)
                if existed:
                    result.overwritten.append(change.path)
                else:
                    created.append(change.path)
                    result.created.append(change.path)

            self._transition(UpdateState.VERIFYING)
            for change in to_write:
                if compute_file_hash(self.root / change.path) != sha256_bytes(change.content):
                    raise UpdateError(f"Verification failed for {change.path}")

            checksums = self._read_checksums()
            for change in changes:
                if change.action != FileAction.SKIP:
                    checksums[change.path] = sha256_bytes(change.content)
            write_json(self.checksums_file, checksums)
            write_version_file(self.version_file, check.remote)
        except (OSError, UpdateError) as e:
            try:
                self._rollback(backup.label, created)
            finally:
                self._fail(e)
            raise UpdateError(
                f"Update to {check.remote} failed and was rolled back from backup "
                f"{backup.label}: {e}"
            ) from e

        self._transition(
            UpdateState.DONE,
            version=str(check.remote),
            written=len(to_write),
            kept=len(result.kept),
        )
        return result

    def _rollback(self, label: str, created: list[str]) -> None:
        """Put back the files captured at the start of a failed update."""
        for rel in created:
            path = self.root / rel
            if path.exists():
                path.unlink()
        try:
            self.backups.restore(label)
        except BackupIntegrityError as e:
            raise UpdateError(f"Rollback from backup {label} failed: {e}") from e
