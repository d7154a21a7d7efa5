"""Version parsing and comparison for memory-bank releases."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .errors import VersionParseError
from .models import VersionChange

# Markdown emphasis and whitespace allowed around a version label
_LABEL_DECORATION = "*_` \t"


@dataclass(frozen=True, order=True)
class Version:
    """A (major, minor, patch) release version."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


ZERO_VERSION = Version(0, 0, 0)


def parse_version(text: str) -> Version:
    """Parse an ``X.Y.Z`` string into a Version.

    A leading ``v`` is accepted. Pre-release and build suffixes are not.

    Raises:
        VersionParseError: If the string does not have exactly three
            non-negative integer components.
    """
    if text is None:
        raise VersionParseError("Version string is empty")

    value = str(text).strip()
    if value[:1] in ("v", "V"):
        value = value[1:]

    parts = value.split(".")
    if len(parts) != 3:
        raise VersionParseError(
            f"Invalid version '{text}': expected MAJOR.MINOR.PATCH"
        )

    numbers = []
    for part in parts:
        if not (part.isascii() and part.isdigit()):
            raise VersionParseError(
                f"Invalid version '{text}': component '{part}' is not a non-negative integer"
            )
        numbers.append(int(part))

    return Version(*numbers)


def compare(current: Version, remote: Version) -> VersionChange:
    """Classify how the remote version differs from the current one.

    Components are compared major first. The first component where remote is
    ahead decides MAJOR, MINOR or PATCH; where remote is behind the result is
    OLDER.
    """
    for ours, theirs, change in (
        (current.major, remote.major, VersionChange.MAJOR),
        (current.minor, remote.minor, VersionChange.MINOR),
        (current.patch, remote.patch, VersionChange.PATCH),
    ):
        if theirs > ours:
            return change
        if theirs < ours:
            return VersionChange.OLDER
    return VersionChange.SAME


def is_newer(change: VersionChange) -> bool:
    """True when a comparison result means an update is available."""
    return change in (VersionChange.MAJOR, VersionChange.MINOR, VersionChange.PATCH)


def read_version_file(path: Path) -> Version:
    """Read the local version marker.

    A missing marker means nothing has been installed yet and reads as 0.0.0.

    Raises:
        VersionParseError: If the marker is unreadable, not UTF-8 or malformed.
    """
    if not path.exists():
        return ZERO_VERSION
    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        raise VersionParseError(f"Cannot read version marker {path.name}: {e}") from e
    return parse_version(text.strip())


def write_version_file(path: Path, version: Version) -> None:
    """Write the local version marker."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{version}\n", encoding="utf-8")


def extract_labeled_version(text: str, label: str = "Version:") -> Version:
    """Find the version on the first line that starts with ``label``.

    Handles plain-text and Markdown documents, e.g. ``**Version:** 1.4.0``.

    Raises:
        VersionParseError: If no line carries the label, or its value is malformed.
    """
    wanted = label.strip().rstrip(":").lower()
    pattern = re.compile(
        r"^[" + re.escape(_LABEL_DECORATION) + r"]*"
        + re.escape(wanted)
        + r"[" + re.escape(_LABEL_DECORATION) + r"]*:["
        + re.escape(_LABEL_DECORATION)
        + r"]*(?P<value>\S+)",
        re.IGNORECASE,
    )

    for line in text.splitlines():
        match = pattern.match(line.strip())
        if match:
            return parse_version(match.group("value").strip(_LABEL_DECORATION))

    raise VersionParseError(f"No line starting with '{label}' found")
