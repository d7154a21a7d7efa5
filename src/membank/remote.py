"""Release source - reads the published memory bank from a URL or directory."""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.error import URLError
from urllib.parse import urlparse, quote
from urllib.request import Request, urlopen

from pydantic import ValidationError

from . import __version__
from .classifier import is_safe_path, normalize_path
from .config import DEFAULT_DESCRIPTOR, DEFAULT_VERSION_LABEL, DEFAULT_FETCH_TIMEOUT
from .errors import RemoteFetchError, VersionParseError
from .models import ReleaseDescriptor
from .versioning import Version, parse_version, extract_labeled_version


@dataclass
class Release:
    """A release as published by a source."""

    version: Version
    files: list[str] = field(default_factory=list)
    notes: Optional[str] = None
    structured: bool = True  # False when the version was scraped from plain text


def _is_url(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


class RemoteSource:
    """A published memory bank: descriptor plus the files it lists.

    ``location`` is an http(s) URL, a ``file://`` URL or a directory path.
    """

    def __init__(
        self,
        location: str,
        descriptor: str = DEFAULT_DESCRIPTOR,
        version_label: str = DEFAULT_VERSION_LABEL,
        timeout: int = DEFAULT_FETCH_TIMEOUT,
    ):
        if not location:
            raise RemoteFetchError("No release source configured")
        self.location = location
        self.descriptor = descriptor
        self.version_label = version_label
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"RemoteSource({self.location!r})"

    def _local_root(self) -> Path:
        parsed = urlparse(self.location)
        if parsed.scheme == "file":
            return Path(parsed.path)
        return Path(self.location)

    def read_bytes(self, rel_path: str) -> bytes:
        """Read one file of the release.

        Raises:
            RemoteFetchError: If the file cannot be read.
        """
        if _is_url(self.location):
            url = self.location.rstrip("/") + "/" + quote(rel_path)
            req = Request(url, headers={"User-Agent": f"membank/{__version__}"})
            try:
                with urlopen(req, timeout=self.timeout) as resp:
                    return resp.read()
            except (URLError, OSError) as e:
                raise RemoteFetchError(f"Failed to fetch {url}: {e}") from e

        path = self._local_root() / rel_path
        try:
            return path.read_bytes()
        except OSError as e:
            raise RemoteFetchError(f"Failed to read {path}: {e}") from e

    def fetch_release(self) -> Release:
        """Fetch and parse the release descriptor.

        A JSON descriptor gives the version and file list. Anything else is
        treated as a plain-text document and scanned for the version label;
        such a release carries no file list.

        Raises:
            RemoteFetchError: If the descriptor cannot be read or carries no
                usable version, or lists an absolute or '..' path.
        """
        raw = self.read_bytes(self.descriptor)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RemoteFetchError(f"Descriptor {self.descriptor} is not UTF-8 text") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None

        try:
            if isinstance(data, dict):
                descriptor = ReleaseDescriptor.model_validate(data)
                unsafe = [f for f in descriptor.files if not is_safe_path(f)]
                if unsafe:
                    raise RemoteFetchError(
                        f"Release lists paths outside the memory bank: {', '.join(unsafe)}"
                    )
                return Release(
                    version=parse_version(descriptor.version),
                    files=[normalize_path(f) for f in descriptor.files],
                    notes=descriptor.notes,
                )

            return Release(
                version=extract_labeled_version(text, self.version_label),
                structured=False,
            )
        except (ValidationError, VersionParseError) as e:
            raise RemoteFetchError(
                f"Unable to determine remote version from {self.descriptor}: {e}"
            ) from e
