"""Tests for reading a published release."""
import pytest
from pathlib import Path
import tempfile
import shutil
from membank.errors import RemoteFetchError
from membank.remote import RemoteSource
from membank.storage import write_json
from membank.versioning import Version


@pytest.fixture
def release_dir():
    """Create an empty release directory."""
    tmp = tempfile.mkdtemp()

    yield Path(tmp)

    # Cleanup
    shutil.rmtree(tmp)


class TestFetchRelease:
    """Tests for RemoteSource.fetch_release()."""

    def test_json_descriptor(self, release_dir: Path) -> None:
        """Test version, files and notes come from version.json."""
        write_json(release_dir / "version.json", {
            "version": "2.1.0",
            "files": ["CLAUDE.md", "./stacks/auth/auth-clerk.md", "workflows\\plan.md"],
            "notes": "New auth guides",
        })

        release = RemoteSource(str(release_dir)).fetch_release()

        assert release.version == Version(2, 1, 0)
        assert release.files == ["CLAUDE.md", "stacks/auth/auth-clerk.md", "workflows/plan.md"]
        assert release.notes == "New auth guides"
        assert release.structured

    def test_plain_text_descriptor(self, release_dir: Path) -> None:
        """Test the version is scraped from a labelled line."""
        (release_dir / "CLAUDE.md").write_text("# Memory Bank\n\n**Version:** 1.4.0\n")

        release = RemoteSource(str(release_dir), descriptor="CLAUDE.md").fetch_release()

        assert release.version == Version(1, 4, 0)
        assert release.files == []
        assert not release.structured

    def test_file_url(self, release_dir: Path) -> None:
        """Test file:// URLs resolve to the directory."""
        write_json(release_dir / "version.json", {"version": "1.0.0"})

        release = RemoteSource(release_dir.as_uri()).fetch_release()

        assert release.version == Version(1, 0, 0)

    def test_missing_descriptor(self, release_dir: Path) -> None:
        """Test an unreadable descriptor raises RemoteFetchError."""
        with pytest.raises(RemoteFetchError):
            RemoteSource(str(release_dir)).fetch_release()

    def test_descriptor_without_version(self, release_dir: Path) -> None:
        """Test a descriptor with no usable version raises RemoteFetchError."""
        (release_dir / "version.json").write_text("no version here\n")

        with pytest.raises(RemoteFetchError, match="Unable to determine remote version"):
            RemoteSource(str(release_dir)).fetch_release()

    def test_malformed_json_version(self, release_dir: Path) -> None:
        """Test a malformed version in JSON raises RemoteFetchError."""
        write_json(release_dir / "version.json", {"version": "2.x"})

        with pytest.raises(RemoteFetchError):
            RemoteSource(str(release_dir)).fetch_release()

    def test_json_missing_version_field(self, release_dir: Path) -> None:
        """Test a JSON object without a version raises RemoteFetchError."""
        write_json(release_dir / "version.json", {"files": []})

        with pytest.raises(RemoteFetchError):
            RemoteSource(str(release_dir)).fetch_release()

    def test_file_list_leaving_root(self, release_dir: Path) -> None:
        """Test a file list with '..' or absolute entries is rejected."""
        write_json(release_dir / "version.json", {
            "version": "2.0.0",
            "files": ["CLAUDE.md", "workflows/../progress.md", "/tmp/x.md"],
        })

        with pytest.raises(RemoteFetchError, match="workflows/../progress.md, /tmp/x.md"):
            RemoteSource(str(release_dir)).fetch_release()

    def test_no_source_configured(self) -> None:
        """Test an empty location is rejected up front."""
        with pytest.raises(RemoteFetchError, match="No release source"):
            RemoteSource("")


class TestReadBytes:
    """Tests for RemoteSource.read_bytes()."""

    def test_reads_nested_file(self, release_dir: Path) -> None:
        """Test files below the release root are readable."""
        (release_dir / "stacks").mkdir()
        (release_dir / "stacks" / "a.md").write_bytes(b"guide\n")

        assert RemoteSource(str(release_dir)).read_bytes("stacks/a.md") == b"guide\n"

    def test_missing_file(self, release_dir: Path) -> None:
        """Test a missing file raises RemoteFetchError."""
        with pytest.raises(RemoteFetchError):
            RemoteSource(str(release_dir)).read_bytes("nope.md")

    def test_unreachable_url(self) -> None:
        """Test network failures are wrapped."""
        source = RemoteSource("http://127.0.0.1:9/release", timeout=1)
        with pytest.raises(RemoteFetchError, match="Failed to fetch"):
            source.read_bytes("version.json")
