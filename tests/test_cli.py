"""Tests for membank CLI."""

import pytest
from pathlib import Path
import tempfile
import shutil
from typer.testing import CliRunner
from membank.cli import app
from membank.config import MEMBANK_DIR, CONFIG_FILE, CHECKSUMS_FILE, BACKUPS_DIR, SOURCE_ENV_VAR
from membank.logging import parse_log_file
from membank.storage import read_json, write_json


runner = CliRunner()

# Wide terminal so rich tables don't wrap
ENV = {"COLUMNS": "200"}

RELEASE_FILES = {
    "CLAUDE.md": "# Instructions\n",
    "workflows/plan.md": "plan\n",
    "stacks/auth/auth-clerk.md": "clerk guide\n",
    "projectbrief.md": "template brief\n",
}


def make_release(directory: Path, version: str, files: dict[str, str] = RELEASE_FILES) -> Path:
    """Write a release directory with a version.json descriptor."""
    directory.mkdir(parents=True, exist_ok=True)
    for rel, text in files.items():
        path = directory / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    write_json(directory / "version.json", {"version": version, "files": list(files)})
    return directory


@pytest.fixture
def workspace():
    """Memory-bank directory plus a release at 1.0.0, not yet initialized."""
    tmp = tempfile.mkdtemp()
    bank = Path(tmp) / "bank"
    release = make_release(Path(tmp) / "release", "1.0.0")

    yield bank, release

    # Cleanup
    shutil.rmtree(tmp)


@pytest.fixture
def initialized(workspace):
    """Memory bank initialized against the release."""
    bank, release = workspace
    result = runner.invoke(app, ["init", str(bank), "--source", str(release)])
    assert result.exit_code == 0
    return bank, release


@pytest.fixture
def installed(initialized):
    """Memory bank updated to release 1.0.0."""
    bank, release = initialized
    result = runner.invoke(app, ["update", "--yes", "--base", str(bank)], env=ENV)
    assert result.exit_code == 0, result.output
    return bank, release


class TestInitCommand:
    """Tests for the init command."""

    def test_init_creates_directory_structure(self) -> None:
        """Test that init creates state, version marker and notes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(app, ["init", tmpdir])

            assert result.exit_code == 0
            assert "Initialized membank" in result.output

            root = Path(tmpdir)
            assert (root / MEMBANK_DIR / CONFIG_FILE).exists()
            assert read_json(root / MEMBANK_DIR / CHECKSUMS_FILE) == {}
            assert (root / MEMBANK_DIR / BACKUPS_DIR).is_dir()
            assert (root / "VERSION").read_text() == "0.0.0\n"
            assert (root / "productContext.md").read_text().startswith("# Product Context")
            assert ".membank/" in (root / ".gitignore").read_text()

    def test_init_records_source(self) -> None:
        """Test --source is written to config.json."""
        with tempfile.TemporaryDirectory() as tmpdir:
            runner.invoke(app, ["init", tmpdir, "--source", "https://example.com/bank"])

            config = read_json(Path(tmpdir) / MEMBANK_DIR / CONFIG_FILE)
            assert config["source"] == "https://example.com/bank"

    def test_init_fails_if_already_exists(self) -> None:
        """Test that init fails if .membank already exists."""
        with tempfile.TemporaryDirectory() as tmpdir:
            runner.invoke(app, ["init", tmpdir])

            result = runner.invoke(app, ["init", tmpdir])

            assert result.exit_code == 1
            assert "already initialized" in result.output

    def test_init_force_keeps_notes_and_version(self) -> None:
        """Test --force rewrites config but not the user's files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            runner.invoke(app, ["init", tmpdir])
            (root / "progress.md").write_text("halfway\n")
            (root / "VERSION").write_text("1.2.0\n")

            result = runner.invoke(app, ["init", tmpdir, "--force"])

            assert result.exit_code == 0
            assert (root / "progress.md").read_text() == "halfway\n"
            assert (root / "VERSION").read_text() == "1.2.0\n"

    def test_init_no_seed(self) -> None:
        """Test --no-seed leaves project notes alone."""
        with tempfile.TemporaryDirectory() as tmpdir:
            runner.invoke(app, ["init", tmpdir, "--no-seed"])

            assert not (Path(tmpdir) / "projectbrief.md").exists()

    def test_gitignore_not_duplicated(self) -> None:
        """Test existing .gitignore entries are not repeated."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / ".gitignore").write_text("node_modules/\n.membank/\n.membank-logs/\n")

            runner.invoke(app, ["init", tmpdir])

            assert (root / ".gitignore").read_text().count(".membank/") == 1

    def test_gitignore_other_spellings(self) -> None:
        """Test '/.membank' counts as ignored and only the log directory is added."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / ".gitignore").write_text("node_modules/\n/.membank")

            result = runner.invoke(app, ["init", tmpdir])

            assert "Added .membank-logs/ to .gitignore" in result.output
            lines = (root / ".gitignore").read_text().splitlines()
            assert lines[:3] == ["node_modules/", "/.membank", ""]
            assert lines[-1] == ".membank-logs/"
            assert ".membank/" not in lines


class TestClassifyCommand:
    """Tests for the classify command."""

    def test_classify_paths(self) -> None:
        """Test each path is printed with its category."""
        result = runner.invoke(app, [
            "classify", "CLAUDE.md", "stacks/auth/auth-clerk.md", "progress.md", "my-notes.md",
        ])

        assert result.exit_code == 0
        assert "CLAUDE.md: always_update" in result.output
        assert "stacks/auth/auth-clerk.md: smart_update" in result.output
        assert "progress.md: never_update" in result.output
        assert "my-notes.md: never_update" in result.output


class TestUpdateCheckCommand:
    """Tests for 'update check'."""

    def test_update_available(self, initialized) -> None:
        """Test a newer release is reported."""
        bank, _ = initialized
        result = runner.invoke(app, ["update", "check", "--base", str(bank)])

        assert result.exit_code == 0
        assert "Local version:  0.0.0" in result.output
        assert "Remote version: 1.0.0" in result.output
        assert "Update available: 0.0.0 -> 1.0.0 (major)" in result.output

    def test_check_changes_nothing(self, initialized) -> None:
        """Test the check does not write files."""
        bank, _ = initialized
        runner.invoke(app, ["update", "check", "--base", str(bank)])

        assert not (bank / "CLAUDE.md").exists()
        assert (bank / "VERSION").read_text() == "0.0.0\n"

    def test_unreachable_source(self, initialized) -> None:
        """Test a missing release reports an error."""
        bank, release = initialized
        shutil.rmtree(release)

        result = runner.invoke(app, ["update", "check", "--base", str(bank)])

        assert result.exit_code == 1
        assert "Unable to determine remote version" in result.output

    def test_undecodable_version_marker(self, initialized) -> None:
        """Test a binary VERSION file is reported, not a traceback."""
        bank, _ = initialized
        (bank / "VERSION").write_bytes(b"\xff\xfe1.0.0\n")

        result = runner.invoke(app, ["update", "check", "--base", str(bank)])

        assert result.exit_code == 1
        assert "Error: Cannot read version marker VERSION" in result.output
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_not_initialized(self) -> None:
        """Test commands outside a memory bank fail."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(app, ["update", "check", "--base", tmpdir])

            assert result.exit_code == 1
            assert "not initialized" in result.output

    def test_no_source(self) -> None:
        """Test a memory bank without a source asks for one."""
        with tempfile.TemporaryDirectory() as tmpdir:
            runner.invoke(app, ["init", tmpdir])

            result = runner.invoke(app, ["update", "check", "--base", tmpdir])

            assert result.exit_code == 1
            assert "No release source configured" in result.output

    def test_env_overrides_source(self, workspace) -> None:
        """Test MEMBANK_SOURCE takes precedence over config.json."""
        bank, release = workspace
        runner.invoke(app, ["init", str(bank), "--source", "/nonexistent/release"])

        result = runner.invoke(
            app, ["update", "check", "--base", str(bank)],
            env={SOURCE_ENV_VAR: str(release)},
        )

        assert result.exit_code == 0
        assert "Remote version: 1.0.0" in result.output

    def test_malformed_local_version(self, initialized) -> None:
        """Test a corrupt VERSION file is reported."""
        bank, _ = initialized
        (bank / "VERSION").write_text("one point oh\n")

        result = runner.invoke(app, ["update", "check", "--base", str(bank)])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestUpdateCommand:
    """Tests for applying updates."""

    def test_first_install(self, installed) -> None:
        """Test system files are installed and project notes untouched."""
        bank, _ = installed

        assert (bank / "VERSION").read_text() == "1.0.0\n"
        assert (bank / "CLAUDE.md").read_text() == "# Instructions\n"
        assert (bank / "workflows" / "plan.md").exists()
        assert (bank / "stacks" / "auth" / "auth-clerk.md").exists()
        assert (bank / "projectbrief.md").read_text().startswith("# Projectbrief")

    def test_already_up_to_date(self, installed) -> None:
        """Test a second run changes nothing."""
        bank, _ = installed

        result = runner.invoke(app, ["update", "--yes", "--base", str(bank)])

        assert result.exit_code == 0
        assert "Already up to date (1.0.0)." in result.output

    def test_downgrade_refused(self, installed) -> None:
        """Test an older release is never applied."""
        bank, release = installed
        make_release(release, "0.9.0", {"CLAUDE.md": "# Old\n"})

        result = runner.invoke(app, ["update", "--yes", "--base", str(bank)])

        assert result.exit_code == 0
        assert "Downgrades are not supported" in result.output
        assert (bank / "CLAUDE.md").read_text() == "# Instructions\n"

    def test_system_only_mode(self, initialized) -> None:
        """Test mode B leaves stack guides out."""
        bank, _ = initialized

        result = runner.invoke(
            app, ["update", "--yes", "--mode", "B", "--base", str(bank)], env=ENV
        )

        assert result.exit_code == 0
        assert (bank / "CLAUDE.md").exists()
        assert not (bank / "stacks" / "auth" / "auth-clerk.md").exists()

    def test_invalid_mode(self, initialized) -> None:
        """Test an unknown mode is rejected before anything changes."""
        bank, _ = initialized

        result = runner.invoke(app, ["update", "--yes", "--mode", "C", "--base", str(bank)])

        assert result.exit_code == 1
        assert not (bank / "CLAUDE.md").exists()

    def test_edited_stack_kept_with_yes(self, installed) -> None:
        """Test --yes keeps locally edited stack guides."""
        bank, release = installed
        (bank / "stacks" / "auth" / "auth-clerk.md").write_text("my notes on clerk\n")
        files = dict(RELEASE_FILES, **{
            "CLAUDE.md": "# Instructions v1.1\n",
            "stacks/auth/auth-clerk.md": "clerk guide v1.1\n",
        })
        make_release(release, "1.1.0", files)

        result = runner.invoke(app, ["update", "--yes", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert "Updated to 1.1.0" in result.output
        assert "Kept your edits to:" in result.output
        assert (bank / "stacks" / "auth" / "auth-clerk.md").read_text() == "my notes on clerk\n"
        assert (bank / "CLAUDE.md").read_text() == "# Instructions v1.1\n"

    def test_edited_stack_replaced_on_confirm(self, installed) -> None:
        """Test answering yes to the diff prompt takes the released copy."""
        bank, release = installed
        (bank / "stacks" / "auth" / "auth-clerk.md").write_text("my notes on clerk\n")
        files = dict(RELEASE_FILES, **{"stacks/auth/auth-clerk.md": "clerk guide v1.1\n"})
        make_release(release, "1.1.0", files)

        # Mode A, replace the edited guide, apply
        result = runner.invoke(
            app, ["update", "--base", str(bank)], input="A\ny\ny\n", env=ENV
        )

        assert result.exit_code == 0, result.output
        assert (bank / "stacks" / "auth" / "auth-clerk.md").read_text() == "clerk guide v1.1\n"

    def test_interactive_mode_choice(self, initialized) -> None:
        """Test the A/B prompt drives the update."""
        bank, _ = initialized

        result = runner.invoke(app, ["update", "--base", str(bank)], input="B\ny\n", env=ENV)

        assert result.exit_code == 0, result.output
        assert "Choose A or B" in result.output
        assert (bank / "VERSION").read_text() == "1.0.0\n"
        assert not (bank / "stacks").exists()

    def test_declined_update(self, initialized) -> None:
        """Test declining the final confirmation changes nothing."""
        bank, _ = initialized

        result = runner.invoke(app, ["update", "--base", str(bank)], input="A\nn\n", env=ENV)

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert (bank / "VERSION").read_text() == "0.0.0\n"
        assert not (bank / "CLAUDE.md").exists()

    def test_force_reapplies(self, installed) -> None:
        """Test --force re-runs the same release."""
        bank, _ = installed
        (bank / "CLAUDE.md").write_text("scribbled\n")

        result = runner.invoke(app, ["update", "--yes", "--force", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert (bank / "CLAUDE.md").read_text() == "# Instructions\n"

    def test_default_mode_from_config(self, initialized) -> None:
        """Test config default_mode skips the A/B prompt."""
        bank, _ = initialized
        runner.invoke(app, ["config", "set", "default_mode", "system-only", "--base", str(bank)])

        result = runner.invoke(app, ["update", "--base", str(bank)], input="y\n", env=ENV)

        assert result.exit_code == 0, result.output
        assert "Choose A or B" not in result.output
        assert not (bank / "stacks").exists()


class TestRestoreCommand:
    """Tests for restore and backups."""

    def test_restore_without_backups(self, initialized) -> None:
        """Test restore with nothing backed up."""
        bank, _ = initialized

        result = runner.invoke(app, ["restore", "--yes", "--base", str(bank)])

        assert result.exit_code == 1
        assert "Nothing to restore: no backups found." in result.output

    def test_restore_after_update(self, installed) -> None:
        """Test the pre-update version comes back."""
        bank, _ = installed
        (bank / "progress.md").write_text("written after the update\n")

        result = runner.invoke(app, ["restore", "--yes", "--base", str(bank)])

        assert result.exit_code == 0
        assert "Restored" in result.output
        assert (bank / "VERSION").read_text() == "0.0.0\n"
        assert (bank / "progress.md").read_text() == "written after the update\n"

    def test_restore_unknown_label(self, installed) -> None:
        """Test an unknown label is reported."""
        bank, _ = installed

        result = runner.invoke(app, ["restore", "--yes", "--label", "nope", "--base", str(bank)])

        assert result.exit_code == 1
        assert "no backup labelled nope" in result.output

    def test_restore_copy_failure(self, installed, monkeypatch) -> None:
        """Test a file-system error during restore is reported and logged."""
        bank, _ = installed
        from membank import backups as backups_module

        def broken(src, dest):
            raise OSError("read-only file system")

        monkeypatch.setattr(backups_module, "copy_file", broken)

        result = runner.invoke(app, ["restore", "--yes", "--base", str(bank)])

        assert result.exit_code == 1
        assert "Error: Restore from" in result.output
        assert "read-only file system" in result.output
        assert parse_log_file(bank)[-1].command == "RESTORE:failed"

    def test_restore_declined(self, installed) -> None:
        """Test answering no leaves files as they are."""
        bank, _ = installed

        result = runner.invoke(app, ["restore", "--base", str(bank)], input="n\n")

        assert result.exit_code == 0
        assert (bank / "VERSION").read_text() == "1.0.0\n"

    def test_backups_listing(self, installed) -> None:
        """Test backups are listed with their version."""
        bank, _ = installed

        result = runner.invoke(app, ["backups", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert "0001_v0.0.0_" in result.output

    def test_backups_empty(self, initialized) -> None:
        """Test the empty listing message."""
        bank, _ = initialized

        result = runner.invoke(app, ["backups", "--base", str(bank)])

        assert "No backups." in result.output


class TestGuideCommand:
    """Tests for the stack guide."""

    def test_preset_answers(self) -> None:
        """Test a fully pre-answered run prints recommendations."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(app, [
                "guide", "--base", tmpdir,
                "-a", "project_type=cli", "-a", "language=python", "-a", "distribution=registry",
            ], env=ENV)

            assert result.exit_code == 0, result.output
            assert "Recommended stack" in result.output
            assert "Typer" in result.output
            assert "stacks/cli/cli-typer.md" in result.output
            assert "not installed" in result.output

    def test_interactive(self) -> None:
        """Test answers typed at the prompt, including a number and a prefix."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(
                app, ["help-me-choose", "--base", tmpdir],
                input="1\nreact\nsoc\nrelational\nserverless\n",
                env=ENV,
            )

            assert result.exit_code == 0, result.output
            assert "Next.js" in result.output
            assert "Better Auth" in result.output
            assert "Vercel" in result.output

    def test_ambiguous_answer_reasked(self) -> None:
        """Test an ambiguous answer is explained and asked again."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(
                app, ["guide", "--base", tmpdir, "-a", "project_type=api", "-a", "language=go"],
                input="e\nenterprise\nnone\ncontainer\n",
                env=ENV,
            )

            assert result.exit_code == 0, result.output
            assert "could mean" in result.output
            assert "WorkOS" in result.output

    def test_unknown_question_id(self) -> None:
        """Test unknown preset ids are rejected."""
        result = runner.invoke(app, ["guide", "-a", "budget=low"])

        assert result.exit_code == 1
        assert "Unknown question id" in result.output

    def test_malformed_answer(self) -> None:
        """Test presets must be id=value."""
        result = runner.invoke(app, ["guide", "-a", "web"])

        assert result.exit_code == 1
        assert "id=value" in result.output


class TestStatusCommand:
    """Tests for the status command."""

    def test_status(self, installed) -> None:
        """Test version, source and backups are shown."""
        bank, release = installed

        result = runner.invoke(app, ["status", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert "Version: 1.0.0" in result.output
        assert str(release) in result.output
        assert "Backups: 1" in result.output

    def test_status_with_undecodable_version(self, installed) -> None:
        """Test status still renders when VERSION is not text."""
        bank, _ = installed
        (bank / "VERSION").write_bytes(b"\xff\xfe")

        result = runner.invoke(app, ["status", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert "unreadable" in result.output


class TestConfigCommand:
    """Tests for config commands."""

    def test_set_and_show(self, initialized) -> None:
        """Test a valid setting is saved and shown as custom."""
        bank, _ = initialized

        result = runner.invoke(app, ["config", "set", "backup_retention", "5", "--base", str(bank)])
        assert result.exit_code == 0
        assert read_json(bank / MEMBANK_DIR / CONFIG_FILE)["backup_retention"] == 5

        result = runner.invoke(app, ["config", "show", "--plain", "--base", str(bank)], env=ENV)
        assert "backup_retention" in result.output
        assert "custom" in result.output

    def test_set_unknown_key(self, initialized) -> None:
        """Test unknown keys are rejected."""
        bank, _ = initialized

        result = runner.invoke(app, ["config", "set", "colour", "blue", "--base", str(bank)])

        assert result.exit_code == 1
        assert "not a config key" in result.output

    def test_set_invalid_value(self, initialized) -> None:
        """Test values are validated."""
        bank, _ = initialized

        result = runner.invoke(app, ["config", "set", "backup_retention", "0", "--base", str(bank)])

        assert result.exit_code == 1
        assert read_json(bank / MEMBANK_DIR / CONFIG_FILE)["backup_retention"] == 3

    def test_reset_keeps_source(self, initialized) -> None:
        """Test reset restores defaults but keeps the source."""
        bank, release = initialized
        runner.invoke(app, ["config", "set", "backup_retention", "7", "--base", str(bank)])

        result = runner.invoke(app, ["config", "reset", "--base", str(bank)])

        assert result.exit_code == 0
        config = read_json(bank / MEMBANK_DIR / CONFIG_FILE)
        assert config["backup_retention"] == 3
        assert config["source"] == str(release)

    def test_hand_edited_value_reported(self, initialized) -> None:
        """Test an invalid value written by hand gives an error, not a traceback."""
        bank, _ = initialized
        config_file = bank / MEMBANK_DIR / CONFIG_FILE
        write_json(config_file, {**read_json(config_file), "backup_retention": "lots"})

        for args in (["config", "show"], ["update", "check"], ["status"], ["backups"]):
            result = runner.invoke(app, [*args, "--base", str(bank)], env=ENV)

            assert result.exit_code == 1, args
            assert "Error: Cannot load" in result.output, args

    def test_set_repairs_hand_edited_value(self, initialized) -> None:
        """Test set can fix the value that made config.json invalid."""
        bank, _ = initialized
        config_file = bank / MEMBANK_DIR / CONFIG_FILE
        write_json(config_file, {**read_json(config_file), "backup_retention": "lots"})

        result = runner.invoke(app, ["config", "set", "backup_retention", "4", "--base", str(bank)])

        assert result.exit_code == 0
        assert read_json(config_file)["backup_retention"] == 4

    def test_reset_after_corrupt_json(self, initialized) -> None:
        """Test reset recovers a config.json that is not JSON."""
        bank, _ = initialized
        config_file = bank / MEMBANK_DIR / CONFIG_FILE
        config_file.write_text("{not json")

        result = runner.invoke(app, ["config", "reset", "--base", str(bank)])

        assert result.exit_code == 0
        assert "source was not kept" in result.output
        assert read_json(config_file)["backup_retention"] == 3


class TestLogsCommand:
    """Tests for the logs commands."""

    def test_update_events_logged(self, installed) -> None:
        """Test an update leaves its state changes in the log."""
        bank, _ = installed

        result = runner.invoke(app, ["logs", "show", "--events", "--base", str(bank)], env=ENV)

        assert result.exit_code == 0
        assert "UPDATE:backing_up" in result.output
        assert "UPDATE:done" in result.output

    def test_clear(self, installed) -> None:
        """Test the log can be cleared."""
        bank, _ = installed

        runner.invoke(app, ["logs", "clear", "--force", "--base", str(bank)])
        result = runner.invoke(app, ["logs", "show", "--base", str(bank)])

        assert "No log entries found." in result.output


class TestHelp:
    """Tests for top-level help."""

    def test_help_lists_commands(self) -> None:
        """Test every command is registered."""
        result = runner.invoke(app, ["--help"], env=ENV)

        assert result.exit_code == 0
        for name in ("init", "update", "restore", "backups", "guide", "status", "classify", "config", "logs"):
            assert name in result.output
