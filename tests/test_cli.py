"""
Tests for the CLI interface.

Use cases are patched where they would touch the machine; the CLI
layer is tested for wiring, output and exit codes.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from devsetup.core.models.phase import OrchestratorReport
from devsetup.core.models.report import FAILED, OK, StepReport
from devsetup.core.observability.logging_config import setup_logging
from devsetup.core.services.rollback import RollbackReport
from devsetup.core.services.validate import ValidationReport
from devsetup.core.use_cases.setup import SetupResult
from devsetup.main import cli


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    setup_logging(console=False)


@pytest.fixture
def run(home: Path):
    runner = CliRunner()

    def invoke(*args: str):
        # -q keeps log records off the captured output
        return runner.invoke(cli, ["-q", *args], env={"DEVSETUP_HOME": str(home), "DOTFILES_REPO": "skip"})

    return invoke


class TestCliBasics:
    def test_help(self, run):
        result = run("--help")
        assert result.exit_code == 0
        for command in ("setup", "rollback", "validate", "update", "status", "state"):
            assert command in result.output

    def test_version(self, run):
        result = run("--version")
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_missing_explicit_config(self, run, tmp_path):
        result = run("--config", str(tmp_path / "nope.yml"), "status")
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_config(self, run, home):
        config = home / ".config" / "devsetup" / "config.yml"
        config.parent.mkdir(parents=True)
        config.write_text("min_free_gb: lots\n")
        result = run("status")
        assert result.exit_code == 1


class TestSetupCommand:
    def test_dry_run_passed_through(self, run, home):
        with patch(
            "devsetup.core.use_cases.setup.run_setup",
            return_value=SetupResult(exit_code=0, dry_run=True, report=OrchestratorReport()),
        ) as run_setup:
            result = run("setup", "--dry-run")

        assert result.exit_code == 0
        assert "dry-run" in result.output
        args, kwargs = run_setup.call_args
        assert args[1] == home
        assert kwargs["dry_run"] is True
        assert (home / "unified_setup.log").exists()

    def test_failed_phase_exit_code(self, run):
        with patch(
            "devsetup.core.use_cases.setup.run_setup",
            return_value=SetupResult(exit_code=1, failed_phase="dotfiles"),
        ):
            result = run("setup")

        assert result.exit_code == 1
        assert "dotfiles" in result.output

    def test_interrupted_exit_code(self, run):
        with patch(
            "devsetup.core.use_cases.setup.run_setup",
            return_value=SetupResult(exit_code=130, failed_phase="applications"),
        ):
            assert run("setup").exit_code == 130


class TestStatusCommand:
    def test_fresh_home(self, run):
        result = run("status", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["completed"] == 0
        assert data["next_phase"] == "system_prerequisites"
        assert data["snapshots"] == []

    def test_reports_completed_phases_and_snapshots(self, run, home):
        (home / ".setup_state").write_text("system_prerequisites=complete\ngit_and_ssh=complete\nold=complete\n")
        (home / ".setup_backups" / "20240601_120000").mkdir(parents=True)

        data = json.loads(run("status", "--json").output)

        assert data["completed"] == 2
        assert data["phases"]["git_and_ssh"] is True
        assert data["next_phase"] == "shell_configuration"
        assert data["unknown_entries"] == {"old": "complete"}
        assert data["snapshots"] == ["20240601_120000"]

    def test_human_output(self, run, home):
        (home / ".setup_state").write_text("system_prerequisites=complete\n")
        result = run("status")
        assert result.exit_code == 0
        assert "1/7 complete" in result.output
        assert "Next: git_and_ssh" in result.output


class TestStateCommand:
    def test_reset_named_phase(self, run, home):
        (home / ".setup_state").write_text("dotfiles=complete\napplications=complete\n")
        result = run("state", "reset", "dotfiles")
        assert result.exit_code == 0
        assert "Reset: dotfiles" in result.output
        assert (home / ".setup_state").read_text() == "applications=complete\n"

    def test_reset_all(self, run, home):
        (home / ".setup_state").write_text("dotfiles=complete\napplications=complete\n")
        assert run("state", "reset", "--all").exit_code == 0
        assert (home / ".setup_state").read_text() == ""

    def test_reset_requires_argument(self, run):
        assert run("state", "reset").exit_code == 2

    def test_unknown_phase_warned(self, run, home):
        result = run("state", "reset", "nonsense")
        assert "Unknown phase(s): nonsense" in result.output
        assert "Nothing to reset." in result.output


class TestValidateCommand:
    def test_missing_items_exit_1(self, run):
        report = ValidationReport()
        report.add("Homebrew", False)
        report.add("Oh My Zsh", True)
        with patch("devsetup.core.use_cases.validate.run_validation", return_value=report):
            result = run("validate")
        assert result.exit_code == 1
        assert "Homebrew is missing" in result.output
        assert "Oh My Zsh detected" in result.output

    def test_json(self, run):
        report = ValidationReport()
        report.add("Homebrew", True, "/opt/homebrew/bin/brew")
        with patch("devsetup.core.use_cases.validate.run_validation", return_value=report):
            result = run("validate", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["ok"] is True


class TestRollbackCommand:
    def test_force_and_dry_run_forwarded(self, run, home):
        report = RollbackReport(snapshot=home / ".setup_backups" / "20240601_120000")
        report.add("restore .zshrc", OK)
        with patch("devsetup.core.use_cases.rollback.run_rollback", return_value=report) as run_rollback:
            result = run("rollback", "--force", "--dry-run")

        assert result.exit_code == 0
        kwargs = run_rollback.call_args.kwargs
        assert kwargs["force"] is True and kwargs["dry_run"] is True
        assert "restore .zshrc: ok" in result.output

    def test_failed_step_exit_1(self, run):
        report = RollbackReport()
        report.add("remove NVM", FAILED, "permission denied")
        with patch("devsetup.core.use_cases.rollback.run_rollback", return_value=report):
            result = run("rollback", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["failed"] == 1


class TestUpdateCommand:
    def test_reports_steps(self, run):
        report = StepReport()
        report.add("homebrew", OK)
        with patch("devsetup.core.use_cases.update.run_update", return_value=report) as run_update:
            result = run("update", "--dry-run")
        assert result.exit_code == 0
        assert run_update.call_args.kwargs["dry_run"] is True
        assert "homebrew: ok" in result.output
