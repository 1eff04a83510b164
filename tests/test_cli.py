"""
Tests for the CLI interface.
"""

from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest
from click.testing import CliRunner

from autorebase.cli import cli
from autorebase.models import (
    BranchInfo, BranchOutcome, BranchStatus, DisjointHistoryError, Proceed, RunSummary,
    Skip, SkipReason,
)


@pytest.fixture(autouse=True)
def log_to_tmp(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("AUTOREBASE_LOG", str(tmp_path / "logs" / "autorebase.log"))
    monkeypatch.delenv("AUTOREBASE_ONTO", raising=False)


@pytest.fixture()
def orchestrator():
    with patch("autorebase.cli.discover_repo_path", return_value=Path("/repo")), patch(
        "autorebase.cli.AutoRebaseOrchestrator"
    ) as orchestrator_class:
        mock_orchestrator = Mock()
        orchestrator_class.return_value = mock_orchestrator
        mock_orchestrator.class_mock = orchestrator_class
        yield mock_orchestrator


class TestCLI:
    """Test CLI commands."""

    def setup_method(self):
        """Setup test environment."""
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Keep local branches rebased" in result.output

    def test_version_option(self):
        result = self.runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("autorebase ")

    def test_logs_written_to_configured_file(self, tmp_path: Path, orchestrator):
        orchestrator.load_memo.return_value = {}
        self.runner.invoke(cli, ["conflicts", "list"])
        assert (tmp_path / "logs" / "autorebase.log").exists()

    def test_run_defaults_to_master(self, orchestrator):
        orchestrator.run.return_value = RunSummary(onto_branch="master", mainline_refreshed=True)

        result = self.runner.invoke(cli, ["run"])

        assert result.exit_code == 0
        orchestrator.class_mock.assert_called_once_with(Path("/repo"), "master")
        orchestrator.run.assert_called_once()

    def test_run_onto_from_environment(self, orchestrator, monkeypatch):
        monkeypatch.setenv("AUTOREBASE_ONTO", "main")
        orchestrator.run.return_value = RunSummary(onto_branch="main")

        result = self.runner.invoke(cli, ["run"])

        assert result.exit_code == 0
        orchestrator.class_mock.assert_called_once_with(Path("/repo"), "main")

    def test_run_shows_outcomes(self, orchestrator):
        orchestrator.run.return_value = RunSummary(
            onto_branch="main",
            mainline_refreshed=True,
            outcomes=[
                BranchOutcome(branch="wip1", status=BranchStatus.SUCCEEDED,
                              original_commit="a" * 40, final_commit="b" * 40, rebased_onto="c" * 40),
                BranchOutcome(branch="stuck", status=BranchStatus.CONFLICTED,
                              original_commit="d" * 40, final_commit="d" * 40, attempts=2),
                BranchOutcome(branch="main", status=BranchStatus.SKIPPED,
                              skip_reason=SkipReason.IS_TARGET),
            ],
        )

        result = self.runner.invoke(cli, ["run", "--onto", "main"])

        assert result.exit_code == 0
        assert "wip1" in result.output
        assert "Rebase manually: stuck" in result.output

    def test_run_dry_run_does_not_rebase(self, orchestrator):
        orchestrator.plan.return_value = [
            (BranchInfo(name="main"), Skip(SkipReason.IS_TARGET)),
            (BranchInfo(name="wip"), Proceed()),
        ]

        result = self.runner.invoke(cli, ["run", "--onto", "main", "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run complete" in result.output
        orchestrator.run.assert_not_called()

    def test_run_fatal_error_exits_nonzero(self, orchestrator):
        orchestrator.run.side_effect = DisjointHistoryError("wip and main have no common ancestor")

        result = self.runner.invoke(cli, ["run", "--onto", "main"])

        assert result.exit_code == 1
        assert "no common ancestor" in result.output

    def test_conflicts_list(self, orchestrator):
        memo = MagicMock()
        memo.__len__.return_value = 1
        memo.items.return_value = [("stuck", "d" * 40)]
        orchestrator.load_memo.return_value = memo

        result = self.runner.invoke(cli, ["conflicts", "list"])

        assert result.exit_code == 0
        assert "stuck" in result.output

    def test_conflicts_list_empty(self, orchestrator):
        orchestrator.load_memo.return_value = {}

        result = self.runner.invoke(cli, ["conflicts", "list"])

        assert result.exit_code == 0
        assert "No remembered conflicts" in result.output

    def test_conflicts_clear_named_branches(self, orchestrator):
        orchestrator.forget_conflicts.return_value = ["stuck"]

        result = self.runner.invoke(cli, ["conflicts", "clear", "stuck", "other"])

        assert result.exit_code == 0
        orchestrator.forget_conflicts.assert_called_once_with(["stuck", "other"])
        assert "Forgot 1 conflict" in result.output

    def test_conflicts_clear_all_requires_confirmation(self, orchestrator):
        result = self.runner.invoke(cli, ["conflicts", "clear"], input="n\n")

        assert result.exit_code == 0
        orchestrator.forget_conflicts.assert_not_called()

        orchestrator.forget_conflicts.return_value = []
        result = self.runner.invoke(cli, ["conflicts", "clear", "--yes"])
        assert result.exit_code == 0
        orchestrator.forget_conflicts.assert_called_once_with([])
