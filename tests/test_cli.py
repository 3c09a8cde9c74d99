"""Tests for CLI commands."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from multi_review.models.review import Verdict


@pytest.fixture
def runner(monkeypatch, tmp_path):
    """CliRunner isolated from any user configuration."""
    monkeypatch.setenv("SA_REVIEW_CONFIG", str(tmp_path / "none.yaml"))
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY",
                "XAI_API_KEY", "GROK_API_KEY", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY",
                "AWS_PROFILE", "CONSENSUS_THRESHOLD"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


@pytest.fixture
def diff_file(tmp_path, sample_vulnerable_diff):
    path = tmp_path / "change.diff"
    path.write_text(sample_vulnerable_diff)
    return str(path)


def _result(make_review, verdict):
    from multi_review.orchestrator.aggregator import ReviewAggregator

    return ReviewAggregator().aggregate([make_review("anthropic", verdict)])


class TestCLI:
    """Tests for CLI commands."""

    def test_cli_help(self, runner):
        from multi_review.cli import cli

        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "review" in result.output
        assert "providers" in result.output

    def test_review_approve_exits_zero(self, runner, diff_file, make_review):
        from multi_review.cli import cli

        with patch("multi_review.cli.run_review", new_callable=AsyncMock) as mock_review:
            mock_review.return_value = _result(make_review, Verdict.APPROVE)
            result = runner.invoke(cli, ["review", diff_file, "--providers", "anthropic"])

        assert result.exit_code == 0
        assert "## Multi-Agent Code Review" in result.stdout
        call = mock_review.call_args
        assert call.kwargs["providers"] == "anthropic"
        assert call.args[1]["file_count"] == 1

    def test_review_blocking_verdict_exits_ten(self, runner, diff_file, make_review):
        from multi_review.cli import cli

        with patch("multi_review.cli.run_review", new_callable=AsyncMock) as mock_review:
            mock_review.return_value = _result(make_review, Verdict.CRITICAL_VULNERABILITIES)
            result = runner.invoke(cli, ["review", diff_file, "--output", "json"])

        assert result.exit_code == 10
        data = json.loads(result.stdout)
        assert data["consensus"]["verdict"] == "critical_vulnerabilities"

    def test_review_needs_review_exits_ten(self, runner, diff_file, make_review):
        from multi_review.cli import cli

        with patch("multi_review.cli.run_review", new_callable=AsyncMock) as mock_review:
            mock_review.return_value = _result(make_review, Verdict.NEEDS_REVIEW)
            result = runner.invoke(cli, ["review", diff_file, "--output", "summary"])

        assert result.exit_code == 10
        assert "## Multi-Agent Review Summary" in result.stdout
        assert "**Files Reviewed:** 1 files (+5, -0 lines)" in result.stdout

    def test_review_without_providers_exits_two(self, runner, diff_file):
        from multi_review.cli import cli

        result = runner.invoke(cli, ["review", diff_file])

        assert result.exit_code == 2

    def test_review_passes_context_file(self, runner, diff_file, tmp_path, make_review):
        from multi_review.cli import cli

        context_path = tmp_path / "context.json"
        context_path.write_text(json.dumps({"repo_name": "acme/api", "file_count": 7}))

        with patch("multi_review.cli.run_review", new_callable=AsyncMock) as mock_review:
            mock_review.return_value = _result(make_review, Verdict.APPROVE)
            result = runner.invoke(
                cli, ["review", diff_file, "--context-file", str(context_path), "--threshold", "0.8"]
            )

        assert result.exit_code == 0
        call = mock_review.call_args
        assert call.args[1] == {"repo_name": "acme/api", "file_count": 7}
        assert call.kwargs["threshold"] == 0.8

    def test_review_rejects_bad_threshold(self, runner, diff_file):
        from multi_review.cli import cli

        with patch("multi_review.cli.run_review", new_callable=AsyncMock) as mock_review:
            result = runner.invoke(cli, ["review", diff_file, "--threshold", "1.5"])

        assert result.exit_code == 1
        mock_review.assert_not_called()

    def test_providers_table(self, runner, monkeypatch):
        from multi_review.cli import cli

        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        result = runner.invoke(cli, ["providers"])

        assert result.exit_code == 0
        assert "openai" in result.stdout
        assert "ollama" in result.stdout

    def test_providers_bad_config_exits_one(self, runner, tmp_path):
        from multi_review.cli import cli

        bad = tmp_path / "bad.yaml"
        bad.write_text("- just\n- a list\n")

        result = runner.invoke(cli, ["providers", "--config", str(bad)])

        assert result.exit_code == 1
        assert "Error loading config" in result.stderr
        assert isinstance(result.exception, SystemExit)

    def test_config_validate(self, runner, tmp_path):
        from multi_review.cli import cli

        good = tmp_path / "good.yaml"
        good.write_text("consensus:\n  threshold: 0.7\n")
        bad = tmp_path / "bad.yaml"
        bad.write_text("consensus:\n  threshold: 2\n")

        assert runner.invoke(cli, ["config", "validate", "--config", str(good)]).exit_code == 0
        assert runner.invoke(cli, ["config", "validate", "--config", str(bad)]).exit_code == 1
