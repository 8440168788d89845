"""
Tests for the CLI interface.
"""
from datetime import datetime, timezone

import pytest
from typer.testing import CliRunner

from editor_assist.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from editor_assist.core.quota import QuotaLedger
from editor_assist.storage.models import LLMUsageEvent
from editor_assist.storage.repository import UsageRepository

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the CLI."""
    for name in ("EDITOR_ASSIST_CONFIG", "EDITOR_ASSIST_DB", "EDITOR_ASSIST_TOKENS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "cli.db")
    UsageRepository(path).initialize()
    return path


class TestCLI:
    """Test CLI commands."""

    def test_init_creates_database(self, tmp_path):
        path = str(tmp_path / "new.db")

        result = runner.invoke(app, ["init", "--db", path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized successfully" in result.output
        assert UsageRepository(path).get_daily_usage("2026-01-01") == []

    def test_status_with_defaults(self):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "configuration is valid" in result.output
        assert "Free tier: 5/day on gpt-4o-mini" in result.output

    def test_status_bad_config(self, tmp_path, monkeypatch):
        config = tmp_path / "assist.yaml"
        config.write_text("tiers:\n  free:\n    daily_limit: 0\n    model: gpt-4o-mini\n")
        monkeypatch.setenv("EDITOR_ASSIST_CONFIG", str(config))

        result = runner.invoke(app, ["status"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Configuration error" in result.output

    def test_premium_grant_and_revoke(self, db_path):
        result = runner.invoke(app, ["premium", "alice", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "alice is now on the premium tier" in result.output
        assert UsageRepository(db_path).get_profile("alice").premium is True

        result = runner.invoke(app, ["premium", "alice", "--revoke", "--db", db_path])

        assert "alice is now on the free tier" in result.output
        assert UsageRepository(db_path).get_profile("alice").premium is False

    def test_usage_for_user(self, db_path):
        ledger = QuotaLedger(UsageRepository(db_path))
        ledger.admit("alice", premium=False)
        ledger.admit("alice", premium=False)

        result = runner.invoke(app, ["usage", "--user", "alice", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "alice (free): 2/5 requests today" in result.output

    def test_usage_table(self, db_path):
        QuotaLedger(UsageRepository(db_path)).admit("alice", premium=False)

        result = runner.invoke(app, ["usage", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "alice" in result.output

    def test_usage_for_user_without_schema(self, tmp_path):
        """A user lookup on a fresh database points the operator at init."""
        result = runner.invoke(app, ["usage", "--user", "bob", "--db", str(tmp_path / "fresh.db")])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No usage database found" in result.output

    def test_usage_empty(self, db_path):
        result = runner.invoke(app, ["usage", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No requests admitted today." in result.output

    def test_events(self, db_path):
        UsageRepository(db_path).log_event(LLMUsageEvent(
            timestamp=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
            user_id="alice",
            feature="editor",
            model="gpt-4o-mini",
            prompt_chars=120,
            context_chars=0,
            prompt_tokens=30,
            completion_tokens=20,
            total_tokens=50,
        ))

        result = runner.invoke(app, ["events", "--user", "alice", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "alice" in result.output
        assert "editor" in result.output

    def test_events_without_schema(self, tmp_path):
        """A missing database points the operator at init."""
        result = runner.invoke(app, ["events", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No usage database found" in result.output
