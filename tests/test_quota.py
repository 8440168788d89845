"""
Tests for tier policy and daily quota enforcement.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from editor_assist.core.errors import QuotaExceededError
from editor_assist.core.quota import QuotaLedger, usage_day
from editor_assist.core.tiers import DEFAULT_TIER_TABLE, TierPolicy, TierTable
from editor_assist.storage.repository import UsageRepository

NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


class TestTierPolicy:
    """Test limit and model selection per tier."""

    def test_default_limits(self):
        """Free users get 5 requests a day, premium users 100."""
        assert DEFAULT_TIER_TABLE.daily_limit(premium=False) == 5
        assert DEFAULT_TIER_TABLE.daily_limit(premium=True) == 100

    @pytest.mark.parametrize("premium,power,expected", [
        (False, False, "gpt-4o-mini"),
        (False, True, "gpt-4o-mini"),
        (True, False, "gpt-4o-mini"),
        (True, True, "gpt-4o"),
    ])
    def test_model_selection(self, premium, power, expected):
        """Only premium plus power selects the bigger model."""
        assert DEFAULT_TIER_TABLE.select_model(premium, power) == expected

    def test_power_without_power_model_uses_default(self):
        """A premium tier without a power model ignores the opt-in."""
        table = TierTable({
            "free": TierPolicy(daily_limit=1, model="small"),
            "premium": TierPolicy(daily_limit=2, model="small"),
        })

        assert table.select_model(premium=True, power=True) == "small"

    def test_invalid_policy_rejected(self):
        """Tier policies validate their values."""
        with pytest.raises(ValueError, match="daily_limit must be > 0"):
            TierPolicy(daily_limit=0, model="m")
        with pytest.raises(ValueError, match="model is required"):
            TierPolicy(daily_limit=1, model="")


class TestUsageDay:
    """Test the calendar day requests are counted against."""

    def test_utc_day(self):
        """Aware times are converted to UTC first."""
        late_evening = datetime(2026, 10, 17, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

        assert usage_day(late_evening) == "2026-10-18"

    def test_naive_time_used_as_is(self):
        """Naive times are taken as UTC."""
        assert usage_day(datetime(2026, 1, 2, 3, 4)) == "2026-01-02"


class TestQuotaLedger:
    """Test tier-aware admission."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.repository = UsageRepository(os.path.join(self.temp_dir, "test.db"))
        self.repository.initialize()
        self.ledger = QuotaLedger(self.repository)

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_free_user_sixth_request_rejected(self):
        """A free user's sixth request of the day is rejected with 5/5."""
        for expected in range(1, 6):
            assert self.ledger.admit("alice", premium=False, now=NOW).used == expected

        with pytest.raises(QuotaExceededError) as excinfo:
            self.ledger.admit("alice", premium=False, now=NOW)

        assert excinfo.value.used == 5
        assert excinfo.value.limit == 5
        assert excinfo.value.message == "Daily AI quota reached"
        assert excinfo.value.http_status == 429

    def test_premium_user_has_higher_limit(self):
        """Premium users are admitted past the free limit."""
        for _ in range(6):
            result = self.ledger.admit("alice", premium=True, now=NOW)

        assert result.used == 6
        assert result.limit == 100

    def test_next_day_resets(self):
        """A new day starts a new count."""
        for _ in range(5):
            self.ledger.admit("alice", premium=False, now=NOW)

        result = self.ledger.admit("alice", premium=False, now=NOW + timedelta(days=1))

        assert result.used == 1

    def test_usage_does_not_consume_quota(self):
        """Reporting usage leaves the counter unchanged."""
        self.ledger.admit("alice", premium=False, now=NOW)

        first = self.ledger.usage("alice", premium=False, now=NOW)
        second = self.ledger.usage("alice", premium=False, now=NOW)

        assert (first.used, first.limit) == (1, 5)
        assert second.used == 1

    def test_usage_for_unknown_user(self):
        """Users with no requests today report zero."""
        result = self.ledger.usage("nobody", premium=True, now=NOW)

        assert (result.used, result.limit, result.allowed) == (0, 100, True)
