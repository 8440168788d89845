"""
Daily quota enforcement.

Admission order:
1. Resolve the tier limit from the premium flag
2. Atomically admit-and-increment the (user, day) ledger row
3. Raise QuotaExceededError when the row is already at the limit

Quota is consumed before the model call. An admitted request that later
fails upstream or is abandoned by the client still counts.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from editor_assist.storage.models import AdmitResult
from editor_assist.storage.repository import UsageRepository

from .errors import QuotaExceededError
from .tiers import DEFAULT_TIER_TABLE, TierTable

logger = logging.getLogger(__name__)


def usage_day(now: Optional[datetime] = None) -> str:
    """Calendar day (UTC) a request is counted against."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


class QuotaLedger:
    """Tier-aware front for the per-day usage ledger."""

    def __init__(self, repository: UsageRepository, tiers: TierTable = DEFAULT_TIER_TABLE):
        self.repository = repository
        self.tiers = tiers

    def admit(self, user_id: str, premium: bool, now: Optional[datetime] = None) -> AdmitResult:
        """Consume one unit of today's quota.

        Args:
            user_id: Stable user identifier
            premium: Premium flag from the user profile
            now: Clock override for tests

        Returns:
            AdmitResult with allowed=True and the new count

        Raises:
            QuotaExceededError: If the user is already at the limit
            RetryableStorageError: If the ledger transaction fails
        """
        limit = self.tiers.daily_limit(premium)
        result = self.repository.try_admit(user_id, usage_day(now), limit)
        if not result.allowed:
            logger.info("Quota reached for %s (%d/%d)", user_id, result.used, result.limit)
            raise QuotaExceededError(used=result.used, limit=result.limit)
        return result

    def usage(self, user_id: str, premium: bool, now: Optional[datetime] = None) -> AdmitResult:
        """Report today's usage without consuming quota."""
        limit = self.tiers.daily_limit(premium)
        record = self.repository.get_usage(user_id, usage_day(now))
        used = record.count if record else 0
        return AdmitResult(allowed=used < limit, used=used, limit=limit)
