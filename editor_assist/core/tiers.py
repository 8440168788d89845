"""
User tier policy.

Maps the premium flag to a daily request limit and a model name.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class TierPolicy:
    """Limits and model choice for a single tier."""
    daily_limit: int
    model: str
    power_model: str = ""

    def __post_init__(self):
        """Validate tier values."""
        if self.daily_limit <= 0:
            raise ValueError("daily_limit must be > 0")
        if not self.model or not self.model.strip():
            raise ValueError("model is required and cannot be empty")


@dataclass(frozen=True)
class TierTable:
    """Fixed free/premium tier table."""
    tiers: Dict[str, TierPolicy]

    def get_policy(self, premium: bool) -> TierPolicy:
        """Get the policy for a user.

        Args:
            premium: Premium flag from the user profile

        Returns:
            TierPolicy for the user's tier
        """
        return self.tiers["premium" if premium else "free"]

    def daily_limit(self, premium: bool) -> int:
        return self.get_policy(premium).daily_limit

    def select_model(self, premium: bool, power: bool = False) -> str:
        """Pick the model name for a request.

        Only a premium user who asks for power gets the power model; every
        other combination gets the tier's default model.
        """
        policy = self.get_policy(premium)
        if premium and power and policy.power_model:
            return policy.power_model
        return policy.model


DEFAULT_TIER_TABLE = TierTable({
    "free": TierPolicy(daily_limit=5, model="gpt-4o-mini"),
    "premium": TierPolicy(daily_limit=100, model="gpt-4o-mini", power_model="gpt-4o"),
})
