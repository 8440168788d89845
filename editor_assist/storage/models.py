"""
Data models for storage layer.

Defines database entities and data structures.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class UsageRecord:
    """Request count for one user on one calendar day (UTC)."""
    user_id: str
    day: str
    count: int
    updated_at: datetime


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of an atomic admit-and-increment."""
    allowed: bool
    used: int
    limit: int


@dataclass(frozen=True)
class UserProfile:
    """The part of a user profile the assistant reads."""
    user_id: str
    premium: bool
    premium_since: Optional[datetime] = None


@dataclass(frozen=True)
class LLMUsageEvent:
    """Immutable record of one model call, kept for usage transparency.

    Append-only: once written, these records are never modified.
    """
    timestamp: datetime
    user_id: str
    feature: str
    model: str
    prompt_chars: int
    context_chars: int
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    request_id: Optional[str] = None
