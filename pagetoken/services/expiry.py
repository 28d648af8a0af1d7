"""
Expiry rules for long-lived tokens.

All functions are pure: callers pass ``now`` explicitly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pagetoken.core.config import TokenPolicySettings
from pagetoken.models.credential import CredentialRecord

SECONDS_PER_DAY = 86_400
DEFAULT_THRESHOLD_DAYS = 7
DEFAULT_LIFETIME_SECONDS = 5_184_000


def needs_refresh(
    record: CredentialRecord, now: datetime, threshold_days: float = DEFAULT_THRESHOLD_DAYS
) -> bool:
    """True when less than ``threshold_days`` remain; exactly the threshold is still fresh."""
    return record.expires_at - now < timedelta(days=threshold_days)


def compute_expiry(
    now: datetime,
    expires_in_seconds: Optional[int],
    default_seconds: int = DEFAULT_LIFETIME_SECONDS,
) -> datetime:
    if expires_in_seconds is None:
        expires_in_seconds = default_seconds
    return now + timedelta(seconds=expires_in_seconds)


def days_remaining(record: CredentialRecord, now: datetime) -> int:
    return math.floor((record.expires_at - now).total_seconds() / SECONDS_PER_DAY)


def is_expired(record: CredentialRecord, now: datetime) -> bool:
    return record.expires_at <= now


@dataclass(frozen=True)
class ExpiryPolicy:
    """Binds the configured thresholds to the expiry functions."""

    threshold_days: float = DEFAULT_THRESHOLD_DAYS
    default_lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS

    @classmethod
    def from_settings(cls, settings: TokenPolicySettings) -> "ExpiryPolicy":
        return cls(
            threshold_days=settings.refresh_threshold_days,
            default_lifetime_seconds=settings.default_lifetime_seconds,
        )

    def needs_refresh(self, record: CredentialRecord, now: datetime) -> bool:
        return needs_refresh(record, now, self.threshold_days)

    def compute_expiry(self, now: datetime, expires_in_seconds: Optional[int]) -> datetime:
        return compute_expiry(now, expires_in_seconds, self.default_lifetime_seconds)

    def days_remaining(self, record: CredentialRecord, now: datetime) -> int:
        return days_remaining(record, now)

    def is_expired(self, record: CredentialRecord, now: datetime) -> bool:
        return is_expired(record, now)


__all__ = [
    "ExpiryPolicy",
    "compute_expiry",
    "days_remaining",
    "is_expired",
    "needs_refresh",
]
