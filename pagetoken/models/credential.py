"""
Domain model for the persisted long-lived page token.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialRecord(BaseModel):
    """Represents the long-lived token record kept by a token store."""

    id: Optional[int] = Field(None, description="Row identifier in the database backend.")
    access_token: str = Field(..., min_length=1, repr=False)
    token_type: str = "bearer"
    expires_at: datetime
    last_refreshed: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("access_token")
    @classmethod
    def _reject_blank_token(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("access_token must not be blank")
        return value

    @field_validator("expires_at", "last_refreshed", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps coming back from storage are UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


__all__ = ["CredentialRecord"]
