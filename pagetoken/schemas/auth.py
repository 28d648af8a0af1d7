"""Schemas related to Graph API token flows."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProviderTokenResponse(BaseModel):
    """Token payload returned by the Graph API exchange endpoint."""

    access_token: str = Field(..., min_length=1)
    token_type: str = "bearer"
    expires_in: Optional[int] = Field(
        None, description="Lifetime in seconds; omitted by the provider for some tokens."
    )


class TokenIntrospection(BaseModel):
    """Result of asking the provider whether a token is still usable."""

    is_valid: bool
    expires_at: Optional[datetime] = None


class TokenExchangeRequest(BaseModel):
    """Payload sent to exchange a short-lived token manually."""

    token: str = Field(..., description="Short-lived user or page token to exchange.")


class TokenStatus(BaseModel):
    """Read-only view of the current credential for health endpoints."""

    has_token: bool
    is_valid: bool
    days_remaining: Optional[int] = None
    expires_at: Optional[datetime] = None
    last_refreshed: Optional[datetime] = None
    needs_refresh: bool = False
    state: str


__all__ = [
    "ProviderTokenResponse",
    "TokenExchangeRequest",
    "TokenIntrospection",
    "TokenStatus",
]
