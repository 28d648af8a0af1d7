"""Pydantic schemas shared across routers and services."""

from .auth import (
    ProviderTokenResponse,
    TokenExchangeRequest,
    TokenIntrospection,
    TokenStatus,
)

__all__ = [
    "ProviderTokenResponse",
    "TokenExchangeRequest",
    "TokenIntrospection",
    "TokenStatus",
]
