"""
Facebook Graph API OAuth utilities.

These helpers exchange short-lived tokens for long-lived ones, renew
long-lived tokens and ask the provider whether a token is still usable.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from pagetoken.core.config import FacebookSettings
from pagetoken.core.errors import (
    ConfigurationError,
    CredentialInvalidError,
    NetworkError,
    ProviderError,
)
from pagetoken.core.logging import mask_token
from pagetoken.schemas.auth import ProviderTokenResponse, TokenIntrospection
from pagetoken.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)


class GraphOAuthClient:
    """Call the Graph API token exchange and debug endpoints."""

    EXCHANGE_PATH = "oauth/access_token"
    DEBUG_PATH = "debug_token"

    def __init__(
        self,
        settings: FacebookSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._retry = retry_config or RetryConfig()

    def _url(self, path: str) -> str:
        base = str(self._settings.graph_base_url).rstrip("/")
        return f"{base}/{self._settings.api_version}/{path}"

    async def _get(self, path: str, params: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            try:
                return await request_with_retry(
                    client.get, self._url(path), params=params, retry_config=self._retry
                )
            except httpx.TransportError as exc:
                raise NetworkError(
                    f"Graph API request to {path} failed: {exc.__class__.__name__}"
                ) from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            raise ProviderError(
                error.get("message") or "Graph API returned an error.",
                code=error.get("code"),
            )
        if response.status_code >= 500:
            raise NetworkError(f"Graph API unavailable (HTTP {response.status_code})")
        if response.is_error:
            raise ProviderError(response.text[:500], code=response.status_code)
        if not isinstance(payload, dict):
            raise ProviderError("Graph API returned a non-JSON payload.")
        return payload

    async def exchange(self, token: str) -> ProviderTokenResponse:
        """
        Exchange a short-lived or long-lived token for a fresh long-lived one.

        The endpoint is the same for the first exchange and for rolling renewals.
        """
        if not self._settings.app_id or not self._settings.app_secret:
            raise ConfigurationError(
                "FACEBOOK_APP_ID and FACEBOOK_APP_SECRET are required to exchange tokens."
            )

        params = {
            "grant_type": "fb_exchange_token",
            "client_id": self._settings.app_id,
            "client_secret": self._settings.app_secret,
            "fb_exchange_token": token,
        }
        logger.info("Exchanging token %s for a long-lived token", mask_token(token))
        payload = self._decode(await self._get(self.EXCHANGE_PATH, params))

        access_token = payload.get("access_token")
        if not access_token:
            raise ProviderError("Incomplete token payload returned from Graph API.")

        expires_in = payload.get("expires_in")
        return ProviderTokenResponse(
            access_token=access_token,
            token_type=payload.get("token_type") or "bearer",
            expires_in=int(expires_in) if expires_in else None,
        )

    async def introspect(self, token: str) -> TokenIntrospection:
        """Ask the debug endpoint whether ``token`` is valid, using itself as the app token."""
        params = {"input_token": token, "access_token": token}
        try:
            payload = self._decode(await self._get(self.DEBUG_PATH, params))
        except ProviderError as exc:
            logger.warning("Token introspection rejected: %s", exc)
            return TokenIntrospection(is_valid=False)

        data = payload.get("data") or {}
        if not data.get("is_valid"):
            return TokenIntrospection(is_valid=False)

        expires_at = None
        raw_expires_at = data.get("expires_at")
        if raw_expires_at:
            expires_at = datetime.fromtimestamp(int(raw_expires_at), tz=timezone.utc)
            if expires_at < datetime.now(timezone.utc):
                return TokenIntrospection(is_valid=False, expires_at=expires_at)

        return TokenIntrospection(is_valid=True, expires_at=expires_at)

    async def refresh(self, current_token: str) -> ProviderTokenResponse:
        """Renew a long-lived token after confirming it is still usable."""
        introspection = await self.introspect(current_token)
        if not introspection.is_valid:
            raise CredentialInvalidError("Current token is invalid or expired.")
        return await self.exchange(current_token)


__all__ = ["GraphOAuthClient"]
