"""
FastAPI routes for the page token service.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from pagetoken.core.errors import (
    ConfigurationError,
    CredentialExpiredError,
    NoCredentialAvailableError,
    ProviderError,
    TokenManagerError,
)
from pagetoken.dependencies import get_credential_manager
from pagetoken.schemas import TokenExchangeRequest
from pagetoken.services.expiry import days_remaining

router = APIRouter()
logger = logging.getLogger(__name__)


def _http_error(exc: TokenManagerError) -> HTTPException:
    """Translate a credential failure into an operator-facing HTTP error."""
    if isinstance(exc, CredentialExpiredError):
        status_code = HTTPStatus.CONFLICT
    elif isinstance(exc, NoCredentialAvailableError):
        status_code = HTTPStatus.SERVICE_UNAVAILABLE
    elif isinstance(exc, ConfigurationError):
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    else:
        # Provider rejections, transport failures, invalid credentials.
        status_code = HTTPStatus.BAD_GATEWAY

    detail: dict[str, Any] = {
        "success": False,
        "error": str(exc),
        "kind": exc.__class__.__name__,
    }
    if isinstance(exc, ProviderError) and exc.code is not None:
        detail["provider_code"] = exc.code
    return HTTPException(status_code=status_code, detail=detail)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/facebook/exchange-token", status_code=HTTPStatus.OK)
async def exchange_token(
    payload: TokenExchangeRequest,
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> dict:
    """Exchange a short-lived token for a long-lived one and store it."""
    if not payload.token.strip():
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail={"success": False, "error": "Token is required"},
        )

    try:
        record = await manager.exchange_token(payload.token)
    except TokenManagerError as exc:
        logger.error("Manual token exchange failed: %s", exc)
        raise _http_error(exc) from exc

    return {
        "success": True,
        "message": "Token exchanged successfully",
        "expires_at": record.expires_at.isoformat(),
        "expires_in_days": days_remaining(record, record.last_refreshed),
        "token_stored": True,
    }


@router.get("/facebook/token-status", status_code=HTTPStatus.OK)
async def token_status(
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> dict:
    """Report whether a token is stored, valid and how long it has left."""
    status = await manager.get_status()
    body = status.model_dump(mode="json")
    body["success"] = status.has_token
    if not status.has_token:
        body["message"] = "No stored token found"
    return body


@router.post("/facebook/refresh-token", status_code=HTTPStatus.OK)
async def refresh_token(
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> dict:
    """Force a renewal of the stored token."""
    try:
        await manager.force_refresh()
    except TokenManagerError as exc:
        logger.error("Forced token refresh failed: %s", exc)
        raise _http_error(exc) from exc

    status = await manager.get_status(verify=False)
    return {
        "success": True,
        "message": "Token refreshed successfully",
        "expires_at": status.expires_at.isoformat() if status.expires_at else None,
        "days_remaining": status.days_remaining,
    }


__all__ = ["router"]
