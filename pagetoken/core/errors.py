"""
Error taxonomy for the credential lifecycle.

Transient failures (``NetworkError``) are absorbed by the credential manager;
every other error is fatal for the operation that raised it.
"""

from __future__ import annotations

from typing import Optional


class TokenManagerError(Exception):
    """Base class for all credential lifecycle failures."""


class ConfigurationError(TokenManagerError):
    """Raised when required application credentials are not configured."""


class NoCredentialAvailableError(TokenManagerError):
    """Raised when nothing is stored and the bootstrap exchange is impossible."""


class ProviderError(TokenManagerError):
    """Raised when the Graph API rejects a request with a structured error."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"[{self.code}] {self.message}"


class NetworkError(TokenManagerError):
    """Raised on transport failures talking to the Graph API."""


class CredentialInvalidError(TokenManagerError):
    """Raised when introspection reports the stored token as unusable."""


class CredentialExpiredError(TokenManagerError):
    """Raised when the stored token passed hard expiry and could not be renewed."""


class StorageError(TokenManagerError):
    """Raised when the token store cannot read or write its medium."""


class TokenDecryptionError(StorageError):
    """Raised when a stored token cannot be opened with the configured secret."""


__all__ = [
    "ConfigurationError",
    "CredentialExpiredError",
    "CredentialInvalidError",
    "NetworkError",
    "NoCredentialAvailableError",
    "ProviderError",
    "StorageError",
    "TokenDecryptionError",
    "TokenManagerError",
]
