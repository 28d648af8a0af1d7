"""Persistence contract shared by the token store backends."""

from __future__ import annotations

from typing import Optional, Protocol

from pagetoken.models.credential import CredentialRecord


class TokenStore(Protocol):
    """Durable home of the current long-lived token.

    ``load`` returns ``None`` when nothing has been stored yet; both methods raise
    ``StorageError`` when the underlying medium is unavailable.
    """

    def load(self) -> Optional[CredentialRecord]:
        ...

    def save(self, record: CredentialRecord) -> None:
        ...


__all__ = ["TokenStore"]
