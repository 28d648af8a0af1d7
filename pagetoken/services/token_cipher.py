"""At-rest protection for the page token held by the token stores."""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from pagetoken.core.errors import ConfigurationError, TokenDecryptionError

_KEY_CONTEXT = b"pagetoken:stored-page-token"


class TokenCipherService:
    """Seal page tokens before a store writes them and open them on load.

    The Fernet key is an HMAC-SHA256 of a fixed context under
    ``TOKEN_ENCRYPTION_SECRET``, so the same secret always opens what an
    earlier process wrote.
    """

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ConfigurationError(
                "TOKEN_ENCRYPTION_SECRET must be set to encrypt stored tokens."
            )
        key = hmac.new(secret.encode("utf-8"), _KEY_CONTEXT, hashlib.sha256).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(key))

    def seal(self, access_token: str) -> str:
        if not access_token:
            raise ValueError("Refusing to encrypt an empty access token")
        return self._fernet.encrypt(access_token.encode("utf-8")).decode("ascii")

    def unseal(self, stored: str, *, source: str) -> str:
        """Return the plaintext token read from ``source``.

        Raises ``TokenDecryptionError`` (a ``StorageError``) when the value is
        empty, was written in plaintext, or was sealed under another secret.
        """
        if not stored:
            raise TokenDecryptionError(f"No encrypted token found in {source}")
        try:
            plaintext = self._fernet.decrypt(stored.encode("utf-8"))
        except InvalidToken as exc:
            raise TokenDecryptionError(
                f"Stored token in {source} could not be decrypted; "
                "check TOKEN_ENCRYPTION_SECRET"
            ) from exc
        return plaintext.decode("utf-8")


def build_token_cipher(secret: Optional[str]) -> Optional[TokenCipherService]:
    """Return a cipher when at-rest encryption is configured."""
    if not secret:
        return None
    return TokenCipherService(secret=secret)


__all__ = ["TokenCipherService", "build_token_cipher"]
