"""Service layer exports."""

from .credential_manager import CredentialManager, CredentialState, RefreshOutcome
from .expiry import ExpiryPolicy
from .token_cipher import TokenCipherService, build_token_cipher

__all__ = [
    "CredentialManager",
    "CredentialState",
    "ExpiryPolicy",
    "RefreshOutcome",
    "TokenCipherService",
    "build_token_cipher",
]
