"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

import logging
from functools import lru_cache
from typing import Optional

from pagetoken.clients import (
    GraphOAuthClient,
    JSONFileTokenStore,
    SQLiteTokenStore,
    TokenStore,
)
from pagetoken.core.config import AppSettings, get_settings
from pagetoken.services import (
    CredentialManager,
    ExpiryPolicy,
    TokenCipherService,
    build_token_cipher,
)

logger = logging.getLogger(__name__)


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> Optional[TokenCipherService]:
    """Provide the at-rest cipher when an encryption secret is configured."""
    return build_token_cipher(_settings().security.token_encryption_secret)


def build_token_store(
    settings: AppSettings, cipher: Optional[TokenCipherService] = None
) -> TokenStore:
    """Pick the persistence backend for the current deployment."""
    backend = settings.token_store_backend
    logger.info("Using %s token store", backend)
    if backend == "database":
        return SQLiteTokenStore(settings.store.db_path, cipher=cipher)
    return JSONFileTokenStore(settings.store.file_path, cipher=cipher)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the shared token store."""
    return build_token_store(_settings(), get_token_cipher_service())


@lru_cache()
def get_graph_oauth_client() -> GraphOAuthClient:
    """Create a singleton Graph API OAuth client."""
    return GraphOAuthClient(_settings().facebook)


@lru_cache()
def get_credential_manager() -> CredentialManager:
    """Provide the process-wide credential manager."""
    settings = _settings()
    return CredentialManager(
        store=get_token_store(),
        provider=get_graph_oauth_client(),
        policy=ExpiryPolicy.from_settings(settings.policy),
        bootstrap_token=settings.facebook.bootstrap_token,
    )


__all__ = [
    "build_token_store",
    "get_credential_manager",
    "get_graph_oauth_client",
    "get_token_cipher_service",
    "get_token_store",
]
