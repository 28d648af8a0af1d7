"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_token_store,
    get_credential_manager,
    get_graph_oauth_client,
    get_token_cipher_service,
    get_token_store,
)

__all__ = [
    "build_token_store",
    "get_credential_manager",
    "get_graph_oauth_client",
    "get_token_cipher_service",
    "get_token_store",
]
