"""Expose constructed client wrappers."""

from .file_store import JSONFileTokenStore
from .graph_auth import GraphOAuthClient
from .sqlite_store import SQLiteTokenStore
from .token_store import TokenStore

__all__ = [
    "GraphOAuthClient",
    "JSONFileTokenStore",
    "SQLiteTokenStore",
    "TokenStore",
]
