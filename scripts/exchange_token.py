"""Exchange a short-lived Graph API token for a long-lived one and store it.

Run this once to seed the token store, or again whenever the stored token has
expired and the service reports ``CredentialExpiredError``::

    # Token passed explicitly
    python -m scripts.exchange_token --token EAAB...

    # Token read from FACEBOOK_ACCESS_TOKEN, retrying flaky networks twice
    python -m scripts.exchange_token --retries 3

The backend (database or JSON file) follows the same settings as the API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from pydantic import ValidationError

from pagetoken.clients import GraphOAuthClient
from pagetoken.core.config import AppSettings
from pagetoken.core.errors import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    StorageError,
)
from pagetoken.core.logging import configure_logging
from pagetoken.dependencies.clients import build_token_store
from pagetoken.services import CredentialManager, ExpiryPolicy, build_token_cipher
from pagetoken.services.expiry import days_remaining
from pagetoken.utils.http import RetryConfig

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_PROVIDER_ERROR = 3
EXIT_NETWORK_ERROR = 4
EXIT_STORAGE_ERROR = 5


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Exchange a short-lived token for a long-lived page token."
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Short-lived token to exchange (default: FACEBOOK_ACCESS_TOKEN).",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Attempts made on transport failures (default: 1, no retry).",
    )
    return parser


async def _exchange(settings: AppSettings, token: str, attempts: int) -> int:
    store = build_token_store(
        settings, build_token_cipher(settings.security.token_encryption_secret)
    )
    provider = GraphOAuthClient(
        settings.facebook, retry_config=RetryConfig(attempts=attempts)
    )
    manager = CredentialManager(
        store=store,
        provider=provider,
        policy=ExpiryPolicy.from_settings(settings.policy),
    )

    record = await manager.exchange_token(token)
    stored = store.load()
    if stored is None or stored.access_token != record.access_token:
        print(
            "Token was exchanged but could not be persisted; check the store settings.",
            file=sys.stderr,
        )
        return EXIT_STORAGE_ERROR

    remaining = days_remaining(record, record.last_refreshed)
    print("Token exchanged successfully")
    print(f"  expires at:      {record.expires_at.isoformat()}")
    print(f"  expires in days: {remaining}")
    print(f"  stored via:      {settings.token_store_backend} backend")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AppSettings()
    except ValidationError as exc:
        print(f"Settings validation failed:\n{exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level)

    token = (args.token or settings.facebook.bootstrap_token or "").strip()
    if not token:
        print(
            "No token supplied. Pass --token or set FACEBOOK_ACCESS_TOKEN.",
            file=sys.stderr,
        )
        return EXIT_CONFIG_ERROR
    if args.retries < 1:
        print("--retries must be at least 1", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        return asyncio.run(_exchange(settings, token, args.retries))
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ProviderError as exc:
        print(f"Graph API error: {exc}", file=sys.stderr)
        return EXIT_PROVIDER_ERROR
    except NetworkError as exc:
        print(f"Network error: {exc}", file=sys.stderr)
        return EXIT_NETWORK_ERROR
    except StorageError as exc:
        print(f"Could not open token store: {exc}", file=sys.stderr)
        return EXIT_STORAGE_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
