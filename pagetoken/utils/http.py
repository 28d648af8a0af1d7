"""HTTP utilities providing bounded retry/backoff for transport failures."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 1, backoff_seconds: float = 1.0) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """Issue a request, retrying only transport-level failures.

    HTTP error statuses are returned to the caller untouched: provider
    rejections are never retried.
    """
    config = retry_config or RetryConfig()
    attempt = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except httpx.TransportError as exc:
            attempt += 1
            if attempt >= config.attempts:
                raise
            logger.warning(
                "Transport failure (%s), retrying %s/%s",
                exc.__class__.__name__,
                attempt,
                config.attempts - 1,
            )
            await asyncio.sleep(config.backoff_seconds * attempt)


__all__ = ["RetryConfig", "request_with_retry"]
