"""
Logging utilities for the FastAPI application and operator scripts.

Provides a consistent logging format and a helper that keeps secrets out of
log lines.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_token(token: str | None, visible: int = 6) -> str:
    """Return a log-safe rendering of a bearer token."""
    if not token:
        return "<empty>"
    if len(token) <= visible * 2:
        return "***"
    return f"{token[:visible]}...({len(token)} chars)"


__all__ = ["configure_logging", "mask_token"]
