"""
FastAPI application entrypoint for the page token service.
"""

from __future__ import annotations

from fastapi import FastAPI

from pagetoken.api.routes import router as api_router
from pagetoken.core.config import get_settings
from pagetoken.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Page Token Service",
        version="0.1.0",
        description="Keeps a long-lived Graph API page token fresh for collaborators.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
