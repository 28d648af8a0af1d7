"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the credential manager and
the operator scripts share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FacebookSettings(BaseSettings):
    """Configuration required for interacting with the Graph API."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    app_id: Optional[str] = Field(None, validation_alias="FACEBOOK_APP_ID")
    app_secret: Optional[str] = Field(None, validation_alias="FACEBOOK_APP_SECRET")
    bootstrap_token: Optional[str] = Field(
        None,
        validation_alias="FACEBOOK_ACCESS_TOKEN",
        description="Short-lived token exchanged when no credential is stored.",
    )
    api_version: str = Field("v18.0", validation_alias="FACEBOOK_API_VERSION")
    graph_base_url: AnyHttpUrl = Field(
        "https://graph.facebook.com", validation_alias="FACEBOOK_GRAPH_BASE_URL"
    )
    timeout_seconds: float = Field(10.0, validation_alias="GRAPH_TIMEOUT_SECONDS", gt=0)

    @field_validator("app_id", "app_secret", "bootstrap_token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        """Treat empty environment values as missing."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TokenPolicySettings(BaseSettings):
    """Refresh margin and fallback lifetime for long-lived tokens."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    refresh_threshold_days: float = Field(
        7, validation_alias="TOKEN_REFRESH_THRESHOLD_DAYS", ge=0
    )
    default_lifetime_seconds: int = Field(
        5_184_000,
        validation_alias="TOKEN_DEFAULT_LIFETIME_SECONDS",
        gt=0,
        description="Lifetime assumed when the provider omits expires_in (60 days).",
    )


class TokenStoreSettings(BaseSettings):
    """Where and how the long-lived token is persisted."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    backend: Optional[Literal["database", "file"]] = Field(
        None,
        validation_alias="TOKEN_STORE_BACKEND",
        description="Explicit backend choice. Derived from the environment when omitted.",
    )
    use_database: bool = Field(False, validation_alias="USE_DB_FOR_TOKENS")
    db_path: str = Field("data/tokens.db", validation_alias="TOKEN_DB_PATH")
    file_path: str = Field(".facebook-token.json", validation_alias="TOKEN_FILE_PATH")

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip().lower()
        return cleaned or None


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    facebook: FacebookSettings = Field(default_factory=FacebookSettings)
    policy: TokenPolicySettings = Field(default_factory=TokenPolicySettings)
    store: TokenStoreSettings = Field(default_factory=TokenStoreSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @property
    def token_store_backend(self) -> str:
        """Resolve the persistence backend for the current deployment."""
        if self.store.backend:
            return self.store.backend
        if self.environment.lower() == "production" or self.store.use_database:
            return "database"
        return "file"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "FacebookSettings",
    "SecuritySettings",
    "TokenPolicySettings",
    "TokenStoreSettings",
    "get_settings",
]
