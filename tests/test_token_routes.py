try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from pagetoken.clients.file_store import JSONFileTokenStore
from pagetoken.core.errors import NetworkError, ProviderError
from pagetoken.main import app
from pagetoken.models.credential import CredentialRecord
from pagetoken.schemas.auth import ProviderTokenResponse, TokenIntrospection
from pagetoken.services.credential_manager import CredentialManager

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class StubProvider:
    def __init__(self) -> None:
        self.exchange_error: Exception | None = None
        self.refresh_error: Exception | None = None
        self.exchanged: list[str] = []

    async def exchange(self, token: str) -> ProviderTokenResponse:
        self.exchanged.append(token)
        if self.exchange_error is not None:
            raise self.exchange_error
        return ProviderTokenResponse(access_token=f"long-{token}", expires_in=5184000)

    async def refresh(self, current_token: str) -> ProviderTokenResponse:
        if self.refresh_error is not None:
            raise self.refresh_error
        return await self.exchange(current_token)

    async def introspect(self, token: str) -> TokenIntrospection:
        return TokenIntrospection(is_valid=True)


@pytest.fixture()
def token_env(tmp_path):
    from pagetoken import dependencies

    store = JSONFileTokenStore(str(tmp_path / ".facebook-token.json"))
    provider = StubProvider()
    manager = CredentialManager(store=store, provider=provider, clock=lambda: NOW)  # type: ignore[arg-type]

    app.dependency_overrides[dependencies.get_credential_manager] = lambda: manager

    yield store, provider

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


@pytest.mark.anyio
async def test_health() -> None:
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_exchange_token_stores_long_lived_token(token_env):
    store, provider = token_env

    async with _client() as client:
        response = await client.post(
            "/api/facebook/exchange-token", json={"token": "short123"}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["token_stored"] is True
    assert data["expires_in_days"] == 60
    assert provider.exchanged == ["short123"]
    stored = store.load()
    assert stored is not None
    assert stored.access_token == "long-short123"


@pytest.mark.anyio
async def test_exchange_token_requires_token(token_env):
    async with _client() as client:
        response = await client.post("/api/facebook/exchange-token", json={"token": " "})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Token is required"


@pytest.mark.anyio
async def test_exchange_token_reports_provider_rejection(token_env):
    _, provider = token_env
    provider.exchange_error = ProviderError("Session has expired", code=190)

    async with _client() as client:
        response = await client.post(
            "/api/facebook/exchange-token", json={"token": "stale"}
        )

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["kind"] == "ProviderError"
    assert detail["provider_code"] == 190


@pytest.mark.anyio
async def test_token_status_without_stored_token(token_env):
    async with _client() as client:
        response = await client.get("/api/facebook/token-status")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["has_token"] is False
    assert data["message"] == "No stored token found"


@pytest.mark.anyio
async def test_token_status_reports_expiry(token_env):
    store, _ = token_env
    store.save(
        CredentialRecord(
            access_token="long-stored",
            expires_at=NOW + timedelta(days=12),
            last_refreshed=NOW - timedelta(days=48),
        )
    )

    async with _client() as client:
        response = await client.get("/api/facebook/token-status")

    data = response.json()
    assert data["success"] is True
    assert data["has_token"] is True
    assert data["is_valid"] is True
    assert data["days_remaining"] == 12
    assert data["needs_refresh"] is False
    assert data["state"] == "fresh"


@pytest.mark.anyio
async def test_refresh_token_renews_stored_token(token_env):
    store, provider = token_env
    store.save(
        CredentialRecord(access_token="long-stored", expires_at=NOW + timedelta(days=20))
    )

    async with _client() as client:
        response = await client.post("/api/facebook/refresh-token")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["days_remaining"] == 60
    assert provider.exchanged == ["long-stored"]


@pytest.mark.anyio
async def test_refresh_token_reports_expired_credential(token_env):
    store, provider = token_env
    provider.refresh_error = NetworkError("timeout")
    store.save(
        CredentialRecord(access_token="long-stored", expires_at=NOW - timedelta(hours=1))
    )

    async with _client() as client:
        response = await client.post("/api/facebook/refresh-token")

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "CredentialExpiredError"


@pytest.mark.anyio
async def test_refresh_token_without_any_credential(token_env):
    async with _client() as client:
        response = await client.post("/api/facebook/refresh-token")

    assert response.status_code == 503
    assert response.json()["detail"]["kind"] == "NoCredentialAvailableError"
