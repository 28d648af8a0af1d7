from __future__ import annotations

import time
from typing import Callable

import httpx
import pytest

from pagetoken.clients.graph_auth import GraphOAuthClient
from pagetoken.core.config import FacebookSettings
from pagetoken.core.errors import (
    ConfigurationError,
    CredentialInvalidError,
    NetworkError,
    ProviderError,
)
from pagetoken.utils.http import RetryConfig

Handler = Callable[[httpx.Request], httpx.Response]


def _settings(**overrides: str) -> FacebookSettings:
    values = {
        "FACEBOOK_APP_ID": "app-id",
        "FACEBOOK_APP_SECRET": "app-secret",
        "FACEBOOK_GRAPH_BASE_URL": "https://graph.test",
        "FACEBOOK_API_VERSION": "v18.0",
    }
    values.update(overrides)
    return FacebookSettings(**values)


def _client(handler: Handler, **kwargs) -> GraphOAuthClient:
    settings = kwargs.pop("settings", None) or _settings()
    return GraphOAuthClient(settings, transport=httpx.MockTransport(handler), **kwargs)


class RecordingHandler:
    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


@pytest.mark.asyncio
async def test_exchange_sends_fb_exchange_grant() -> None:
    handler = RecordingHandler(
        httpx.Response(
            200,
            json={"access_token": "long456", "token_type": "bearer", "expires_in": 5184000},
        )
    )

    response = await _client(handler).exchange("short123")

    assert response.access_token == "long456"
    assert response.expires_in == 5184000
    request = handler.requests[0]
    assert request.method == "GET"
    assert request.url.host == "graph.test"
    assert request.url.path == "/v18.0/oauth/access_token"
    assert dict(request.url.params) == {
        "grant_type": "fb_exchange_token",
        "client_id": "app-id",
        "client_secret": "app-secret",
        "fb_exchange_token": "short123",
    }


@pytest.mark.asyncio
async def test_exchange_tolerates_missing_lifetime_and_type() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"access_token": "long456"}))

    response = await _client(handler).exchange("short123")

    assert response.token_type == "bearer"
    assert response.expires_in is None


@pytest.mark.asyncio
async def test_exchange_surfaces_provider_error_payload() -> None:
    handler = RecordingHandler(
        httpx.Response(
            400,
            json={
                "error": {
                    "message": "Error validating access token: Session has expired",
                    "type": "OAuthException",
                    "code": 190,
                }
            },
        )
    )

    with pytest.raises(ProviderError) as excinfo:
        await _client(handler).exchange("stale")

    assert excinfo.value.code == 190
    assert "Session has expired" in excinfo.value.message


@pytest.mark.asyncio
async def test_exchange_rejects_payload_without_token() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"expires_in": 10}))

    with pytest.raises(ProviderError):
        await _client(handler).exchange("short123")


@pytest.mark.asyncio
async def test_exchange_maps_transport_failures_to_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        await _client(handler).exchange("short123")


@pytest.mark.asyncio
async def test_exchange_treats_unstructured_server_error_as_transient() -> None:
    handler = RecordingHandler(httpx.Response(503, text="<html>maintenance</html>"))

    with pytest.raises(NetworkError):
        await _client(handler).exchange("short123")


@pytest.mark.asyncio
async def test_exchange_requires_app_credentials() -> None:
    handler = RecordingHandler()
    client = _client(handler, settings=_settings(FACEBOOK_APP_SECRET=""))

    with pytest.raises(ConfigurationError):
        await client.exchange("short123")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_exchange_retries_transport_failures_when_configured() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            raise httpx.ConnectError("reset", request=request)
        return httpx.Response(200, json={"access_token": "long456", "expires_in": 60})

    client = _client(handler, retry_config=RetryConfig(attempts=2, backoff_seconds=0))
    response = await client.exchange("short123")

    assert response.access_token == "long456"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_introspect_reports_valid_token_and_expiry() -> None:
    expires_at = int(time.time()) + 30 * 86400
    handler = RecordingHandler(
        httpx.Response(200, json={"data": {"is_valid": True, "expires_at": expires_at}})
    )

    result = await _client(handler).introspect("long456")

    assert result.is_valid is True
    assert result.expires_at is not None
    assert int(result.expires_at.timestamp()) == expires_at
    request = handler.requests[0]
    assert request.url.path == "/v18.0/debug_token"
    assert dict(request.url.params) == {"input_token": "long456", "access_token": "long456"}


@pytest.mark.asyncio
async def test_introspect_treats_zero_expiry_as_never_expiring() -> None:
    handler = RecordingHandler(
        httpx.Response(200, json={"data": {"is_valid": True, "expires_at": 0}})
    )

    result = await _client(handler).introspect("page-token")

    assert result.is_valid is True
    assert result.expires_at is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"is_valid": False}},
        {"error": {"message": "Invalid OAuth access token.", "code": 190}},
        {"data": {"is_valid": True, "expires_at": 1_000_000}},
    ],
)
async def test_introspect_reports_invalid_tokens(payload: dict) -> None:
    handler = RecordingHandler(httpx.Response(200, json=payload))

    result = await _client(handler).introspect("long456")

    assert result.is_valid is False


@pytest.mark.asyncio
async def test_refresh_fails_fast_for_invalid_token() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"data": {"is_valid": False}}))

    with pytest.raises(CredentialInvalidError):
        await _client(handler).refresh("long456")

    assert [request.url.path for request in handler.requests] == ["/v18.0/debug_token"]


@pytest.mark.asyncio
async def test_refresh_re_exchanges_current_token() -> None:
    handler = RecordingHandler(
        httpx.Response(200, json={"data": {"is_valid": True, "expires_at": 0}}),
        httpx.Response(200, json={"access_token": "renewed", "expires_in": 5184000}),
    )

    response = await _client(handler).refresh("long456")

    assert response.access_token == "renewed"
    exchange_request = handler.requests[1]
    assert exchange_request.url.path == "/v18.0/oauth/access_token"
    assert exchange_request.url.params["fb_exchange_token"] == "long456"
