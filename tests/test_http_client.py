"""Unit tests for the async API client."""
import asyncio
import json

import httpx
import pytest

from core.errors import ApiError, InvalidResponseError, RequestTimeoutError
from services.http_client import ApiClient

BASE_URL = "https://api.example.com/v1/summarize"


def client_for(handler, **kwargs) -> ApiClient:
    return ApiClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_post_sends_json_with_merged_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async with client_for(handler, headers={"apikey": "anon", "Accept": "text/plain"}) as client:
        result = await client.request(
            "POST", body={"model": "m"}, headers={"apikey": "override"}
        )

    assert result == {"ok": True}
    request = seen[0]
    assert str(request.url) == BASE_URL
    assert request.method == "POST"
    assert json.loads(request.content) == {"model": "m"}
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Accept"] == "text/plain"
    assert request.headers["apikey"] == "override"


@pytest.mark.asyncio
async def test_get_joins_path_and_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    async with client_for(handler) as client:
        await client.get("status", params={"verbose": "1"})

    assert str(seen[0].url) == f"{BASE_URL}/status?verbose=1"


@pytest.mark.asyncio
async def test_non_2xx_raises_api_error_with_status_and_body():
    async with client_for(lambda r: httpx.Response(503, text="upstream down")) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.post(body={})

    assert exc_info.value.status == 503
    assert exc_info.value.body == "upstream down"
    assert "API Error (503)" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unparseable_body_raises_invalid_response():
    async with client_for(lambda r: httpx.Response(200, text="<html>oops</html>")) as client:
        with pytest.raises(InvalidResponseError):
            await client.post(body={})


@pytest.mark.asyncio
async def test_slow_request_times_out():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    async with client_for(handler, timeout=0.05) as client:
        with pytest.raises(RequestTimeoutError) as exc_info:
            await client.post(body={})

    assert exc_info.value.timeout == 0.05
    assert "50ms" in str(exc_info.value)


def test_defaults():
    client = ApiClient(BASE_URL)
    assert client.timeout == 30.0
    assert client.retries == 3
    assert client.credentials == "same-origin"
    assert client.headers["Accept"] == "application/json"


def test_unknown_credentials_mode_is_rejected():
    with pytest.raises(ValueError):
        ApiClient(BASE_URL, credentials="sometimes")
