"""
Thin async HTTP client for calling the summarization endpoint.
Retries are the caller's responsibility; see services.retry.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx

from core.errors import ApiError, InvalidResponseError, RequestTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

CREDENTIAL_MODES = ("omit", "same-origin", "include")


class ApiClient:
    """
    Issues requests against a base URL with merged default headers and a
    hard per-request timeout.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        credentials: str = "same-origin",
        timeout: float = 30.0,
        retries: int = 3,
        cookies: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if credentials not in CREDENTIAL_MODES:
            raise ValueError(f"Unknown credentials mode: {credentials}")

        self.base_url = base_url
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.credentials = credentials
        self.timeout = timeout
        self.retries = retries  # consumed by callers

        self._client = httpx.AsyncClient(
            cookies=None if credentials == "omit" else cookies,
            transport=transport,
            timeout=None,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await asyncio.wait_for(self._client.send(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(self.timeout) from None
        finally:
            if self.credentials == "omit":
                self._client.cookies.clear()

    async def request(
        self,
        method: str,
        path: str = "",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        Raises:
            RequestTimeoutError: the request exceeded ``timeout``
            ApiError: the response status was not 2xx
            InvalidResponseError: the body was not valid JSON
        """
        merged = {**self.headers, **(headers or {})}
        content = None
        if body is not None:
            content = body if isinstance(body, (str, bytes)) else json.dumps(body)

        request = self._client.build_request(
            method,
            self._url(path),
            headers=merged,
            content=content,
            params=params,
        )

        response = await self._send(request)
        text = response.text

        if not response.is_success:
            logger.error(
                f"API error response: status={response.status_code} body={text[:1000]}"
            )
            raise ApiError(response.status_code, text)

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.error(f"Failed to parse response: {text[:1000]}")
            raise InvalidResponseError("Invalid JSON response from API") from None

    async def get(self, path: str = "", params: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str = "", body: Any = None) -> Any:
        return await self.request("POST", path, body=body)
