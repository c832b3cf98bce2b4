"""
Client for the upstream chat-completion provider. Holds the server-side API key.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from core.errors import ProviderError

logger = logging.getLogger(__name__)


class ProviderClient:
    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def complete(self, messages: List[Dict[str, Any]], model: str) -> Dict[str, Any]:
        """
        Forward a chat-completion request and return the provider's JSON unmodified.
        """
        if not self.api_key:
            logger.error("Missing provider API key")
            raise RuntimeError("Missing provider API key")

        if not messages or not model:
            raise ValueError("Invalid request format: missing required fields")

        logger.info(
            f"Calling provider: model={model} messages={len(messages)}"
        )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Cache-Control": "no-store",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(
                self.api_url,
                headers=headers,
                content=json.dumps({"messages": messages, "model": model}),
            )

        text = resp.text
        if not resp.is_success:
            logger.error(f"Provider error response: status={resp.status_code} body={text[:1000]}")
            raise ProviderError(resp.status_code, text)

        if not text:
            raise ProviderError(resp.status_code, "Empty response from provider")

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.error(f"Failed to parse provider response: {text[:1000]}")
            raise ProviderError(resp.status_code, "Invalid JSON response from provider") from None
