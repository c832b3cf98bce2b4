"""
Bearer token verification for the summarization endpoint.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from core.errors import AuthorizationError

logger = logging.getLogger(__name__)


def extract_bearer_token(header: Optional[str]) -> str:
    if not header:
        logger.info("Missing authorization header")
        raise AuthorizationError("Missing authorization header")

    token = header.removeprefix("Bearer ").strip()
    if not token:
        raise AuthorizationError("Invalid authorization token")
    return token


class TokenVerifier(ABC):
    @abstractmethod
    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Return the user the token belongs to.
        Must raise AuthorizationError for a missing, invalid or expired token.
        """
        raise NotImplementedError


class AuthServiceVerifier(TokenVerifier):
    """
    Verifies tokens by asking the auth service who they belong to
    (``GET {auth_url}/auth/v1/user``).
    """

    def __init__(
        self,
        auth_url: Optional[str],
        anon_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth_url = auth_url
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    async def verify(self, token: str) -> Dict[str, Any]:
        if not self.auth_url or not self.anon_key:
            raise RuntimeError("Missing auth service configuration")

        url = f"{self.auth_url.rstrip('/')}/auth/v1/user"
        headers = {"apikey": self.anon_key, "Authorization": f"Bearer {token}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(url, headers=headers)

        if resp.status_code != 200:
            logger.warning(f"Token verification failed: {resp.status_code}")
            raise AuthorizationError("Invalid authorization token")

        user = resp.json()
        if not user or not user.get("id"):
            raise AuthorizationError("Invalid authorization token")

        logger.info(f"Token verified for user {user['id']}")
        return user
