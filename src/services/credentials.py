"""
Credential providers for outbound summarization calls.
A provider is asked for a token on every summarization; results are never cached here.
"""
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from core.errors import AuthorizationError

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """
    Supplies a short-lived bearer token for the current user session.
    """

    @abstractmethod
    async def get_access_token(self) -> str:
        """
        Return a fresh access token.
        Must raise AuthorizationError when no valid session exists.
        """
        raise NotImplementedError


class StaticCredentialProvider(CredentialProvider):
    def __init__(self, token: Optional[str]):
        self.token = token

    async def get_access_token(self) -> str:
        if not self.token:
            raise AuthorizationError("No valid session found")
        return self.token


class CallbackCredentialProvider(CredentialProvider):
    """Delegates to an async callable, e.g. a session store lookup."""

    def __init__(self, fetch: Callable[[], Awaitable[Optional[str]]]):
        self.fetch = fetch

    async def get_access_token(self) -> str:
        token = await self.fetch()
        if not token:
            logger.warning("Session lookup returned no access token")
            raise AuthorizationError("No valid session found")
        return token
