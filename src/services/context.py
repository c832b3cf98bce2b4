"""
Explicitly constructed application context shared by the summarization components.
The process entry point owns its lifecycle.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from services.config import Config
from services.credentials import CredentialProvider, StaticCredentialProvider
from services.database import Database
from services.http_client import ApiClient

logger = logging.getLogger(__name__)

CLIENT_INFO = "digest-summary-client/1.0.0"


@dataclass
class AppContext:
    config: Config
    database: Database
    credentials: CredentialProvider
    transport: Optional[httpx.AsyncBaseTransport] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def create_api_client(self, access_token: str) -> ApiClient:
        """
        Build a client for the summarization endpoint bound to one access token.
        Callers own the returned client and must close it.
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-client-info": CLIENT_INFO,
            **self.extra_headers,
        }
        if self.config.SUMMARY_API_KEY:
            headers["apikey"] = self.config.SUMMARY_API_KEY

        return ApiClient(
            base_url=self.config.SUMMARY_ENDPOINT_URL,
            headers=headers,
            credentials="include",
            timeout=self.config.REQUEST_TIMEOUT,
            retries=self.config.MAX_RETRIES,
            transport=self.transport,
        )


async def create_context(
    config: Config,
    credentials: Optional[CredentialProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppContext:
    """Construct the context and make sure the database schema exists."""
    db_dir = os.path.dirname(config.DATABASE_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    database = Database(config.DATABASE_PATH)
    await database.init_tables()

    context = AppContext(
        config=config,
        database=database,
        credentials=credentials or StaticCredentialProvider(config.SESSION_TOKEN),
        transport=transport,
    )
    logger.info(f"Application context ready (database={config.DATABASE_PATH})")
    return context
