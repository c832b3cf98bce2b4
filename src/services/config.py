"""
Loads and handles config from config.yml
Secrets (API keys, session token) are loaded from .env
"""
import os
from typing import Any, Dict, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_MODEL = "llama-3.1-sonar-large-128k-online"
DEFAULT_PROVIDER_URL = "https://api.perplexity.ai/chat/completions"


class Config(BaseModel):
    # Core
    DATABASE_PATH: str = "data/app.db"
    OUTPUT_DIR: str = "output"

    # Summarization endpoint (client side)
    SUMMARY_ENDPOINT_URL: str = "http://localhost:5000/"
    SUMMARY_API_KEY: Optional[str] = None
    SUMMARY_MODEL: str = DEFAULT_MODEL
    SESSION_TOKEN: Optional[str] = None

    REQUEST_TIMEOUT: float = Field(30.0, gt=0)
    MAX_RETRIES: int = Field(3, ge=1)
    RETRY_BASE_DELAY: float = Field(2.0, ge=0)

    SUMMARY_MAX_LENGTH: int = Field(200, gt=0)
    SUMMARY_STYLE: Literal["concise", "detailed"] = "concise"

    # Summarization endpoint (server side)
    AUTH_URL: Optional[str] = None
    AUTH_ANON_KEY: Optional[str] = None
    PROVIDER_API_URL: str = DEFAULT_PROVIDER_URL
    PROVIDER_API_KEY: Optional[str] = None
    ALLOWED_ORIGIN: str = "http://localhost:3000"


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    # Try relative path first
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _read_yaml(path: Optional[str]) -> Dict[str, Any]:
    if path is None:
        return {}
    with open(path, 'r') as file:
        return yaml.safe_load(file) or {}


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and secrets from .env."""
    # Load .env for sensitive credentials
    load_dotenv()

    if path is not None and not os.path.exists(path):
        raise FileNotFoundError(f"Cannot find {path}")

    config = _read_yaml(path or _get_config_path())

    # Secrets come only from the environment
    for key in ("SUMMARY_API_KEY", "SESSION_TOKEN", "AUTH_ANON_KEY", "PROVIDER_API_KEY"):
        config[key] = os.getenv(key, config.get(key))

    # Plain settings may be overridden from the environment
    for key in ("DATABASE_PATH", "SUMMARY_ENDPOINT_URL", "SUMMARY_MODEL", "AUTH_URL", "ALLOWED_ORIGIN"):
        if os.getenv(key):
            config[key] = os.getenv(key)

    known = set(Config.model_fields)
    return Config(**{k: v for k, v in config.items() if k in known})
