"""
Client configuration for the journal network client

Covers:
- API base URL resolution with environment overrides and validation
- Endpoint path table
- Request, retry and timeout settings
- WebSocket and reconnection settings
- Circuit breaker and offline queue settings
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
from urllib.parse import urlparse

from .error_recovery.errors import ConfigurationError

logger = logging.getLogger(__name__)

PRODUCTION_API_URL = "https://api.journalapp.com"
DEVELOPMENT_API_URL = "http://localhost:3001/api"
DEFAULT_SOCKET_URL = "ws://localhost:8080"

DEFAULT_ENDPOINTS: Dict[str, Dict[str, str]] = {
    "auth": {
        "login": "/auth/login",
        "logout": "/auth/logout",
        "register": "/auth/register",
    },
    "journal": {
        "entries": "/journal/entries",
        "entry": "/journal/entry",
    },
}

DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def validate_api_url(url: Optional[str]) -> bool:
    """Return True for absolute http(s) URLs only"""
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def get_api_url(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Resolve the API base URL

    JOURNAL_API_URL wins when it is a valid URL. Otherwise the default for
    JOURNAL_ENV is used (production or development).
    """
    environ = os.environ if environ is None else environ
    env_api_url = environ.get("JOURNAL_API_URL")

    if env_api_url and validate_api_url(env_api_url):
        return env_api_url.rstrip("/")

    environment = environ.get("JOURNAL_ENV", "development")
    default_url = PRODUCTION_API_URL if environment == "production" else DEVELOPMENT_API_URL

    if env_api_url:
        logger.warning(
            f"JOURNAL_API_URL is invalid or malformed, falling back to default {environment} URL: {default_url}"
        )

    return default_url


@dataclass
class ClientConfig:
    """Configuration for the request pipeline and the socket connection"""
    base_url: str = field(default_factory=get_api_url)
    endpoints: Dict[str, Dict[str, str]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_ENDPOINTS))
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))

    # Request pipeline
    request_timeout: float = 45.0       # Seconds, scaled per attempt
    max_retries: int = 3
    retry_delay: float = 1.0            # Base delay for exponential backoff
    max_retry_delay: float = 10.0
    retry_jitter: float = 1.0           # Upper bound of random jitter added per retry
    connection_timeout: float = 15.0

    # Socket
    socket_url: str = DEFAULT_SOCKET_URL
    max_reconnect_attempts: int = 5
    base_reconnect_delay: float = 1.0

    # Circuit breaker
    circuit_breaker_threshold: int = 5
    circuit_breaker_reset_timeout: float = 60.0

    # Connectivity and offline queue
    connectivity_window: Optional[float] = 30.0
    queue_item_delay: float = 1.0
    redis_url: Optional[str] = None

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration cannot be used"""
        missing = [
            name for name in ("base_url", "endpoints", "headers")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Invalid API configuration. Missing required fields: {', '.join(missing)}"
            )

        if not validate_api_url(self.base_url):
            raise ConfigurationError("Invalid API configuration. base_url is not a valid URL.")

        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError("max_reconnect_attempts must be >= 0")
        if self.circuit_breaker_threshold < 1:
            raise ConfigurationError("circuit_breaker_threshold must be >= 1")

        for name in (
            "request_timeout", "connection_timeout", "circuit_breaker_reset_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")

        for name in (
            "retry_delay", "max_retry_delay", "retry_jitter",
            "base_reconnect_delay", "queue_item_delay",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")

    def url_for(self, group: str, name: str) -> str:
        """Build the absolute URL for an endpoint in the table"""
        try:
            path = self.endpoints[group][name]
        except KeyError:
            raise ConfigurationError(f"Unknown endpoint: {group}.{name}") from None
        return f"{self.base_url}{path}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a validated configuration from JOURNAL_* environment variables"""
        environ = os.environ if environ is None else environ
        config = cls(base_url=get_api_url(environ))

        if environ.get("JOURNAL_SOCKET_URL"):
            config.socket_url = environ["JOURNAL_SOCKET_URL"]
        if environ.get("JOURNAL_REDIS_URL"):
            config.redis_url = environ["JOURNAL_REDIS_URL"]

        try:
            if environ.get("JOURNAL_REQUEST_TIMEOUT"):
                config.request_timeout = float(environ["JOURNAL_REQUEST_TIMEOUT"])
            if environ.get("JOURNAL_MAX_RETRIES"):
                config.max_retries = int(environ["JOURNAL_MAX_RETRIES"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}") from e

        config.validate()
        return config
