"""
Key-value storage used for client state that outlives a single request

Holds the last-successful-request timestamp read by the connectivity
heuristic and the auth token attached to authenticated requests.
"""

import abc
import logging
from typing import Dict, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class StorageKeys:
    """Keys written by the client"""
    LAST_SUCCESSFUL_REQUEST = "last_successful_request"
    AUTH_TOKEN = "journal_auth_token"
    AUTH_TIMESTAMP = "auth_timestamp"


class KeyValueStore(abc.ABC):
    """Async string key-value store"""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abc.abstractmethod
    async def delete(self, *keys: str) -> None:
        ...

    async def close(self) -> None:
        pass


class InMemoryStore(KeyValueStore):
    """Process-local store, the default when no Redis URL is configured"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)


class RedisStore(KeyValueStore):
    """
    Redis-backed store

    Lets several client processes share one auth token and one view of
    connectivity.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str = "journal"):
        self.redis_client = redis_client
        self.namespace = namespace

    @classmethod
    def from_url(cls, redis_url: str, namespace: str = "journal") -> "RedisStore":
        return cls(redis.from_url(redis_url), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis_client.get(self._key(key))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self.redis_client.set(self._key(key), value)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self.redis_client.delete(*(self._key(key) for key in keys))

    async def close(self) -> None:
        await self.redis_client.aclose()
        logger.info("Closed Redis store connection")


def create_store(redis_url: Optional[str] = None) -> KeyValueStore:
    """Return a RedisStore when a URL is given, otherwise an in-memory store"""
    if redis_url:
        logger.info(f"Using Redis store at {redis_url}")
        return RedisStore.from_url(redis_url)
    return InMemoryStore()
