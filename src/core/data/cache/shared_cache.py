"""Shared (out-of-process) cache backends for the quote cache's second tier."""
from abc import ABC, abstractmethod

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.core.quotes.errors import SharedCacheUnavailable


class SharedCacheBackend(ABC):

    enabled: bool = True

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        ...

    @abstractmethod
    async def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Raises SharedCacheUnavailable when the backend cannot be reached."""
        ...

    async def close(self) -> None:
        return None


class NullSharedCache(SharedCacheBackend):
    """Used when no shared cache is configured or it failed its startup ping."""

    enabled = False

    async def get(self, key: str) -> bytes | None:
        return None

    async def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        return None

    async def ping(self) -> None:
        return None


class RedisSharedCache(SharedCacheBackend):

    def __init__(self, redis_url: str = "redis://localhost:6379", client=None):
        self.redis_url = redis_url
        self.client = client if client is not None else redis.from_url(redis_url)

    async def get(self, key: str) -> bytes | None:
        try:
            return await self.client.get(key)
        except (RedisError, OSError) as e:
            raise SharedCacheUnavailable(f"GET {key}: {e}") from e

    async def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            await self.client.setex(key, ttl_seconds, value)
        except (RedisError, OSError) as e:
            raise SharedCacheUnavailable(f"SETEX {key}: {e}") from e

    async def ping(self) -> None:
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            raise SharedCacheUnavailable(f"PING {self.redis_url}: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
