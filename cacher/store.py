"""
Store capability consumed by the cache components.

The cache never owns the store: it is handed an already-connected client and
never closes it. ``redis.asyncio.Redis`` satisfies :class:`CacheStore`.
"""

from typing import Any, AsyncIterator, Optional, Protocol, Union

import redis.asyncio as redis

from shared.config import CacheConfig, get_config
from shared.logging import get_logger

StoredValue = Union[bytes, str]


class CacheStore(Protocol):
    """Subset of the Redis command surface the cache relies on."""

    async def exists(self, *names: str) -> int:
        ...

    async def get(self, name: str) -> Optional[StoredValue]:
        ...

    async def set(self, name: str, value: Any, px: Optional[int] = None) -> Any:
        ...

    async def delete(self, *names: str) -> int:
        ...

    def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None) -> AsyncIterator[StoredValue]:
        ...

    async def incrby(self, name: str, amount: int = 1) -> int:
        ...

    async def decrby(self, name: str, amount: int = 1) -> int:
        ...


def connect(config: Optional[CacheConfig] = None) -> redis.Redis:
    """Build a Redis client from configuration.

    The caller owns the returned client and is responsible for closing it.
    """
    config = config or get_config()
    logger = get_logger("cacher.store")

    client = redis.from_url(
        config.redis_url,
        socket_connect_timeout=config.socket_connect_timeout,
        socket_timeout=config.socket_timeout,
        health_check_interval=config.health_check_interval,
    )

    logger.info("Redis client created", redis_url=_redact(config.redis_url))
    return client


def _redact(url: str) -> str:
    """Hide credentials embedded in a connection URL."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    return f"{scheme}://***@{rest.split('@', 1)[1]}"
