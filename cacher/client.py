"""
Scalar cache client over the Redis store capability.

Provides typed getters, default-valued getters, existence checks, prefix
eviction, counters and the remember (cache-aside) pattern for scalar values.
"""

import inspect
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar, Union

from redis.exceptions import RedisError

from shared.errors import (
    CacheException,
    NotFoundError,
    StoreError,
    ValueDecodeError,
    ValueEncodeError,
)
from shared.config import CacheConfig, get_config
from shared.logging import get_logger
from . import codec
from .codec import TTL
from .store import CacheStore, StoredValue

T = TypeVar("T")

Fetcher = Callable[[], Union[T, Awaitable[T]]]

_GLOB_SPECIAL = "\\*?[]"


async def call_fetcher(fetcher: Fetcher) -> Any:
    """Invoke a fetcher that may be a plain or a coroutine function."""
    result = fetcher()
    if inspect.isawaitable(result):
        result = await result
    return result


def prefix_pattern(prefix: str) -> str:
    """Build the SCAN MATCH pattern for a key prefix.

    A prefix that already ends in ``*`` is taken as a glob pattern.
    """
    if prefix.endswith("*"):
        return prefix
    escaped = "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in prefix)
    return f"{escaped}*"


class Cache:
    """Convenience client for common caching patterns over Redis.

    The client does not own the store and never closes it. It holds no
    mutable state, so one instance can be shared by any number of tasks.
    """

    def __init__(self, store: CacheStore, *, scan_count: int = 100):
        self.store = store
        self.scan_count = scan_count
        self.logger = get_logger("cacher.client")

    @classmethod
    def from_config(cls, store: CacheStore, config: Optional[CacheConfig] = None) -> "Cache":
        """Create a cache whose behaviour settings come from configuration."""
        config = config or get_config()
        return cls(store, scan_count=config.scan_count)

    @contextmanager
    def _store_call(self, operation: str, **details) -> Iterator[None]:
        """Translate store failures into StoreError."""
        try:
            yield
        except RedisError as exc:
            raise StoreError(operation, str(exc) or type(exc).__name__, details) from exc

    # ------------------------------------------------------------------ #
    # Existence and eviction
    # ------------------------------------------------------------------ #

    async def has(self, key: str) -> bool:
        """Check whether a key exists."""
        with self._store_call("has", key=key):
            count = await self.store.exists(key)
        return count == 1

    async def forget(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        with self._store_call("forget", key=key):
            await self.store.delete(key)

    async def forget_with_prefix(self, prefix: str) -> int:
        """Remove every key matching prefix and return how many were removed.

        A failure aborts the scan; keys deleted before it stay deleted.
        """
        pattern = prefix_pattern(prefix)
        deleted = 0

        try:
            async for key in self.store.scan_iter(match=pattern, count=self.scan_count):
                deleted += await self.store.delete(key)
        except RedisError as exc:
            self.logger.warning(
                "Prefix eviction aborted",
                prefix=prefix,
                deleted=deleted,
                error=str(exc)
            )
            raise StoreError(
                "forget_with_prefix",
                str(exc) or type(exc).__name__,
                {"prefix": prefix, "deleted": deleted}
            ) from exc

        self.logger.debug("Evicted keys by prefix", prefix=prefix, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def put(self, key: str, value: Any, ttl: TTL = None) -> None:
        """Store a scalar. A TTL of None or 0 stores it forever."""
        try:
            data = codec.encode_value(value)
        except TypeError as exc:
            raise ValueEncodeError(type(value).__name__, str(exc)) from exc

        try:
            px = codec.ttl_to_ms(ttl)
        except ValueError as exc:
            raise ValueEncodeError(type(ttl).__name__, str(exc)) from exc

        with self._store_call("put", key=key):
            await self.store.set(key, data, px=px)

    async def put_forever(self, key: str, value: Any) -> None:
        """Store a scalar without expiration."""
        await self.put(key, value, None)

    async def increment(self, key: str, delta: int = 1) -> int:
        """Atomically add delta to an integer value and return the result."""
        with self._store_call("increment", key=key):
            return await self.store.incrby(key, delta)

    async def decrement(self, key: str, delta: int = 1) -> int:
        """Atomically subtract delta from an integer value and return the result."""
        with self._store_call("decrement", key=key):
            return await self.store.decrby(key, delta)

    # ------------------------------------------------------------------ #
    # Typed reads
    # ------------------------------------------------------------------ #

    async def get(self, key: str) -> StoredValue:
        """Return the raw stored value. Raises NotFoundError if absent."""
        with self._store_call("get", key=key):
            raw = await self.store.get(key)

        if raw is None:
            raise NotFoundError(key)
        return raw

    async def _get_typed(self, key: str, decoder: Callable[[StoredValue], T], type_name: str) -> T:
        raw = await self.get(key)
        try:
            return decoder(raw)
        except ValueError as exc:
            raise ValueDecodeError(key, type_name, str(exc)) from exc

    async def get_string(self, key: str) -> str:
        return await self._get_typed(key, codec.decode_string, "string")

    async def get_bytes(self, key: str) -> bytes:
        return await self._get_typed(key, codec.decode_bytes, "bytes")

    async def get_bool(self, key: str) -> bool:
        return await self._get_typed(key, codec.decode_bool, "bool")

    async def get_int(self, key: str) -> int:
        return await self._get_typed(key, codec.decode_int, "int")

    async def get_int64(self, key: str) -> int:
        return await self._get_typed(key, codec.decode_int64, "int64")

    async def get_float32(self, key: str) -> float:
        return await self._get_typed(key, codec.decode_float32, "float32")

    async def get_float64(self, key: str) -> float:
        return await self._get_typed(key, codec.decode_float64, "float64")

    # ------------------------------------------------------------------ #
    # Reads with defaults
    # ------------------------------------------------------------------ #

    async def _get_with_default(
        self,
        key: str,
        getter: Callable[[str], Awaitable[T]],
        default: T,
        empty_is_missing: bool = True
    ) -> T:
        """Return default on any cache error, and on empty values unless disabled."""
        try:
            value = await getter(key)
        except NotFoundError:
            return default
        except CacheException as exc:
            self.logger.warning("Falling back to default", key=key, error=exc.code)
            return default

        # a stored zero/empty value cannot be told apart from "unset"
        if empty_is_missing and not value:
            return default
        return value

    async def get_string_with_default(self, key: str, default: str) -> str:
        return await self._get_with_default(key, self.get_string, default)

    async def get_bytes_with_default(self, key: str, default: bytes) -> bytes:
        return await self._get_with_default(key, self.get_bytes, default)

    async def get_bool_with_default(self, key: str, default: bool) -> bool:
        """Return default only when the read fails; a stored False is returned."""
        return await self._get_with_default(key, self.get_bool, default, empty_is_missing=False)

    async def get_int_with_default(self, key: str, default: int) -> int:
        return await self._get_with_default(key, self.get_int, default)

    async def get_int64_with_default(self, key: str, default: int) -> int:
        return await self._get_with_default(key, self.get_int64, default)

    async def get_float32_with_default(self, key: str, default: float) -> float:
        return await self._get_with_default(key, self.get_float32, default)

    async def get_float64_with_default(self, key: str, default: float) -> float:
        return await self._get_with_default(key, self.get_float64, default)

    # ------------------------------------------------------------------ #
    # Remember (cache-aside)
    # ------------------------------------------------------------------ #

    async def _remember(
        self,
        key: str,
        ttl: TTL,
        fetcher: Fetcher,
        getter: Callable[[str], Awaitable[T]],
        empty_is_missing: bool = True
    ) -> T:
        """Read key; on a miss call fetcher, store its result and return it.

        Errors other than NotFoundError propagate without calling fetcher.
        Concurrent misses on the same key each run their own fetcher.
        """
        try:
            value = await getter(key)
        except NotFoundError:
            self.logger.debug("Cache miss", key=key)
        else:
            if not empty_is_missing or value:
                self.logger.debug("Cache hit", key=key)
                return value
            self.logger.debug("Cache hit on empty value", key=key)

        value = await call_fetcher(fetcher)
        await self.put(key, value, ttl)

        self.logger.debug("Remembered value", key=key, ttl_ms=codec.ttl_to_ms(ttl))
        return value

    async def remember_string(self, key: str, ttl: TTL, fetcher: Fetcher[str]) -> str:
        """Return the cached string, computing and storing it on a miss or empty value."""
        return await self._remember(key, ttl, fetcher, self.get_string)

    async def remember_string_forever(self, key: str, fetcher: Fetcher[str]) -> str:
        return await self.remember_string(key, None, fetcher)

    async def remember_bytes(self, key: str, ttl: TTL, fetcher: Fetcher[bytes]) -> bytes:
        return await self._remember(key, ttl, fetcher, self.get_bytes)

    async def remember_bytes_forever(self, key: str, fetcher: Fetcher[bytes]) -> bytes:
        return await self.remember_bytes(key, None, fetcher)

    async def remember_bool(self, key: str, ttl: TTL, fetcher: Fetcher[bool]) -> bool:
        """Return the cached bool; a stored False is a hit."""
        return await self._remember(key, ttl, fetcher, self.get_bool, empty_is_missing=False)

    async def remember_bool_forever(self, key: str, fetcher: Fetcher[bool]) -> bool:
        return await self.remember_bool(key, None, fetcher)

    async def remember_int(self, key: str, ttl: TTL, fetcher: Fetcher[int]) -> int:
        return await self._remember(key, ttl, fetcher, self.get_int)

    async def remember_int_forever(self, key: str, fetcher: Fetcher[int]) -> int:
        return await self.remember_int(key, None, fetcher)

    async def remember_int64(self, key: str, ttl: TTL, fetcher: Fetcher[int]) -> int:
        return await self._remember(key, ttl, fetcher, self.get_int64)

    async def remember_int64_forever(self, key: str, fetcher: Fetcher[int]) -> int:
        return await self.remember_int64(key, None, fetcher)

    async def remember_float32(self, key: str, ttl: TTL, fetcher: Fetcher[float]) -> float:
        return await self._remember(key, ttl, fetcher, self.get_float32)

    async def remember_float32_forever(self, key: str, fetcher: Fetcher[float]) -> float:
        return await self.remember_float32(key, None, fetcher)

    async def remember_float64(self, key: str, ttl: TTL, fetcher: Fetcher[float]) -> float:
        return await self._remember(key, ttl, fetcher, self.get_float64)

    async def remember_float64_forever(self, key: str, fetcher: Fetcher[float]) -> float:
        return await self.remember_float64(key, None, fetcher)
