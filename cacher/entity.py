"""
Entity cache: JSON-encoded entities on top of the scalar cache.

Entities are any type pydantic's ``TypeAdapter`` understands (models,
dataclasses, TypedDicts). Single entities and ordered lists of entities are
stored as JSON documents under one key.
"""

from typing import Generic, List, Optional, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from shared.errors import EntityDecodeError, EntityEncodeError, NotFoundError
from shared.logging import get_logger
from .client import Cache, Fetcher, call_fetcher
from .codec import TTL
from .store import CacheStore

E = TypeVar("E")


class EntityCache(Generic[E]):
    """Typed access to cached entities of one shape.

    All transport goes through the wrapped :class:`Cache`.
    """

    def __init__(self, entity_type: Type[E], cache: Cache):
        self.entity_type = entity_type
        self.cache = cache
        self.logger = get_logger("cacher.entity")

        self._adapter: TypeAdapter = TypeAdapter(entity_type)
        self._list_adapter: TypeAdapter = TypeAdapter(List[entity_type])

    @classmethod
    def from_store(cls, entity_type: Type[E], store: CacheStore, **kwargs) -> "EntityCache[E]":
        """Create an entity cache directly from a store client."""
        return cls(entity_type, Cache(store, **kwargs))

    async def has(self, key: str) -> bool:
        return await self.cache.has(key)

    async def forget(self, key: str) -> None:
        await self.cache.forget(key)

    async def forget_with_prefix(self, prefix: str) -> int:
        return await self.cache.forget_with_prefix(prefix)

    def _encode(self, adapter: TypeAdapter, value, key: str) -> bytes:
        try:
            return adapter.dump_json(value, warnings="error")
        except PydanticSerializationError as exc:
            raise EntityEncodeError(exc, {"key": key, "entity": self._type_name}) from exc

    def _decode(self, adapter: TypeAdapter, data: bytes, key: str):
        try:
            return adapter.validate_json(data)
        except ValidationError as exc:
            raise EntityDecodeError(exc, {"key": key, "entity": self._type_name}) from exc

    @property
    def _type_name(self) -> str:
        return getattr(self.entity_type, "__name__", repr(self.entity_type))

    async def get(self, key: str) -> E:
        """Fetch one entity. Raises NotFoundError or EntityDecodeError."""
        data = await self.cache.get_bytes(key)
        return self._decode(self._adapter, data, key)

    async def get_many(self, key: str) -> List[E]:
        """Fetch an ordered list of entities. An absent key raises NotFoundError."""
        data = await self.cache.get_bytes(key)
        return self._decode(self._list_adapter, data, key)

    async def put(self, key: str, value: E, ttl: TTL = None) -> None:
        """Store an entity. A TTL of None or 0 stores it forever."""
        await self.cache.put(key, self._encode(self._adapter, value, key), ttl)

    async def put_forever(self, key: str, value: E) -> None:
        await self.put(key, value, None)

    async def put_many(self, key: str, values: List[E], ttl: TTL = None) -> None:
        """Store an ordered list of entities under one key."""
        await self.cache.put(key, self._encode(self._list_adapter, values, key), ttl)

    async def put_many_forever(self, key: str, values: List[E]) -> None:
        await self.put_many(key, values, None)

    async def _read_for_remember(self, key: str, reader):
        """Read for remember; a missing or undecodable entry reads as None."""
        try:
            return await reader(key)
        except NotFoundError:
            self.logger.debug("Entity cache miss", key=key)
        except EntityDecodeError as exc:
            self.logger.warning("Discarding undecodable entity", key=key, error=str(exc.cause))
        return None

    async def remember(self, key: str, ttl: TTL, fetcher: Fetcher[E]) -> E:
        """Fetch an entity from the cache, computing and storing it on a miss.

        Store failures propagate without invoking fetcher; an entry that
        fails to decode is recomputed and overwritten.
        """
        value: Optional[E] = await self._read_for_remember(key, self.get)
        if value is not None:
            return value

        value = await call_fetcher(fetcher)
        await self.put(key, value, ttl)
        return value

    async def remember_forever(self, key: str, fetcher: Fetcher[E]) -> E:
        return await self.remember(key, None, fetcher)

    async def remember_many(self, key: str, ttl: TTL, fetcher: Fetcher[List[E]]) -> List[E]:
        """List flavour of remember. A cached empty list counts as a hit."""
        values: Optional[List[E]] = await self._read_for_remember(key, self.get_many)
        if values is not None:
            return values

        values = await call_fetcher(fetcher)
        await self.put_many(key, values, ttl)
        return values

    async def remember_many_forever(self, key: str, fetcher: Fetcher[List[E]]) -> List[E]:
        return await self.remember_many(key, None, fetcher)
