"""
cacher: convenience layer over a Redis cache store.

- cacher.client: Scalar cache with typed getters, defaults and remember.
- cacher.entity: JSON entity cache built on the scalar cache.
- cacher.store: Store capability protocol and client factory.
- cacher.codec: Scalar encoding/decoding and TTL handling.

Guidelines:
- The cache is stateless; all state lives in the store.
- The cache never closes the store it is handed.
"""

from shared.errors import (
    CacheException,
    EntityDecodeError,
    EntityEncodeError,
    EntityMarshalError,
    NotFoundError,
    StoreError,
    ValueDecodeError,
    ValueEncodeError,
)
from .client import Cache
from .entity import EntityCache
from .store import CacheStore, connect

__all__ = [
    "Cache",
    "EntityCache",
    "CacheStore",
    "connect",
    "CacheException",
    "NotFoundError",
    "StoreError",
    "ValueDecodeError",
    "ValueEncodeError",
    "EntityMarshalError",
    "EntityEncodeError",
    "EntityDecodeError",
]
