"""
Shared fixtures: an in-memory stand-in for the Redis store.
"""

import re
from typing import Dict, List, Optional, Tuple

import pytest
from redis.exceptions import ResponseError

from cacher import Cache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Translate a Redis glob (with backslash escapes) to a regex."""
    parts: List[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(ch))
            else:
                parts.append(pattern[i:end + 1])
                i = end + 1
                continue
        else:
            parts.append(re.escape(ch))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


class FakeRedis:
    """Subset of redis.asyncio.Redis backed by a dict, with PX expiry."""

    def __init__(self, clock: Optional[FakeClock] = None, decode_responses: bool = False):
        self.clock = clock or FakeClock()
        self.decode_responses = decode_responses
        self.data: Dict[str, Tuple[bytes, Optional[float]]] = {}
        self.commands: List[Tuple[str, str]] = []
        self.closed = False

    @staticmethod
    def _name(name) -> str:
        return name.decode("utf-8") if isinstance(name, bytes) else str(name)

    def _out(self, value: bytes):
        return value.decode("utf-8") if self.decode_responses else value

    def _lookup(self, name: str) -> Optional[bytes]:
        entry = self.data.get(name)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self.data[name]
            return None
        return value

    def ttl_ms(self, name: str) -> Optional[float]:
        """Remaining lifetime in milliseconds, None when stored forever."""
        _, expires_at = self.data[name]
        if expires_at is None:
            return None
        return (expires_at - self.clock()) * 1000

    async def exists(self, *names) -> int:
        self.commands.append(("exists", self._name(names[0])))
        return sum(1 for n in names if self._lookup(self._name(n)) is not None)

    async def get(self, name):
        self.commands.append(("get", self._name(name)))
        value = self._lookup(self._name(name))
        return None if value is None else self._out(value)

    async def set(self, name, value, px: Optional[int] = None):
        self.commands.append(("set", self._name(name)))
        if isinstance(value, str):
            value = value.encode("utf-8")
        expires_at = self.clock() + px / 1000 if px else None
        self.data[self._name(name)] = (bytes(value), expires_at)
        return True

    async def delete(self, *names) -> int:
        removed = 0
        for n in names:
            self.commands.append(("delete", self._name(n)))
            if self._lookup(self._name(n)) is not None:
                del self.data[self._name(n)]
                removed += 1
        return removed

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        regex = _glob_to_regex(match or "*")
        for name in list(self.data):
            if self._lookup(name) is not None and regex.fullmatch(name):
                yield self._out(name.encode("utf-8"))

    async def _add(self, name, amount: int) -> int:
        key = self._name(name)
        current = self._lookup(key)
        try:
            number = int(current) if current is not None else 0
        except ValueError:
            raise ResponseError("value is not an integer or out of range")
        number += amount
        expires_at = self.data[key][1] if current is not None else None
        self.data[key] = (str(number).encode("ascii"), expires_at)
        return number

    async def incrby(self, name, amount: int = 1) -> int:
        self.commands.append(("incrby", self._name(name)))
        return await self._add(name, amount)

    async def decrby(self, name, amount: int = 1) -> int:
        self.commands.append(("decrby", self._name(name)))
        return await self._add(name, -amount)

    async def aclose(self):
        self.closed = True


class FetcherSpy:
    """Fetcher that records how often it ran."""

    def __init__(self, value, error: Optional[Exception] = None):
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture
def clock():
    """Controllable clock shared with the fake store."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory Redis stand-in."""
    return FakeRedis(clock)


@pytest.fixture
def cache(store):
    """Scalar cache over the fake store."""
    return Cache(store)


@pytest.fixture
def make_fetcher():
    """Factory for counting fetchers."""
    return FetcherSpy


@pytest.fixture
def text_store(clock):
    """Fake store that answers with str, like decode_responses=True clients."""
    return FakeRedis(clock, decode_responses=True)
