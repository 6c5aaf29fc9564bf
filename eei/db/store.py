"""
Key-value store abstraction.

The core needs very little from persistence: string values with a TTL, an
atomic set-if-absent for leases, and list push/range/trim for append-only
history. RedisStore backs production; MemoryStore backs tests and local runs.
"""

import time
from typing import Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger()


class StoreError(Exception):
    """Store backend unavailable or failed."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int | None = None) -> None: ...

    async def set_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool: ...

    async def delete(self, key: str) -> None: ...

    async def push_front(self, key: str, value: str) -> None: ...

    async def list_range(self, key: str, start: int = 0, stop: int = -1) -> list[str]: ...

    async def trim(self, key: str, start: int, stop: int) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisStore:
    """KeyValueStore over redis.asyncio."""

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self.redis.get(key)
        except RedisError as e:
            raise StoreError(f"GET {key} failed", e) from e

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        try:
            await self.redis.set(key, value, ex=ttl)
        except RedisError as e:
            raise StoreError(f"SET {key} failed", e) from e

    async def set_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool:
        try:
            return bool(await self.redis.set(key, value, ex=ttl, nx=True))
        except RedisError as e:
            raise StoreError(f"SET NX {key} failed", e) from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as e:
            raise StoreError(f"DEL {key} failed", e) from e

    async def push_front(self, key: str, value: str) -> None:
        try:
            await self.redis.lpush(key, value)
        except RedisError as e:
            raise StoreError(f"LPUSH {key} failed", e) from e

    async def list_range(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        try:
            return await self.redis.lrange(key, start, stop)
        except RedisError as e:
            raise StoreError(f"LRANGE {key} failed", e) from e

    async def trim(self, key: str, start: int, stop: int) -> None:
        try:
            await self.redis.ltrim(key, start, stop)
        except RedisError as e:
            raise StoreError(f"LTRIM {key} failed", e) from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.redis.aclose()


def _slice(items: list[str], start: int, stop: int) -> list[str]:
    """Redis-style inclusive range with negative indices."""
    n = len(items)
    if start < 0:
        start = max(n + start, 0)
    if stop < 0:
        stop = n + stop
    if start > stop or start >= n:
        return []
    return items[start:stop + 1]


class MemoryStore:
    """Process-local KeyValueStore. TTLs are honoured lazily on read."""

    def __init__(self):
        self._values: dict[str, tuple[str, float | None]] = {}
        self._lists: dict[str, list[str]] = {}

    def _live(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._values[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._values[key] = (value, expires_at)

    async def set_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool:
        if self._live(key) is not None:
            return False
        await self.set(key, value, ttl)
        return True

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)

    async def push_front(self, key: str, value: str) -> None:
        self._lists.setdefault(key, []).insert(0, value)

    async def list_range(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        return _slice(self._lists.get(key, []), start, stop)

    async def trim(self, key: str, start: int, stop: int) -> None:
        if key in self._lists:
            self._lists[key] = _slice(self._lists[key], start, stop)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass
