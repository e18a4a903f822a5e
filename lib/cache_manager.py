"""Centralized cache utilities (library cache stores, settings & key builders)."""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, Protocol, Tuple

import redis.asyncio as aioredis
from cachetools import TLRUCache
from redis.exceptions import RedisError

from lib.user_library.errors import CacheStoreError

logger = logging.getLogger(__name__)

# Library cache settings
LIBRARY_CACHE_VERSION = int(os.getenv("LIBRARY_CACHE_VERSION", "1"))
LIBRARY_CACHE_MAXSIZE = int(os.getenv("LIBRARY_CACHE_MAXSIZE", "256"))
LIBRARY_CACHE_TTL_S = int(os.getenv("LIBRARY_CACHE_TTL_S", "900"))
REDIS_URL = os.getenv("REDIS_URL")


class CacheStore(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl_s: int) -> None: ...

    async def close(self) -> None: ...


class MemoryCacheStore:
    """In-process store; each entry expires after the ttl it was written with."""

    def __init__(self, maxsize: int = LIBRARY_CACHE_MAXSIZE, timer: Callable[[], float] = time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=self._expires_at, timer=timer)

    @staticmethod
    def _expires_at(_key: str, value: Tuple[bytes, int], now: float) -> float:
        return now + value[1]

    async def get(self, key: str) -> bytes | None:
        entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: bytes, ttl_s: int) -> None:
        self._cache[key] = (value, ttl_s)

    async def close(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class RedisCacheStore:
    """Redis-backed store; connection and command errors surface as CacheStoreError."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(aioredis.from_url(url, decode_responses=False, socket_connect_timeout=2))

    async def get(self, key: str) -> bytes | None:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise CacheStoreError(f"Cache read failed for {key}: {e}", meta={"key": key}) from e

    async def set(self, key: str, value: bytes, ttl_s: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_s)
        except RedisError as e:
            raise CacheStoreError(f"Cache write failed for {key}: {e}", meta={"key": key}) from e

    async def close(self) -> None:
        await self.client.aclose()


# Lazy-initialized store
_library_cache: CacheStore | None = None


def get_library_cache() -> CacheStore:
    global _library_cache
    if _library_cache is None:
        if REDIS_URL:
            _library_cache = RedisCacheStore.from_url(REDIS_URL)
            logger.info("[Cache] using redis store")
        else:
            _library_cache = MemoryCacheStore()
            logger.info(f"[Cache] REDIS_URL not set; using in-process store maxsize={LIBRARY_CACHE_MAXSIZE}")
    return _library_cache


async def close_library_cache() -> None:
    global _library_cache
    if _library_cache is not None:
        try:
            await _library_cache.close()
        finally:
            _library_cache = None


def build_library_cache_key(user_id: str) -> str:
    return f"ul:{LIBRARY_CACHE_VERSION}:{user_id}"
