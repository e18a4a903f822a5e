"""
Read-through / write-through cache around the library pipeline.

The key depends on the user id only. A rotated token keeps hitting a live
entry, so an entry is at most ``ttl_s`` seconds stale.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from lib.cache_manager import LIBRARY_CACHE_TTL_S, CacheStore, build_library_cache_key
from lib.user_library.models import TrackIndex, serialize_index

logger = logging.getLogger(__name__)

ComputeIndex = Callable[[str, "str | None"], Awaitable[TrackIndex]]


class LibraryCacheGate:
    def __init__(self, store: CacheStore, compute: ComputeIndex, ttl_s: int = LIBRARY_CACHE_TTL_S):
        self.store = store
        self.compute = compute
        self.ttl_s = ttl_s

    async def get_or_compute(self, user_id: str, token: str | None) -> bytes:
        """Return the serialized index for ``user_id``, computing it on a miss."""
        payload, _ = await self.get_or_compute_with_status(user_id, token)
        return payload

    async def get_or_compute_with_status(self, user_id: str, token: str | None) -> tuple[bytes, bool]:
        """Same as ``get_or_compute`` but also reports whether the cache was hit."""
        key = build_library_cache_key(user_id)
        cached = await self.store.get(key)
        if cached is not None:
            logger.info(f"[CacheGate] hit key={key} bytes={len(cached)}")
            return cached, True

        # Failures propagate before anything is written
        index = await self.compute(user_id, token)
        payload = serialize_index(index)
        await self.store.set(key, payload, self.ttl_s)
        logger.info(f"[CacheGate] miss key={key} stored bytes={len(payload)} ttl_s={self.ttl_s}")
        return payload, False
