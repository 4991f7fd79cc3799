"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: stores/redis.py.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..errors import CacheBackendError

logger = logging.getLogger("tiercache.stores.redis")

_CLEAR_BATCH_SIZE = 500
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


class RedisStore:
    """
    Redis-backed shared tier for multi-process deployments.

    Keys are namespaced as ``{namespace}:{key}`` so several tenants can
    share one Redis database. Values are opaque bytes.

    Requires ``redis.asyncio`` (``pip install redis``).

    Args:
        redis: An ``redis.asyncio.Redis`` client instance.
        namespace: Key prefix for namespacing.
    """

    backend_id = "redis"

    def __init__(self, redis: Any, *, namespace: str = "tiercache") -> None:
        self._redis = redis
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _match_pattern(self) -> str:
        """SCAN pattern matching exactly this namespace."""
        return _GLOB_SPECIAL.sub(r"\\\1", self._namespace) + ":*"

    def _key(self, key: str) -> str:
        """Redis key for one cache key under this namespace."""
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> bytes | None:
        try:
            blob = await self._redis.get(self._key(key))
        except Exception as exc:
            raise CacheBackendError(self.backend_id, "get", str(exc)) from exc
        if blob is None:
            return None
        if isinstance(blob, str):
            return blob.encode("utf-8")
        return blob

    async def set(self, key: str, value: bytes, *, ttl_ms: int) -> None:
        try:
            if ttl_ms > 0:
                await self._redis.set(self._key(key), value, px=int(ttl_ms))
            else:
                await self._redis.set(self._key(key), value)
        except Exception as exc:
            raise CacheBackendError(self.backend_id, "set", str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except Exception as exc:
            raise CacheBackendError(self.backend_id, "delete", str(exc)) from exc

    async def clear(self) -> None:
        """Remove every key under this namespace, leaving other tenants intact."""
        removed = 0
        batch: list[Any] = []
        try:
            async for redis_key in self._redis.scan_iter(match=self._match_pattern()):
                batch.append(redis_key)
                if len(batch) >= _CLEAR_BATCH_SIZE:
                    removed += await self._redis.delete(*batch)
                    batch = []
            if batch:
                removed += await self._redis.delete(*batch)
        except Exception as exc:
            raise CacheBackendError(self.backend_id, "clear", str(exc)) from exc
        logger.debug("Cleared %d redis keys under namespace %s", removed, self._namespace)

    async def aclose(self) -> None:
        """Release the underlying client connection pool."""
        close = getattr(self._redis, "aclose", None) or getattr(self._redis, "close", None)
        if close is not None:
            await close()
