"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Two-tier cache engine with tag-based invalidation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .errors import CacheConfigError
from .metrics import CacheMetrics, NoOpCacheMetrics
from .stores.base import KeyValueStore
from .stores.inmemory import InMemoryStore
from .stores.remote import RemoteStoreAdapter
from .tags import TagIndex, normalize_tags
from .types import DEFAULT_TTL_MS, CacheEntry, CacheKey

logger = logging.getLogger("tiercache.engine")


class CacheEngine:
    """
    Coordinate the local tier, the shared tier and the tag index.

    The local tier is the authoritative fast path: reads that hit it never
    reach the shared tier, and writes land there first. The shared tier is
    best-effort through `RemoteStoreAdapter`. No method raises for a store
    failure; the worst outcome is a cache miss.

    Args:
        local: Process-local store. Defaults to a fresh `InMemoryStore`.
        remote: Shared-tier adapter. Defaults to memory-only mode.
        tag_index: Tag bookkeeping owned by this engine.
        default_ttl_ms: TTL applied when a write omits one (0 = no expiry).
        metrics: Counter sink for hits, misses and invalidations.
    """

    def __init__(
        self,
        local: KeyValueStore | None = None,
        remote: RemoteStoreAdapter | None = None,
        *,
        tag_index: TagIndex | None = None,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        metrics: CacheMetrics | None = None,
    ) -> None:
        if default_ttl_ms < 0:
            raise CacheConfigError(f"default_ttl_ms must be non-negative, got {default_ttl_ms}")
        self._metrics = metrics or NoOpCacheMetrics()
        self._local: KeyValueStore = local if local is not None else InMemoryStore()
        self._remote = remote if remote is not None else RemoteStoreAdapter(metrics=self._metrics)
        self._tags = tag_index if tag_index is not None else TagIndex()
        self._default_ttl_ms = default_ttl_ms

    @property
    def default_ttl_ms(self) -> int:
        return self._default_ttl_ms

    @property
    def local(self) -> KeyValueStore:
        return self._local

    @property
    def remote(self) -> RemoteStoreAdapter:
        return self._remote

    @property
    def tag_index(self) -> TagIndex:
        return self._tags

    async def __aenter__(self) -> "CacheEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get(self, key: CacheKey) -> Any | None:
        """Return the cached value for `key`, or `None` on a miss."""
        try:
            value = await self._local.get(key)
        except Exception as exc:
            logger.warning("Local cache get failed for key %s: %s", key, exc)
            value = None
        if value is not None:
            self._metrics.incr("hits", tags={"tier": "local"})
            return value

        value = await self._remote.get(key)
        if value is None:
            self._metrics.incr("misses")
            return None

        # The remote tier does not expose the original TTL.
        try:
            await self._local.set(key, value, ttl_ms=self._default_ttl_ms)
        except Exception as exc:
            logger.warning("Local cache warm failed for key %s: %s", key, exc)
        self._metrics.incr("hits", tags={"tier": "remote"})
        logger.debug("Cache hit in remote tier for key %s", key)
        return value

    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl_ms: int | None = None,
        tags: str | Iterable[str] | None = None,
    ) -> None:
        """
        Store `value` under `key` in both tiers and record its tags.

        A later `set` of the same key replaces its value, TTL and tags.
        `None` values and negative TTLs are refused with a warning.
        """
        if value is None:
            logger.warning("Refusing to cache None for key %s", key)
            return
        use_ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if use_ttl < 0:
            logger.warning("Refusing to cache key %s with negative ttl_ms=%s", key, use_ttl)
            return

        try:
            await self._local.set(key, value, ttl_ms=use_ttl)
            logger.debug("Cache set in local tier for key %s", key)
        except Exception as exc:
            logger.warning("Local cache set failed for key %s: %s", key, exc)

        stored_remote = await self._remote.set(key, value, ttl_ms=use_ttl)
        if stored_remote and self._remote.configured:
            logger.debug("Cache set in remote tier for key %s", key)

        self._tags.retag(key, normalize_tags(tags))
        self._metrics.incr("sets")

    async def set_entry(self, entry: CacheEntry) -> None:
        """Store one `CacheEntry` record."""
        await self.set(entry.key, entry.value, entry.ttl_ms, entry.tags)

    async def delete(self, key: CacheKey) -> None:
        """Remove `key` from both tiers and the tag index; missing keys are fine."""
        try:
            await self._local.delete(key)
        except Exception as exc:
            logger.warning("Local cache delete failed for key %s: %s", key, exc)

        await self._remote.delete(key)
        self._tags.untrack(key)
        logger.debug("Cache deleted for key %s", key)

    async def invalidate_tags(self, tags: str | Iterable[str]) -> int:
        """
        Delete every key recorded under each tag, then forget the tags.

        `tags` may be one tag name or an iterable of names. Keys are removed
        one by one; a failing key never stops the rest.
        Returns the number of keys removed.
        """
        removed = 0
        for tag in dict.fromkeys(normalize_tags(tags)):
            keys = self._tags.keys_for(tag)
            for key in keys:
                await self.delete(key)
                removed += 1
            self._tags.drop_tag(tag)
            if keys:
                logger.debug("Cache invalidated %d keys for tag %s", len(keys), tag)
        if removed:
            self._metrics.incr("invalidated_keys", removed)
        return removed

    async def clear(self) -> None:
        """Empty both tiers and reset the tag index."""
        try:
            await self._local.clear()
        except Exception as exc:
            logger.warning("Local cache clear failed: %s", exc)

        await self._remote.clear()
        self._tags.clear()
        logger.info("All cache cleared")

    def purge_expired(self) -> list[CacheKey]:
        """Sweep expired local rows and drop them from the tag index."""
        purge = getattr(self._local, "purge_expired", None)
        if purge is None:
            return []
        try:
            expired = purge()
        except Exception as exc:
            logger.warning("Local cache purge failed: %s", exc)
            return []
        for key in expired:
            self._tags.untrack(key)
        return expired

    async def close(self) -> None:
        """Clear all entries and release the shared-tier client."""
        await self.clear()
        await self._remote.aclose()
