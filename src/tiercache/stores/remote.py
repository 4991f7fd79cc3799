"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Soft-failing adapter around the shared cache tier.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..metrics import CacheMetrics, NoOpCacheMetrics
from .base import KeyValueStore
from .null import NullStore

logger = logging.getLogger("tiercache.remote")


class RemoteStoreAdapter:
    """
    Wrap a shared-tier backend so its failures never reach the caller.

    Values are JSON-encoded to bytes on the way in and decoded on the way
    out. Any backend, encode or decode error is logged, counted and turned
    into a miss (`get`) or a `False` result (writes). With a `NullStore`
    backend every call is a no-op that reports success.
    """

    def __init__(
        self,
        backend: KeyValueStore | None = None,
        *,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self._backend: KeyValueStore = backend if backend is not None else NullStore()
        self._metrics = metrics or NoOpCacheMetrics()

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    @property
    def configured(self) -> bool:
        """True when a real shared backend is attached."""
        return not isinstance(self._backend, NullStore)

    def _soft_fail(self, operation: str, key: str | None, exc: BaseException) -> None:
        self._metrics.incr("backend_errors", tags={"operation": operation})
        if key is None:
            logger.warning(
                "Remote cache %s failed, continuing with local tier only: %s",
                operation,
                exc,
            )
        else:
            logger.warning(
                "Remote cache %s failed for key %s, continuing with local tier only: %s",
                operation,
                key,
                exc,
            )

    async def get(self, key: str) -> Any | None:
        try:
            blob = await self._backend.get(key)
        except Exception as exc:
            self._soft_fail("get", key, exc)
            return None
        if blob is None:
            return None
        try:
            if isinstance(blob, (bytes, bytearray)):
                blob = blob.decode("utf-8")
            return json.loads(blob)
        except (UnicodeDecodeError, ValueError) as exc:
            self._soft_fail("decode", key, exc)
            return None

    async def set(self, key: str, value: Any, *, ttl_ms: int) -> bool:
        if not self.configured:
            return True
        try:
            payload = json.dumps(value, ensure_ascii=True).encode("utf-8")
        except (TypeError, ValueError) as exc:
            self._soft_fail("encode", key, exc)
            return False
        try:
            await self._backend.set(key, payload, ttl_ms=ttl_ms)
        except Exception as exc:
            self._soft_fail("set", key, exc)
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            await self._backend.delete(key)
        except Exception as exc:
            self._soft_fail("delete", key, exc)
            return False
        return True

    async def clear(self) -> bool:
        try:
            await self._backend.clear()
        except Exception as exc:
            self._soft_fail("clear", None, exc)
            return False
        return True

    async def aclose(self) -> None:
        """Release the backend client when it exposes `aclose`."""
        close = getattr(self._backend, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as exc:
            self._soft_fail("close", None, exc)
