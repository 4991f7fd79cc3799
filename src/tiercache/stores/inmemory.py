"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: stores/inmemory.py.
"""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from threading import Lock
from typing import Any

from .base import KeyValueStore, StoredRow


class InMemoryStore(KeyValueStore):
    """
    Process-local TTL-aware store used as the fast tier.

    Expired rows are dropped lazily on read and by `purge_expired`. A
    `ttl_ms` of zero stores the row without expiry. Values are deep-copied
    on the way in and out, so callers never share state with a cached row.
    """

    def __init__(
        self,
        *,
        backend_id: str = "inmemory",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend_id = backend_id
        self._clock = clock
        self._rows: dict[str, StoredRow] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for row in self._rows.values() if not row.expired(now))

    async def get(self, key: str) -> Any | None:
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return None
            if row.expired(self._clock()):
                self._rows.pop(key, None)
                return None
            value = row.value
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, *, ttl_ms: int) -> None:
        if ttl_ms < 0:
            raise ValueError(f"ttl_ms must be non-negative, got {ttl_ms}")
        expires_at = self._clock() + ttl_ms / 1000.0 if ttl_ms > 0 else None
        value = copy.deepcopy(value)
        with self._lock:
            self._rows[key] = StoredRow(value=value, expires_at_s=expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._rows.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._rows.clear()

    def purge_expired(self) -> list[str]:
        """Drop every expired row and return the removed keys."""
        now = self._clock()
        with self._lock:
            expired = [key for key, row in self._rows.items() if row.expired(now)]
            for key in expired:
                del self._rows[key]
        return expired
