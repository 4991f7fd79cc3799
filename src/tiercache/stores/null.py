"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

No-op shared-tier backend used in memory-only mode.
"""

from __future__ import annotations

from typing import Any


class NullStore:
    """Backend that stores nothing and never fails."""

    backend_id = "null"

    async def get(self, key: str) -> Any | None:
        _ = key
        return None

    async def set(self, key: str, value: Any, *, ttl_ms: int) -> None:
        _ = key
        _ = value
        _ = ttl_ms

    async def delete(self, key: str) -> None:
        _ = key

    async def clear(self) -> None:
        return None
