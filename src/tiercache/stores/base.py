"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: stores/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class StoredRow:
    """One stored value with its absolute expiry (`None` never expires)."""
    value: Any
    expires_at_s: float | None = None

    def expired(self, now_s: float) -> bool:
        return self.expires_at_s is not None and self.expires_at_s <= now_s


class KeyValueStore(Protocol):
    """Protocol implemented by every cache tier backend."""
    backend_id: str

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, *, ttl_ms: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...
