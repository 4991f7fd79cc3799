"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared value types for cache entries and route metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

CacheKey: TypeAlias = str
RequestKind = Literal["read", "mutation"]

DEFAULT_TTL_MS = 300_000


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One logical cache row as seen by callers of the engine."""

    key: CacheKey
    value: Any
    ttl_ms: int | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RouteCachePolicy:
    """
    Per-route caching metadata supplied by the routing layer.

    `ttl_ms=None` defers to the engine default. `tags` group cached reads
    for invalidation, and on mutating routes name the groups to invalidate.
    """

    ttl_ms: int | None = None
    tags: tuple[str, ...] = ()

    def merge(
        self,
        *,
        ttl_ms: int | None = None,
        tags: tuple[str, ...] = (),
    ) -> "RouteCachePolicy":
        """Return a policy with `ttl_ms` overridden and `tags` appended."""
        merged = list(self.tags)
        for tag in tags:
            if tag not in merged:
                merged.append(tag)
        return RouteCachePolicy(
            ttl_ms=self.ttl_ms if ttl_ms is None else ttl_ms,
            tags=tuple(merged),
        )


@dataclass(frozen=True, slots=True)
class CacheableRequest:
    """Request identity handed over by the pipeline boundary."""

    method: str
    path: str
    query: dict[str, Any] = field(default_factory=dict)
