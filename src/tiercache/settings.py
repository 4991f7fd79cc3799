"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import CacheConfigError
from .types import DEFAULT_TTL_MS


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """
    Construction-time configuration for one cache engine.

    `redis_url=None` selects memory-only mode. `default_ttl_ms` applies when
    a write omits its TTL; zero means entries never expire.
    """

    redis_url: str | None = None
    default_ttl_ms: int = DEFAULT_TTL_MS
    namespace: str = "tiercache"

    def __post_init__(self) -> None:
        if self.default_ttl_ms < 0:
            raise CacheConfigError(
                f"default_ttl_ms must be non-negative, got {self.default_ttl_ms}"
            )
        if not self.namespace.strip():
            raise CacheConfigError("Cache namespace must be non-empty")

    @property
    def memory_only(self) -> bool:
        """True when no shared backend is configured."""
        return not self.redis_url

    @staticmethod
    def from_env() -> "CacheSettings":
        """Load settings from `TIERCACHE_*` environment variables."""
        raw_ttl = _env_first("TIERCACHE_DEFAULT_TTL_MS", default=str(DEFAULT_TTL_MS))
        try:
            default_ttl_ms = int(raw_ttl or DEFAULT_TTL_MS)
        except ValueError as exc:
            raise CacheConfigError(
                f"TIERCACHE_DEFAULT_TTL_MS must be an integer, got {raw_ttl!r}"
            ) from exc
        return CacheSettings(
            redis_url=_env_first("TIERCACHE_REDIS_URL", "TIERCACHE_URL"),
            default_ttl_ms=default_ttl_ms,
            namespace=_env_first("TIERCACHE_NAMESPACE", default="tiercache") or "tiercache",
        )
