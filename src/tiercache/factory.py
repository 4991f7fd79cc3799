"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for building cache engines from settings or environment.
"""

from __future__ import annotations

import logging
from typing import Any

from .engine import CacheEngine
from .metrics import CacheMetrics, NoOpCacheMetrics
from .settings import CacheSettings
from .stores.inmemory import InMemoryStore
from .stores.registry import create_remote_backend
from .stores.remote import RemoteStoreAdapter
from .tags import TagIndex

logger = logging.getLogger("tiercache.factory")


def create_cache_engine(
    settings: CacheSettings | None = None,
    *,
    redis_client: Any | None = None,
    metrics: CacheMetrics | None = None,
) -> CacheEngine:
    """
    Build a `CacheEngine` with its own local store and tag index.

    The shared tier is resolved from `settings.redis_url` through the remote
    backend registry. When `redis_client` is supplied it is used instead of
    building a client from the URL.
    """
    settings = settings or CacheSettings()
    metrics = metrics or NoOpCacheMetrics()

    backend = create_remote_backend(
        settings.redis_url,
        namespace=settings.namespace,
        client=redis_client,
    )
    remote = RemoteStoreAdapter(backend, metrics=metrics)
    if remote.configured:
        logger.info(
            "Shared cache tier enabled (backend=%s, namespace=%s)",
            backend.backend_id,
            settings.namespace,
        )
    else:
        logger.info("Shared cache URL not provided, using memory-only cache")

    return CacheEngine(
        InMemoryStore(),
        remote,
        tag_index=TagIndex(),
        default_ttl_ms=settings.default_ttl_ms,
        metrics=metrics,
    )


def create_cache_engine_from_env(
    *,
    redis_client: Any | None = None,
    metrics: CacheMetrics | None = None,
) -> CacheEngine:
    """Build a `CacheEngine` from `TIERCACHE_*` environment variables."""
    return create_cache_engine(
        CacheSettings.from_env(),
        redis_client=redis_client,
        metrics=metrics,
    )
