"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Two-tier response cache with tag-based invalidation.

Quick start::

    from tiercache import CacheableRequest, RouteCachePolicy, ResponseCacheInterceptor
    from tiercache import create_cache_engine

    engine = create_cache_engine()
    interceptor = ResponseCacheInterceptor(engine)

    users = await interceptor.intercept(
        CacheableRequest("GET", "/users", {"limit": "10"}),
        load_users,
        RouteCachePolicy(ttl_ms=60_000, tags=("users",)),
    )
"""

from .engine import CacheEngine
from .errors import CacheBackendError, CacheConfigError, CacheError
from .factory import create_cache_engine, create_cache_engine_from_env
from .interceptor import (
    MUTATING_METHODS,
    ResponseCacheInterceptor,
    cache_route,
    cache_tags,
    cache_ttl,
    route_policy_of,
)
from .keys import derive_key
from .metrics import CacheMetrics, NoOpCacheMetrics, PrometheusCacheMetrics
from .settings import CacheSettings
from .stores import (
    InMemoryStore,
    KeyValueStore,
    NullStore,
    RemoteStoreAdapter,
    create_remote_backend,
    list_remote_backends,
    register_remote_backend,
)
from .tags import TagIndex
from .types import (
    DEFAULT_TTL_MS,
    CacheableRequest,
    CacheEntry,
    CacheKey,
    RouteCachePolicy,
)

__all__ = [
    "CacheEngine",
    "CacheError",
    "CacheConfigError",
    "CacheBackendError",
    "create_cache_engine",
    "create_cache_engine_from_env",
    "MUTATING_METHODS",
    "ResponseCacheInterceptor",
    "cache_route",
    "cache_tags",
    "cache_ttl",
    "route_policy_of",
    "derive_key",
    "CacheMetrics",
    "NoOpCacheMetrics",
    "PrometheusCacheMetrics",
    "CacheSettings",
    "InMemoryStore",
    "KeyValueStore",
    "NullStore",
    "RemoteStoreAdapter",
    "create_remote_backend",
    "list_remote_backends",
    "register_remote_backend",
    "TagIndex",
    "DEFAULT_TTL_MS",
    "CacheableRequest",
    "CacheEntry",
    "CacheKey",
    "RouteCachePolicy",
]
