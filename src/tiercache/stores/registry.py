"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: stores/registry.py.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import Any
from urllib.parse import urlparse

from ..errors import CacheConfigError
from .base import KeyValueStore
from .inmemory import InMemoryStore
from .null import NullStore

RemoteBackendFactory = Callable[..., KeyValueStore]
"""Factory signature: ``factory(url, *, namespace, client) -> KeyValueStore``."""

_REGISTRY: dict[str, RemoteBackendFactory] = {}
_LOCK = Lock()


def _redis_factory(url: str, *, namespace: str, client: Any | None = None) -> KeyValueStore:
    from .redis import RedisStore

    if client is None:
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise CacheConfigError(
                "Redis cache backend requires `redis` to be installed."
            ) from exc
        client = redis.Redis.from_url(url)
    return RedisStore(client, namespace=namespace)


def _memory_factory(url: str, *, namespace: str, client: Any | None = None) -> KeyValueStore:
    _ = url
    _ = namespace
    _ = client
    return InMemoryStore(backend_id="memory")


def register_remote_backend(
    scheme: str,
    factory: RemoteBackendFactory,
    *,
    overwrite: bool = False,
) -> None:
    """Register one backend factory for a connection URL scheme."""
    key = scheme.strip().lower()
    if not key:
        raise CacheConfigError("Remote backend scheme must be non-empty")

    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise CacheConfigError(f"Remote backend already registered: {key}")
        _REGISTRY[key] = factory


def create_remote_backend(
    url: str | None,
    *,
    namespace: str = "tiercache",
    client: Any | None = None,
) -> KeyValueStore:
    """Resolve a shared-tier backend from its connection URL (`None` -> no-op)."""
    if url is None or not url.strip():
        return NullStore()

    scheme = urlparse(url.strip()).scheme.lower()
    with _LOCK:
        factory = _REGISTRY.get(scheme)
    if factory is None:
        raise CacheConfigError(f"Unknown remote cache backend scheme '{scheme}' in {url!r}")
    return factory(url.strip(), namespace=namespace, client=client)


def list_remote_backends() -> list[str]:
    """List registered URL schemes."""
    with _LOCK:
        return sorted(_REGISTRY.keys())


for _scheme in ("redis", "rediss", "unix"):
    register_remote_backend(_scheme, _redis_factory)
register_remote_backend("memory", _memory_factory)
