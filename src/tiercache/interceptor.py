"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request interception policy: read-through caching and tag invalidation.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from .engine import CacheEngine
from .keys import derive_key
from .tags import normalize_tags
from .types import CacheableRequest, CacheKey, RequestKind, RouteCachePolicy

logger = logging.getLogger("tiercache.interceptor")

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

MUTATING_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_POLICY_ATTR = "__tiercache_policy__"


def route_policy_of(handler: Any) -> RouteCachePolicy:
    """Return the caching metadata attached to `handler` (empty when none)."""
    policy = getattr(handler, _POLICY_ATTR, None)
    if isinstance(policy, RouteCachePolicy):
        return policy
    return RouteCachePolicy()


def _attach(handler: F, *, ttl_ms: int | None = None, tags: tuple[str, ...] = ()) -> F:
    setattr(handler, _POLICY_ATTR, route_policy_of(handler).merge(ttl_ms=ttl_ms, tags=tags))
    return handler


def cache_ttl(ttl_ms: int) -> Callable[[F], F]:
    """
    Set the TTL in milliseconds for cached responses of one handler.

    Example::

        @cache_ttl(60_000)
        async def list_users(): ...
    """
    if ttl_ms < 0:
        raise ValueError(f"ttl_ms must be non-negative, got {ttl_ms}")

    def decorator(handler: F) -> F:
        return _attach(handler, ttl_ms=ttl_ms)

    return decorator


def cache_tags(*tags: str) -> Callable[[F], F]:
    """
    Tag one handler for grouped invalidation.

    On read routes the tags label the cached response; on mutating routes
    they name the groups invalidated before the handler runs.
    """

    def decorator(handler: F) -> F:
        return _attach(handler, tags=tuple(tags))

    return decorator


def cache_route(
    *,
    ttl_ms: int | None = None,
    tags: str | Iterable[str] = (),
) -> Callable[[F], F]:
    """Attach TTL and tags in one decorator."""
    if ttl_ms is not None and ttl_ms < 0:
        raise ValueError(f"ttl_ms must be non-negative, got {ttl_ms}")
    tag_tuple = normalize_tags(tags)

    def decorator(handler: F) -> F:
        return _attach(handler, ttl_ms=ttl_ms, tags=tag_tuple)

    return decorator


class ResponseCacheInterceptor:
    """
    Decide per request whether to read through the cache or invalidate.

    Reads derive a key and short-circuit on a hit. On a miss the handler
    runs, and its result is written back by a background task so the
    response is not held up. Mutations invalidate their tags first and are
    never cached.
    """

    def __init__(
        self,
        engine: CacheEngine,
        *,
        mutating_methods: Iterable[str] = MUTATING_METHODS,
    ) -> None:
        self._engine = engine
        self._mutating = frozenset(m.strip().upper() for m in mutating_methods)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def engine(self) -> CacheEngine:
        return self._engine

    @property
    def pending_writes(self) -> int:
        """Number of background cache writes still running."""
        return len(self._pending)

    def classify(self, method: str) -> RequestKind:
        if (method or "GET").strip().upper() in self._mutating:
            return "mutation"
        return "read"

    def key_for(self, request: CacheableRequest) -> CacheKey:
        return derive_key(request.method, request.path, request.query)

    async def intercept(
        self,
        request: CacheableRequest,
        handler: Callable[[], Awaitable[T]],
        policy: RouteCachePolicy | None = None,
    ) -> T:
        """
        Run `handler` for `request` under the caching policy.

        Handler exceptions propagate unchanged; cache failures never do.
        """
        policy = policy or RouteCachePolicy()

        if self.classify(request.method) == "mutation":
            if policy.tags:
                await self._engine.invalidate_tags(policy.tags)
            return await handler()

        key = self.key_for(request)
        cached = await self._engine.get(key)
        if cached is not None:
            logger.debug("Serving %s %s from cache", request.method, request.path)
            return cached

        result = await handler()
        if result is not None:
            self._schedule_set(key, result, policy)
        return result

    def _schedule_set(self, key: CacheKey, value: Any, policy: RouteCachePolicy) -> None:
        # Snapshot now: the caller may mutate `value` before the write runs.
        try:
            snapshot = copy.deepcopy(value)
        except Exception as exc:
            logger.warning("Skipping cache write for key %s: value cannot be copied: %s", key, exc)
            return
        task = asyncio.get_running_loop().create_task(
            self._engine.set(key, snapshot, policy.ttl_ms, policy.tags)
        )
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)

    def _on_write_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Background cache write was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background cache write failed: %s", exc)

    async def drain(self) -> None:
        """Wait until every scheduled cache write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
