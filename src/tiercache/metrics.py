"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for cache observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

_DOCUMENTATION = {
    "hits": "Cache lookups served from a tier, labelled by tier.",
    "misses": "Cache lookups that missed both tiers.",
    "sets": "Values written to the cache.",
    "invalidated_keys": "Keys removed by tag invalidation.",
    "backend_errors": "Shared-tier failures absorbed as soft misses, labelled by operation.",
}


class CacheMetrics(Protocol):
    """Minimal metrics interface for cache instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpCacheMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusCacheMetrics:
    """
    Prometheus-backed cache metrics adapter.

    Requires `prometheus_client` package. Counter `hits` is exported as
    `tiercache_hits_total` with the default namespace.
    """

    def __init__(self, *, namespace: str = "tiercache", registry: Any | None = None) -> None:
        try:
            from prometheus_client import Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusCacheMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry
        self._counters: dict[str, object] = {}

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        label_names = tuple(sorted((tags or {}).keys()))
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            kwargs: dict[str, Any] = {}
            if self._registry is not None:
                kwargs["registry"] = self._registry
            counter = self._Counter(
                name=name,
                documentation=_DOCUMENTATION.get(name, f"tiercache counter {name}"),
                namespace=self._namespace,
                labelnames=label_names,
                **kwargs,
            )
            self._counters[key] = counter

        if label_names:
            label_values = [str((tags or {})[label]) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)
