"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Deterministic cache key derivation for request identity.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from .types import CacheKey


def _canonical_query(query: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize query parameters into a JSON-ready dict with string keys."""
    if not query:
        return {}
    return {str(name): value for name, value in query.items()}


def derive_key(
    method: str,
    path: str,
    query: Mapping[str, Any] | None = None,
) -> CacheKey:
    """
    Build a stable cache key from method, path and query parameters.

    Query parameter names are sorted before hashing so the same logical
    request maps to one key regardless of parameter order. Values keep their
    received order (``?tag=a&tag=b`` differs from ``?tag=b&tag=a``).
    """
    payload = {
        "method": (method or "GET").strip().upper(),
        "path": path or "",
        "query": _canonical_query(query),
    }
    normalized = json.dumps(payload, ensure_ascii=True, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
