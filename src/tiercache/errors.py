"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception hierarchy for the caching layer.
"""

from __future__ import annotations


class CacheError(RuntimeError):
    """Base class for cache failures."""


class CacheConfigError(CacheError):
    """Raised when settings or backend selection are invalid."""


class CacheBackendError(CacheError):
    """Raised by a key/value backend when one operation fails."""

    def __init__(self, backend_id: str, operation: str, message: str) -> None:
        self.backend_id = backend_id
        self.operation = operation
        super().__init__(f"{backend_id} {operation} failed: {message}")
