"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: stores/__init__.py.
"""

from .base import KeyValueStore, StoredRow
from .inmemory import InMemoryStore
from .null import NullStore
from .registry import (
    create_remote_backend,
    list_remote_backends,
    register_remote_backend,
)
from .remote import RemoteStoreAdapter

__all__ = [
    "KeyValueStore",
    "StoredRow",
    "InMemoryStore",
    "NullStore",
    "RemoteStoreAdapter",
    "RedisStore",
    "register_remote_backend",
    "create_remote_backend",
    "list_remote_backends",
]


def __getattr__(name: str):
    """Lazily expose the Redis backend so `redis` stays an on-demand import."""
    if name == "RedisStore":
        from .redis import RedisStore

        return RedisStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
