"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Tag index used for bulk invalidation.
"""

from __future__ import annotations

from collections.abc import Iterable
from threading import Lock


def normalize_tags(tags: str | Iterable[str] | None) -> tuple[str, ...]:
    """
    Return `tags` as a tuple of tag names.

    A bare string is one tag, not a sequence of one-letter tags.
    """
    if tags is None:
        return ()
    if isinstance(tags, str):
        return (tags,)
    return tuple(tags)


class TagIndex:
    """
    In-memory mapping of tag -> keys with a reverse key -> tags map.

    The index is bookkeeping only: it never touches a store, and a key being
    listed under a tag says nothing about whether a value is still cached.
    Tag sets are created lazily and pruned as soon as they become empty.
    """

    def __init__(self) -> None:
        self._keys_by_tag: dict[str, set[str]] = {}
        self._tags_by_key: dict[str, set[str]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys_by_tag)

    def associate(self, tag: str, key: str) -> None:
        with self._lock:
            self._keys_by_tag.setdefault(tag, set()).add(key)
            self._tags_by_key.setdefault(key, set()).add(tag)

    def retag(self, key: str, tags: Iterable[str]) -> None:
        """Replace every tag of `key` with `tags` in one step."""
        new_tags = set(tags)
        with self._lock:
            self._untrack_locked(key)
            for tag in new_tags:
                self._keys_by_tag.setdefault(tag, set()).add(key)
            if new_tags:
                self._tags_by_key[key] = new_tags

    def keys_for(self, tag: str) -> set[str]:
        with self._lock:
            return set(self._keys_by_tag.get(tag, ()))

    def tags_for(self, key: str) -> set[str]:
        with self._lock:
            return set(self._tags_by_key.get(key, ()))

    def tags(self) -> list[str]:
        with self._lock:
            return sorted(self._keys_by_tag)

    def untrack(self, key: str) -> None:
        """Remove `key` from every tag set it belongs to."""
        with self._lock:
            self._untrack_locked(key)

    def drop_tag(self, tag: str) -> None:
        with self._lock:
            keys = self._keys_by_tag.pop(tag, set())
            for key in keys:
                tags = self._tags_by_key.get(key)
                if tags is None:
                    continue
                tags.discard(tag)
                if not tags:
                    del self._tags_by_key[key]

    def clear(self) -> None:
        with self._lock:
            self._keys_by_tag.clear()
            self._tags_by_key.clear()

    def _untrack_locked(self, key: str) -> None:
        for tag in self._tags_by_key.pop(key, set()):
            keys = self._keys_by_tag.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._keys_by_tag[tag]
