from __future__ import annotations

import asyncio
import logging

import pytest

from tiercache import (
    CacheConfigError,
    CacheEngine,
    CacheEntry,
    InMemoryStore,
    RemoteStoreAdapter,
    TagIndex,
)


def run_async(coro):
    return asyncio.run(coro)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class SpyStore(InMemoryStore):
    """In-memory backend that records calls and TTLs."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.calls: list[str] = []
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        self.calls.append(f"get:{key}")
        return await super().get(key)

    async def set(self, key, value, *, ttl_ms):
        self.calls.append(f"set:{key}")
        self.ttls[key] = ttl_ms
        await super().set(key, value, ttl_ms=ttl_ms)


class BrokenStore:
    backend_id = "broken"

    async def get(self, key):
        raise ConnectionError("down")

    async def set(self, key, value, *, ttl_ms):
        raise ConnectionError("down")

    async def delete(self, key):
        raise ConnectionError("down")

    async def clear(self):
        raise ConnectionError("down")

    def purge_expired(self):
        raise RuntimeError("down")


class RecordingMetrics:
    def __init__(self) -> None:
        self.counters: list[tuple[str, int, dict[str, str]]] = []

    def incr(self, name, value=1, *, tags=None):
        self.counters.append((name, value, dict(tags or {})))

    def total(self, name: str) -> int:
        return sum(value for counter, value, _ in self.counters if counter == name)


def _engine(*, default_ttl_ms: int = 1000, clock=None, remote_backend=None, metrics=None):
    local = SpyStore(clock=clock) if clock else SpyStore()
    remote_backend = remote_backend if remote_backend is not None else SpyStore(backend_id="memory")
    engine = CacheEngine(
        local,
        RemoteStoreAdapter(remote_backend, metrics=metrics),
        tag_index=TagIndex(),
        default_ttl_ms=default_ttl_ms,
        metrics=metrics,
    )
    return engine, local, remote_backend


def test_set_then_get_round_trip():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k", {"msg": "hello"})
        assert await engine.get("k") == {"msg": "hello"}

    run_async(scenario())


def test_local_hit_never_reaches_remote():
    async def scenario() -> None:
        engine, _, remote = _engine()
        await engine.set("k", "v")
        remote.calls.clear()
        assert await engine.get("k") == "v"
        assert remote.calls == []

    run_async(scenario())


def test_remote_hit_warms_local_with_default_ttl():
    async def scenario() -> None:
        engine, local, remote = _engine(default_ttl_ms=777)
        await engine.set("k", [1, 2], ttl_ms=50_000)
        await local.delete("k")

        assert await engine.get("k") == [1, 2]
        assert local.ttls["k"] == 777
        remote.calls.clear()
        assert await engine.get("k") == [1, 2]
        assert remote.calls == []

    run_async(scenario())


def test_miss_in_both_tiers_returns_none():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        engine, _, _ = _engine(metrics=metrics)
        assert await engine.get("nothing") is None
        assert metrics.total("misses") == 1

    run_async(scenario())


def test_omitted_ttl_uses_engine_default():
    async def scenario() -> None:
        engine, local, remote = _engine(default_ttl_ms=4321)
        await engine.set("k", "v")
        assert local.ttls["k"] == 4321
        assert remote.ttls["k"] == 4321
        await engine.set("k2", "v", ttl_ms=10)
        assert local.ttls["k2"] == 10

    run_async(scenario())


def test_entry_expires_after_ttl():
    async def scenario() -> None:
        clock = FakeClock()
        engine, _, _ = _engine(clock=clock, remote_backend=SpyStore(backend_id="memory", clock=clock))
        await engine.set("k", "v", ttl_ms=1)
        clock.advance_ms(2)
        assert await engine.get("k") is None

    run_async(scenario())


def test_none_values_and_negative_ttls_are_refused(caplog):
    async def scenario() -> None:
        engine, local, _ = _engine()
        await engine.set("none", None, tags=["t"])
        await engine.set("neg", "v", ttl_ms=-5, tags=["t"])
        assert await engine.get("none") is None
        assert await engine.get("neg") is None
        assert engine.tag_index.keys_for("t") == set()
        assert "set:none" not in local.calls

    with caplog.at_level(logging.WARNING, logger="tiercache.engine"):
        run_async(scenario())
    assert len(caplog.records) == 2


def test_tag_invalidation_removes_tagged_keys_only():
    async def scenario() -> None:
        engine, local, remote = _engine()
        await engine.set("k1", "v1", tags=["t"])
        await engine.set("k2", "v2", tags=["t"])
        await engine.set("k3", "v3")

        removed = await engine.invalidate_tags(["t"])

        assert removed == 2
        assert await engine.get("k1") is None
        assert await engine.get("k2") is None
        assert await engine.get("k3") == "v3"
        assert await remote.get("k1") is None
        assert engine.tag_index.tags() == []

    run_async(scenario())


def test_invalidating_twice_and_unknown_tags_are_no_ops():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k1", "v1", tags=["t"])
        assert await engine.invalidate_tags(["t"]) == 1
        assert await engine.invalidate_tags(["t"]) == 0
        assert await engine.invalidate_tags(["unknown"]) == 0

    run_async(scenario())


def test_key_under_several_tags_is_removed_once():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k", "v", tags=["users", "dashboard"])
        assert await engine.invalidate_tags(["users", "dashboard"]) == 1
        assert engine.tag_index.tags() == []

    run_async(scenario())


def test_direct_delete_keeps_tag_index_accurate():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k1", "v1", tags=["t"])
        await engine.set("k2", "v2", tags=["t"])
        await engine.delete("k1")
        assert engine.tag_index.keys_for("t") == {"k2"}
        await engine.delete("k1")
        await engine.delete("never-set")
        assert await engine.get("k2") == "v2"

    run_async(scenario())


def test_reset_replaces_tags():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k", "v1", tags=["old"])
        await engine.set("k", "v2", tags=["new"])
        await engine.invalidate_tags(["old"])
        assert await engine.get("k") == "v2"
        await engine.invalidate_tags(["new"])
        assert await engine.get("k") is None

    run_async(scenario())


def test_set_entry_accepts_records():
    async def scenario() -> None:
        engine, local, _ = _engine()
        await engine.set_entry(CacheEntry(key="k", value="v", ttl_ms=5, tags=("t",)))
        assert local.ttls["k"] == 5
        assert engine.tag_index.keys_for("t") == {"k"}

    run_async(scenario())


def test_clear_empties_entries_and_tags():
    async def scenario() -> None:
        engine, _, remote = _engine()
        await engine.set("k1", "v1", tags=["t"])
        await engine.set("k2", "v2")
        await engine.clear()
        assert await engine.get("k1") is None
        assert await engine.get("k2") is None
        assert len(remote) == 0
        assert len(engine.tag_index) == 0

    run_async(scenario())


def test_remote_outage_degrades_to_local_only():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        engine, _, _ = _engine(remote_backend=BrokenStore(), metrics=metrics)
        await engine.set("k", "v", tags=["t"])
        assert await engine.get("k") == "v"
        assert await engine.get("missing") is None
        await engine.invalidate_tags(["t"])
        assert await engine.get("k") is None
        await engine.clear()
        assert metrics.total("backend_errors") >= 4

    run_async(scenario())


def test_local_failure_is_logged_and_remote_still_written(caplog):
    async def scenario() -> None:
        remote = SpyStore(backend_id="memory")
        engine = CacheEngine(BrokenStore(), RemoteStoreAdapter(remote), default_ttl_ms=100)
        await engine.set("k", "v", tags=["t"])
        assert await remote.get("k") is not None
        assert await engine.get("k") == "v"
        await engine.delete("k")
        assert await engine.get("k") is None
        await engine.clear()
        assert engine.purge_expired() == []

    with caplog.at_level(logging.WARNING, logger="tiercache.engine"):
        run_async(scenario())
    assert any("Local cache set failed" in rec.getMessage() for rec in caplog.records)


def test_purge_expired_untracks_keys():
    async def scenario() -> None:
        clock = FakeClock()
        engine, _, _ = _engine(clock=clock)
        await engine.set("short", "v", ttl_ms=10, tags=["t"])
        await engine.set("long", "v", ttl_ms=10_000, tags=["t"])
        clock.advance_ms(20)
        assert engine.purge_expired() == ["short"]
        assert engine.tag_index.keys_for("t") == {"long"}

    run_async(scenario())


def test_close_clears_and_context_manager_closes():
    async def scenario() -> None:
        async with CacheEngine(default_ttl_ms=0) as engine:
            await engine.set("k", "v", tags=["t"])
            assert await engine.get("k") == "v"
        assert await engine.get("k") is None
        assert len(engine.tag_index) == 0

    run_async(scenario())


def test_hit_metrics_are_labelled_by_tier():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        engine, local, _ = _engine(metrics=metrics)
        await engine.set("k", "v")
        await engine.get("k")
        await local.delete("k")
        await engine.get("k")
        tiers = [tags["tier"] for name, _, tags in metrics.counters if name == "hits"]
        assert tiers == ["local", "remote"]

    run_async(scenario())


def test_independent_engines_do_not_share_tags():
    async def scenario() -> None:
        first = CacheEngine()
        second = CacheEngine()
        await first.set("k", "one", tags=["t"])
        await second.set("k", "two", tags=["t"])
        await first.invalidate_tags(["t"])
        assert await first.get("k") is None
        assert await second.get("k") == "two"

    run_async(scenario())


def test_negative_default_ttl_is_a_config_error():
    with pytest.raises(CacheConfigError):
        CacheEngine(default_ttl_ms=-1)


def test_single_string_tag_is_one_tag():
    async def scenario() -> None:
        engine, _, _ = _engine()
        await engine.set("k", "v", tags="users")
        assert engine.tag_index.tags() == ["users"]
        assert engine.tag_index.keys_for("users") == {"k"}

        assert await engine.invalidate_tags("users") == 1
        assert await engine.get("k") is None
        assert engine.tag_index.tags() == []

    run_async(scenario())


def test_cached_values_are_isolated_from_callers():
    async def scenario() -> None:
        engine, _, _ = _engine()
        payload = {"ids": [1, 2, 3]}
        await engine.set("k", payload)
        payload["ids"].append(4)

        first = await engine.get("k")
        assert first == {"ids": [1, 2, 3]}
        first["ids"].append(99)
        assert await engine.get("k") == {"ids": [1, 2, 3]}

    run_async(scenario())
