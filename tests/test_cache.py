import asyncio
import logging

import pytest

from space_api.cache import NoRefreshFunctionError, TTLCache


def test_set_then_get_returns_same_object(cache):
    value = {"flares": [1, 2, 3]}
    cache.set("k", value)
    assert cache.get("k") is value
    assert cache.has("k")
    assert "k" in cache


def test_get_before_set_is_absent(cache):
    assert cache.get("nope") is None
    assert cache.get("nope", "fallback") == "fallback"
    assert not cache.has("nope")
    assert len(cache) == 0


def test_get_does_not_create_entries(cache):
    cache.get("ghost")
    assert cache.keys() == []
    assert cache.get_status() == {}


def test_falsy_values_are_hits(cache):
    cache.set("empty", [])
    cache.set("none", None)
    assert cache.has("empty")
    assert cache.has("none")
    assert cache.get("none", "fallback") is None


def test_ttl_window_is_half_open(cache, clock):
    cache.set("k", "v", ttl=10)
    clock.advance(9.5)
    assert cache.get("k") == "v"
    clock.advance(0.5)
    assert cache.get("k") is None
    assert not cache.has("k")


def test_default_ttl_applies_when_not_given(cache, clock):
    cache.set("k", "v")
    clock.advance(59)
    assert cache.has("k")
    clock.advance(1)
    assert not cache.has("k")


def test_set_overwrites_and_restarts_clock(cache, clock):
    cache.set("k", "old", ttl=10)
    clock.advance(8)
    cache.set("k", "new", ttl=5)
    clock.advance(4)
    assert cache.get("k") == "new"
    clock.advance(1)
    assert cache.get("k") is None


def test_typed_and_string_keys_share_entries(cache):
    class Key:
        def __str__(self):
            return "typed:1"

    cache.set(Key(), "v")
    assert cache.get("typed:1") == "v"


def test_get_logs_hit_and_miss(cache, caplog):
    caplog.set_level(logging.DEBUG, logger="space_api.cache")
    cache.get("k")
    cache.set("k", 1)
    cache.get("k")
    messages = [r.getMessage() for r in caplog.records]
    assert "Cache miss for k" in messages
    assert "Cache hit for k" in messages


def test_cleanup_removes_exactly_expired_entries(cache, clock):
    cache.set("short", 1, ttl=5)
    cache.set("exact", 2, ttl=10)
    cache.set("long", 3, ttl=100)
    clock.advance(10)

    removed = cache.cleanup()

    assert removed == 2
    assert cache.keys() == ["long"]
    assert cache.peek("short") == {"exists": False}
    assert cache.peek("exact") == {"exists": False}
    assert cache.get("long") == 3
    assert cache.get_status()["long"]["ttl_seconds"] == 100
    assert cache.get_status()["long"]["age_seconds"] == 10


def test_expired_entry_is_kept_until_cleanup(cache, clock):
    cache.set("k", "v", ttl=1)
    clock.advance(2)
    assert cache.get("k") is None
    info = cache.peek("k")
    assert info["exists"] is True
    assert info["is_valid"] is False
    assert info["value"] == "v"


def test_get_status_reports_validity_and_expiry(cache, clock):
    cache.set("fresh", 1, ttl=100)
    cache.set("stale", 2, ttl=10)
    clock.advance(30)

    status = cache.get_status()

    assert status["fresh"] == {
        "age_seconds": 30,
        "is_valid": True,
        "time_until_expiry_seconds": 70,
        "ttl_seconds": 100,
    }
    assert status["stale"]["is_valid"] is False
    assert status["stale"]["time_until_expiry_seconds"] == 0
    # read-only
    assert cache.keys() == ["fresh", "stale"]


def test_delete_and_clear_keep_producers(cache):
    async def producer():
        return 1

    cache.register_refresh_function("a", producer)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.clear()
    assert len(cache) == 0
    assert cache.registered_keys() == ["a"]


def test_refresh_without_producer_raises_and_keeps_entry(cache):
    cache.set("k", "old")

    with pytest.raises(NoRefreshFunctionError) as excinfo:
        asyncio.run(cache.refresh("k"))

    assert str(excinfo.value) == "No refresh function registered for key: k"
    assert isinstance(excinfo.value, KeyError)
    assert cache.get("k") == "old"


def test_register_does_not_populate(cache):
    async def producer():
        return "fresh"

    cache.register_refresh_function("k", producer)
    assert not cache.has("k")


def test_refresh_updates_value_and_resets_age(cache, clock):
    async def producer():
        return "v2"

    cache.set("k", "v1", ttl=60)
    clock.advance(50)
    cache.register_refresh_function("k", producer)

    result = asyncio.run(cache.refresh("k"))

    assert result == "v2"
    assert cache.get("k") == "v2"
    assert cache.get_status()["k"]["age_seconds"] == 0


def test_refresh_uses_registration_ttl(cache, clock):
    async def producer():
        return "v"

    cache.register_refresh_function("k", producer, ttl=500)
    asyncio.run(cache.refresh("k"))
    clock.advance(400)
    assert cache.has("k")
    assert cache.get_status()["k"]["ttl_seconds"] == 500


def test_reregistering_replaces_producer(cache):
    async def first():
        return "first"

    async def second():
        return "second"

    cache.register_refresh_function("k", first)
    cache.register_refresh_function("k", second)

    assert asyncio.run(cache.refresh("k")) == "second"
    assert cache.registered_keys() == ["k"]


def test_refresh_failure_propagates_verbatim_and_keeps_entry(cache, clock):
    error = ConnectionError("upstream down")

    async def producer():
        raise error

    cache.set("k", "old", ttl=60)
    clock.advance(20)
    cache.register_refresh_function("k", producer)

    with pytest.raises(ConnectionError) as excinfo:
        asyncio.run(cache.refresh("k"))

    assert excinfo.value is error
    assert cache.get("k") == "old"
    assert cache.get_status()["k"]["age_seconds"] == 20


def test_refresh_all_isolates_failures(cache, clock, caplog):
    calls = []

    async def fail():
        calls.append("a")
        raise RuntimeError("boom")

    async def succeed():
        calls.append("b")
        return "fresh-b"

    cache.set("a", "old-a", ttl=30)
    clock.advance(10)
    cache.register_refresh_function("a", fail)
    cache.register_refresh_function("b", succeed)

    with caplog.at_level(logging.ERROR, logger="space_api.cache"):
        results = asyncio.run(cache.refresh_all())

    assert calls == ["a", "b"]
    assert results == {"a": False, "b": True}
    assert cache.get("b") == "fresh-b"
    assert cache.get("a") == "old-a"
    # first clock still running for the failed key
    clock.advance(20)
    assert cache.get("a") is None
    assert any("Failed to refresh cache for a" in r.getMessage() for r in caplog.records)


def test_refresh_all_with_no_producers(cache):
    assert asyncio.run(cache.refresh_all()) == {}


def test_wall_clock_default():
    cache = TTLCache()
    cache.set("k", "v")
    assert cache.get("k") == "v"
    assert cache.default_ttl == 3600
