"""Tests for the TTL/LRU response cache."""

import pytest

from blockpool_client.rpc.cache import CacheManager, make_cache_key


def test_value_fresh_before_ttl_and_absent_after(clock):
    """Test a balance entry survives 5s and is gone after 15s."""
    cache = CacheManager(clock=clock)
    cache.set("get_balance:sei1abc", {"amount": "100"}, 10_000)

    clock.advance(5)
    assert cache.get("get_balance:sei1abc") == {"amount": "100"}

    clock.advance(10)
    assert cache.get("get_balance:sei1abc") is None
    assert len(cache) == 0


def test_expiry_boundary_is_exclusive(clock):
    """Test the entry is absent exactly at created_at + ttl."""
    cache = CacheManager(clock=clock)
    cache.set("k", "v", 1_000)

    clock.advance(0.5)
    assert cache.get("k") == "v"

    clock.advance(0.5)
    assert cache.get("k") is None


def test_default_ttl_applies(clock):
    """Test set without a ttl uses the configured default."""
    cache = CacheManager(default_ttl_ms=2_000, clock=clock)
    cache.set("k", 1)

    clock.advance(1.5)
    assert "k" in cache
    clock.advance(0.5)
    assert "k" not in cache


def test_lru_eviction_drops_least_recently_used(clock):
    """Test inserting max_size + 1 keys evicts only the oldest."""
    cache = CacheManager(max_size=3, clock=clock)
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())

    cache.set("d", "D")

    assert len(cache) == 3
    assert cache.get("a") is None
    assert cache.get("b") == "B"
    assert cache.get("c") == "C"
    assert cache.get("d") == "D"


def test_access_promotes_entry(clock):
    """Test reading a key protects it from eviction."""
    cache = CacheManager(max_size=3, clock=clock)
    for key in ("a", "b", "c"):
        cache.set(key, key)

    assert cache.get("a") == "a"
    cache.set("d", "d")

    assert "a" in cache
    assert "b" not in cache


def test_overwrite_at_capacity_does_not_evict(clock):
    """Test updating an existing key keeps every other entry."""
    cache = CacheManager(max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.set("a", 10)

    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_invalidate_by_method(clock):
    """Test method-scoped invalidation leaves other methods alone."""
    cache = CacheManager(clock=clock)
    cache.set(make_cache_key("get_balance", {"address": "sei1a"}), 1)
    cache.set(make_cache_key("get_balance", {"address": "sei1b"}), 2)
    cache.set(make_cache_key("get_latest_block", {}), 3)

    assert cache.invalidate("get_balance") == 2
    assert len(cache) == 1


def test_cleanup_expired(clock):
    """Test bulk removal of expired entries."""
    cache = CacheManager(clock=clock)
    cache.set("short", 1, 1_000)
    cache.set("long", 2, 60_000)

    clock.advance(5)

    assert cache.cleanup_expired() == 1
    assert cache.get("long") == 2


def test_stats(clock):
    """Test hit rate and entry ages."""
    cache = CacheManager(clock=clock)
    cache.set("k", "v")
    cache.get("k")
    cache.get("k")
    cache.get("missing")
    clock.advance(2)

    stats = cache.stats()

    assert stats.size == 1
    assert stats.hit_rate == pytest.approx(2 / 3)
    assert stats.entries[0].key == "k"
    assert stats.entries[0].hits == 2
    assert stats.entries[0].age_ms == 2_000


def test_clear_resets_stats(clock):
    cache = CacheManager(clock=clock)
    cache.set("k", "v")
    cache.get("nope")

    cache.clear()

    stats = cache.stats()
    assert stats.size == 0
    assert stats.hit_rate == 0.0


def test_cache_key_is_order_independent():
    """Test params are canonicalised before hashing."""
    first = make_cache_key("get_balance", {"address": "sei1abc", "network": "sei"})
    second = make_cache_key("get_balance", {"network": "sei", "address": "sei1abc"})

    assert first == second
    assert first.startswith("get_balance:")
    assert first != make_cache_key("get_balance", {"address": "sei1xyz", "network": "sei"})


@pytest.mark.parametrize(("max_size", "ttl"), [(0, 1_000), (10, 0), (-1, 1_000)])
def test_invalid_configuration(max_size, ttl):
    with pytest.raises(ValueError):
        CacheManager(max_size=max_size, default_ttl_ms=ttl)
