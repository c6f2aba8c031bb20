"""Tests for the bounded TTL ingredient cache."""

import pytest

from nutriflow.providers.ingredient_cache import IngredientCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestExpiry:
    """Tests for TTL handling on read."""

    def test_fresh_entry_returned(self, clock):
        cache = IngredientCache(ttl_seconds=60, clock=clock)
        cache.set("milk", "record")
        clock.advance(59.9)

        assert cache.get("milk") == (True, "record")
        assert cache.stats.hits == 1

    def test_entry_expires_at_ttl(self, clock):
        cache = IngredientCache(ttl_seconds=60, clock=clock)
        cache.set("milk", "record")
        clock.advance(60)

        assert cache.get("milk") == (False, None)
        assert len(cache) == 0
        assert cache.stats.expirations == 1

    def test_rewrite_refreshes_timestamp(self, clock):
        cache = IngredientCache(ttl_seconds=60, clock=clock)
        cache.set("milk", "old")
        clock.advance(50)
        cache.set("milk", "new")
        clock.advance(50)

        assert cache.get("milk") == (True, "new")

    def test_cached_miss_distinguished_from_absent(self, clock):
        cache = IngredientCache(clock=clock)
        cache.set("unobtainium", None)

        assert cache.get("unobtainium") == (True, None)
        assert cache.get("never set") == (False, None)
        assert cache.stats.misses == 1


class TestCapacity:
    """Tests for eviction when full."""

    def test_oldest_write_evicted(self, clock):
        cache = IngredientCache(max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert len(cache) == 2
        assert "a" not in cache
        assert "b" in cache and "c" in cache
        assert cache.stats.evictions == 1

    def test_rewrite_moves_entry_to_newest(self, clock):
        cache = IngredientCache(max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert cache.get("a") == (True, 10)
        assert cache.get("b") == (False, None)


class TestMaintenance:
    """Tests for invalidate, clear and argument validation."""

    def test_invalidate(self, clock):
        cache = IngredientCache(clock=clock)
        cache.set("a", 1)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False

    def test_clear(self, clock):
        cache = IngredientCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize("kwargs", [
        {"max_entries": 0},
        {"max_entries": -1},
        {"ttl_seconds": 0},
        {"ttl_seconds": -30},
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            IngredientCache(**kwargs)
