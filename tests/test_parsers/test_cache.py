"""Tests for the in-memory staleness cache."""

import pytest

from src.parsers.cache import CACHE_TTL, StalenessCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestStalenessCache:
    def test_get_returns_value_until_ttl_passes(self) -> None:
        clock = FakeClock()
        cache = StalenessCache(clock=clock)
        cache.set("price:sol", 150, ttl_sec=30)

        clock.now = 30.0
        assert cache.get("price:sol") == 150

        clock.now = 30.5
        assert cache.get("price:sol") is None
        assert len(cache) == 0  # dropped on read

    def test_eviction_drops_first_inserted_key(self) -> None:
        cache = StalenessCache(max_size=3)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)
        cache.set("c", 3, 60)

        cache.set("d", 4, 60)

        assert "a" not in cache
        assert cache.get("b") == 2
        assert cache.get("d") == 4
        assert len(cache) == 3

    def test_eviction_ignores_ttl(self) -> None:
        cache = StalenessCache(max_size=2)
        cache.set("long", 1, 10_000)
        cache.set("short", 2, 1)

        cache.set("new", 3, 60)

        assert cache.get("long") is None
        assert cache.get("short") == 2

    def test_hit_moves_entry_to_newest_end(self) -> None:
        cache = StalenessCache(max_size=2)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)

        assert cache.get("a") == 1
        cache.set("c", 3, 60)

        assert cache.get("a") == 1
        assert cache.get("b") is None

    def test_overwrite_at_capacity_evicts_nothing(self) -> None:
        cache = StalenessCache(max_size=2)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)

        cache.set("a", 10, 60)

        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_has_delete_clear(self) -> None:
        cache = StalenessCache()
        cache.set("a", {"x": 1}, 60)
        assert cache.has("a")

        cache.delete("a")
        cache.delete("missing")
        assert not cache.has("a")

        cache.set("b", 1, 60)
        cache.clear()
        assert len(cache) == 0

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(ValueError):
            StalenessCache(max_size=0)

    def test_ttl_table(self) -> None:
        assert CACHE_TTL["price"] == 30
        assert CACHE_TTL["trade_history"] == 300
