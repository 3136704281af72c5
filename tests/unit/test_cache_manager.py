"""
Unit tests for CacheManager.

Tests verify:
1. Basic set/get/has/delete/clear semantics
2. Lazy TTL expiry at the ttl boundary
3. Approximate size accounting and the serialization fallback
4. LRU eviction order, ties and priority metadata
5. Strategy tags
"""

from __future__ import annotations

import pytest

from navprefetch.config import NavigationSettings
from navprefetch.core.cache_manager import CacheManager, json_size_estimator
from navprefetch.scheduler import ManualScheduler
from navprefetch.types import CacheStrategy, Priority

# ═══════════════════════════════════════════════════════════════
# BASIC OPERATIONS
# ═══════════════════════════════════════════════════════════════


class TestCacheBasics:
    """Tests for core cache operations."""

    def test_set_and_get(self, cache: CacheManager) -> None:
        """Test stored values are returned."""
        cache.set("route:/dashboard", {"prefetched": True})

        assert cache.get("route:/dashboard") == {"prefetched": True}
        assert cache.has("route:/dashboard")
        assert len(cache) == 1

    def test_get_missing_returns_none(self, cache: CacheManager) -> None:
        assert cache.get("missing") is None
        assert not cache.has("missing")
        assert cache.stats.misses == 1

    def test_get_updates_access_stats(
        self, cache: CacheManager, scheduler: ManualScheduler
    ) -> None:
        """Test get increments access_count and moves last_accessed."""
        cache.set("k", "v")
        scheduler.advance(50)
        cache.get("k")
        cache.get("k")

        entry = cache.get_all_entries()[0]
        assert entry.access_count == 2
        assert entry.last_accessed == 50
        assert cache.stats.hits == 2

    def test_has_does_not_touch_access_stats(
        self, cache: CacheManager, scheduler: ManualScheduler
    ) -> None:
        """Test has() leaves access counters alone."""
        cache.set("k", "v")
        scheduler.advance(50)

        assert cache.has("k")
        entry = cache.get_all_entries()[0]
        assert entry.access_count == 0
        assert entry.last_accessed == 0

    def test_delete_reports_whether_entry_existed(self, cache: CacheManager) -> None:
        cache.set("k", "v")

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.get_size() == 0

    def test_reset_moves_key_to_end_of_insertion_order(self, cache: CacheManager) -> None:
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)

        assert cache.keys() == ["b", "a"]
        assert cache.get("a") == 3

    def test_clear_removes_everything(self, cache: CacheManager) -> None:
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set_strategy("a", CacheStrategy.NETWORK_FIRST)

        cache.clear()

        assert cache.keys() == []
        assert cache.get_size() == 0
        assert cache.get_strategy("a") == CacheStrategy.CACHE_FIRST


# ═══════════════════════════════════════════════════════════════
# TTL EXPIRY
# ═══════════════════════════════════════════════════════════════


class TestTTLExpiry:
    """Tests for lazy TTL expiry."""

    def test_entry_expires_when_age_reaches_ttl(
        self, cache: CacheManager, scheduler: ManualScheduler
    ) -> None:
        """Test an entry is live just before ttl and gone at ttl."""
        cache.set("k", "v", ttl=100)

        scheduler.advance(99)
        assert cache.has("k")

        scheduler.advance(1)
        assert cache.get("k") is None
        assert not cache.has("k")
        assert "k" not in cache.keys()
        assert cache.stats.expirations == 1

    def test_default_ttl_applies_when_omitted(
        self, cache: CacheManager, scheduler: ManualScheduler, settings: NavigationSettings
    ) -> None:
        cache.set("k", "v")

        scheduler.advance(settings.default_cache_ttl_ms - 1)
        assert cache.has("k")

        scheduler.advance(1)
        assert not cache.has("k")

    def test_expiry_is_lazy(self, cache: CacheManager, scheduler: ManualScheduler) -> None:
        """Test expired entries stay counted until something reads them."""
        cache.set("k", "v", ttl=10)
        size = cache.get_size()
        scheduler.advance(20)

        assert len(cache) == 1
        assert cache.get_size() == size

        assert cache.get_all_entries() == []
        assert cache.get_size() == 0

    def test_enumeration_keeps_live_entries(
        self, cache: CacheManager, scheduler: ManualScheduler
    ) -> None:
        cache.set("short", 1, ttl=10)
        cache.set("long", 2, ttl=1000)
        scheduler.advance(10)

        assert cache.keys() == ["long"]


# ═══════════════════════════════════════════════════════════════
# SIZE ACCOUNTING
# ═══════════════════════════════════════════════════════════════


class TestSizeAccounting:
    """Tests for approximate size tracking."""

    def test_size_approximates_serialized_length(self, cache: CacheManager) -> None:
        cache.set("k", "x" * 1000)

        assert 1000 <= cache.get_size() <= 1100

    def test_size_counts_utf8_bytes(self) -> None:
        """Test non-ASCII text is measured in encoded bytes."""
        assert json_size_estimator("é") == 4
        assert json_size_estimator("e") == 3

    def test_size_follows_replace_and_delete(self, cache: CacheManager) -> None:
        cache.set("k", "x" * 1000)
        cache.set("k", "x" * 10)
        assert cache.get_size() < 100

        cache.delete("k")
        assert cache.get_size() == 0

    def test_unserializable_value_uses_default_size(
        self, cache: CacheManager, settings: NavigationSettings
    ) -> None:
        """Test values that cannot be sized fall back to the default size."""
        cache.set("k", object())

        assert cache.get_size() == settings.default_entry_size_bytes
        assert cache.stats.serialization_fallbacks == 1
        assert cache.has("k")

    def test_custom_size_estimator(self, settings: NavigationSettings) -> None:
        cache = CacheManager(settings, clock=lambda: 0.0, size_estimator=len)
        cache.set("k", [1, 2, 3])

        assert cache.get_size() == 3

    def test_should_evict_only_above_ceiling(self, fixed_size_cache: CacheManager) -> None:
        """Test should_evict is strict: at the ceiling is not over it."""
        for i in range(10):
            fixed_size_cache.set(f"k{i}", i)
        assert fixed_size_cache.get_size() == 1000
        assert not fixed_size_cache.should_evict()

        fixed_size_cache.set("k10", 10)
        assert fixed_size_cache.should_evict()


# ═══════════════════════════════════════════════════════════════
# LRU EVICTION
# ═══════════════════════════════════════════════════════════════


class TestLRUEviction:
    """Tests for evict_lru and memory pressure relief."""

    def test_evicts_least_recently_accessed_first(
        self, fixed_size_cache: CacheManager, scheduler: ManualScheduler
    ) -> None:
        for key in ("a", "b", "c", "d"):
            fixed_size_cache.set(key, key)
            scheduler.advance(10)
        fixed_size_cache.get("a")

        evicted = fixed_size_cache.evict_lru(200)

        assert evicted == ["b", "c"]
        assert fixed_size_cache.get_size() <= 200
        assert fixed_size_cache.keys() == ["a", "d"]
        assert fixed_size_cache.stats.evictions == 2

    def test_ties_evict_in_insertion_order(self, fixed_size_cache: CacheManager) -> None:
        for key in ("a", "b", "c", "d"):
            fixed_size_cache.set(key, key)

        assert fixed_size_cache.evict_lru(250) == ["a", "b"]
        assert fixed_size_cache.keys() == ["c", "d"]

    def test_no_op_when_already_under_target(self, fixed_size_cache: CacheManager) -> None:
        fixed_size_cache.set("a", 1)

        assert fixed_size_cache.evict_lru(100) == []
        assert fixed_size_cache.keys() == ["a"]

    def test_evict_to_zero_empties_cache(self, fixed_size_cache: CacheManager) -> None:
        fixed_size_cache.set("a", 1)
        fixed_size_cache.set("b", 2)

        fixed_size_cache.evict_lru(0)

        assert fixed_size_cache.get_size() == 0

    def test_priority_metadata_kept_for_priority_keys(self, fixed_size_cache: CacheManager) -> None:
        """Test a trailing priority segment survives eviction as metadata."""
        fixed_size_cache.set("route:/dashboard:high", 1)
        fixed_size_cache.set("data:/dashboard", 2)
        fixed_size_cache.set("route:/profile:urgent", 3)

        fixed_size_cache.evict_lru(0)

        assert fixed_size_cache.get_eviction_metadata("route:/dashboard:high") == Priority.HIGH
        assert fixed_size_cache.get_eviction_metadata("data:/dashboard") is None
        assert fixed_size_cache.get_eviction_metadata("route:/profile:urgent") is None

    def test_relieve_memory_pressure_trims_to_target(
        self, fixed_size_cache: CacheManager, small_settings: NavigationSettings
    ) -> None:
        for i in range(12):
            fixed_size_cache.set(f"k{i}", i)

        evicted = fixed_size_cache.relieve_memory_pressure()

        assert fixed_size_cache.get_size() <= small_settings.memory_pressure_target_bytes
        assert evicted[0] == "k0"
        assert len(evicted) == 7


# ═══════════════════════════════════════════════════════════════
# STRATEGIES + STATS
# ═══════════════════════════════════════════════════════════════


class TestStrategies:
    """Tests for descriptive strategy tags."""

    def test_default_strategy_is_cache_first(self, cache: CacheManager) -> None:
        assert cache.get_strategy("anything") == CacheStrategy.CACHE_FIRST

    def test_entry_inherits_registered_strategy(self, cache: CacheManager) -> None:
        cache.set_strategy("data:/statements", "network-first")
        cache.set("data:/statements", [])

        entry = cache.get_all_entries()[0]
        assert entry.strategy == CacheStrategy.NETWORK_FIRST

    def test_set_strategy_updates_existing_entry(self, cache: CacheManager) -> None:
        cache.set("k", 1)
        cache.set_strategy("k", CacheStrategy.CACHE_ONLY)

        assert cache.get_all_entries()[0].strategy == CacheStrategy.CACHE_ONLY

    def test_unknown_strategy_rejected(self, cache: CacheManager) -> None:
        with pytest.raises(ValueError):
            cache.set_strategy("k", "stale-while-revalidate")

    def test_delete_drops_strategy(self, cache: CacheManager) -> None:
        cache.set("k", 1)
        cache.set_strategy("k", CacheStrategy.NETWORK_ONLY)
        cache.delete("k")

        assert cache.get_strategy("k") == CacheStrategy.CACHE_FIRST


class TestCacheStats:
    def test_stats_report_hit_rate(self, cache: CacheManager) -> None:
        cache.set("k", 1)
        cache.get("k")
        cache.get("missing")

        stats = cache.get_stats()

        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_pct"] == pytest.approx(50.0)
