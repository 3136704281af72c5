"""
Cache Manager - TTL Store with Size Accounting + LRU Eviction
==============================================================

Shared store for prefetched route markers and route data. Entries expire
lazily: a stale entry is only noticed (and dropped) when something reads
it. Size is an estimate based on the serialized value, good enough to drive
backpressure and eviction but not an exact memory measurement.

Eviction never happens on write. Callers decide when to call
``evict_lru`` or ``relieve_memory_pressure``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic

from ..config import NavigationSettings
from ..error_instrumentation import log_with_context
from ..exceptions import CacheSerializationError
from ..scheduler import system_clock_ms
from ..types import CacheEntry, CacheStrategy, Clock, Priority, V

logger = logging.getLogger(__name__)

METADATA_KEY_PREFIX = "metadata:"

_PRIORITY_VALUES = {p.value for p in Priority}


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def json_size_estimator(value: Any) -> int:
    """UTF-8 byte length of the JSON form of ``value``."""
    return len(json.dumps(value, default=_json_default, ensure_ascii=False).encode("utf-8"))


@dataclass
class CacheStats:
    """Counters for cache effectiveness."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    serialization_fallbacks: int = 0


class CacheManager(Generic[V]):
    """
    TTL-keyed cache with size accounting and LRU eviction.

    Features:
    - Lazy TTL expiry on ``get``/``has``/enumeration
    - Running size total (O(1) ``get_size``)
    - LRU eviction down to a byte target, oldest access first
    - Per-key strategy tags (descriptive only)
    - Priority metadata preserved for evicted ``prefix:path:priority`` keys
    """

    def __init__(
        self,
        settings: NavigationSettings | None = None,
        clock: Clock | None = None,
        size_estimator: Callable[[Any], int] | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            settings: Navigation settings (ceiling, default TTL, fallback size)
            clock: Millisecond clock; defaults to wall-clock time
            size_estimator: Callable returning an approximate byte size for a value
        """
        self.settings = settings or NavigationSettings()
        self._clock = clock or system_clock_ms
        self._size_estimator = size_estimator or json_size_estimator

        self._entries: dict[str, CacheEntry[V]] = {}
        self._strategies: dict[str, CacheStrategy] = {}
        self._eviction_metadata: dict[str, Priority] = {}
        self._total_size = 0

        self.stats = CacheStats()

    # ─── Core Operations ────────────────────────────────────────

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """
        Store ``value`` under ``key`` for ``ttl`` milliseconds.

        Re-setting an existing key replaces it and moves it to the end of
        insertion order.
        """
        now = self._clock()
        if ttl is None:
            ttl = self.settings.default_cache_ttl_ms

        entry = CacheEntry(
            key=key,
            value=value,
            timestamp=now,
            ttl=ttl,
            size=self._estimate_size(key, value),
            access_count=0,
            last_accessed=now,
            strategy=self._strategies.get(key, CacheStrategy.CACHE_FIRST),
        )

        self._remove_entry(key)
        self._entries[key] = entry
        self._total_size += entry.size

    def get(self, key: str) -> V | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self.stats.misses += 1
            return None

        entry.touch(self._clock())
        self.stats.hits += 1
        return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without touching access counters."""
        return self._live_entry(key) is not None

    def delete(self, key: str) -> bool:
        """Remove an entry and its strategy tag. Returns True if an entry existed."""
        self._strategies.pop(key, None)
        return self._remove_entry(key) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._strategies.clear()
        self._eviction_metadata.clear()
        self._total_size = 0

    def keys(self) -> list[str]:
        """Keys of live entries in insertion order."""
        return [entry.key for entry in self.get_all_entries()]

    def get_all_entries(self) -> list[CacheEntry[V]]:
        """Live entries in insertion order; expired ones are dropped on the way."""
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.is_expired(now)]:
            self._expire(key)
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    # ─── Size Management ────────────────────────────────────────

    def get_size(self) -> int:
        """Estimated total bytes of stored entries."""
        return self._total_size

    def should_evict(self) -> bool:
        """True when the estimated size exceeds the configured ceiling."""
        return self._total_size > self.settings.cache_max_size_bytes

    def evict_lru(self, target_size: int) -> list[str]:
        """
        Evict least recently accessed entries until size <= ``target_size``.

        Entries are ordered by ``last_accessed`` (oldest first); ties keep
        insertion order, so earlier-inserted entries go first.

        Returns:
            Keys evicted, in eviction order
        """
        current = self._total_size
        if current <= target_size:
            return []

        size_to_free = current - target_size
        candidates = sorted(self._entries.values(), key=lambda e: e.last_accessed)

        evicted: list[str] = []
        for entry in candidates:
            if size_to_free <= 0:
                break

            priority = self._extract_priority(entry.key)
            self._remove_entry(entry.key)
            size_to_free -= entry.size
            evicted.append(entry.key)

            if priority is not None:
                self._eviction_metadata[f"{METADATA_KEY_PREFIX}{entry.key}"] = priority

        self.stats.evictions += len(evicted)
        log_with_context(
            "info",
            "cache_lru_eviction",
            evicted_count=len(evicted),
            size_before=current,
            size_after=self._total_size,
            target_size=target_size,
        )
        return evicted

    def relieve_memory_pressure(self) -> list[str]:
        """Evict down to the configured pressure target (explicit, never automatic)."""
        return self.evict_lru(self.settings.memory_pressure_target_bytes)

    def get_eviction_metadata(self, key: str) -> Priority | None:
        """
        Priority preserved for an evicted ``prefix:path:priority`` key.

        Extension point for re-visit heuristics; nothing in this package
        reads it back.
        """
        return self._eviction_metadata.get(f"{METADATA_KEY_PREFIX}{key}")

    # ─── Strategies ─────────────────────────────────────────────

    def set_strategy(self, key: str, strategy: CacheStrategy | str) -> None:
        strategy = CacheStrategy(strategy)
        self._strategies[key] = strategy

        entry = self._entries.get(key)
        if entry is not None:
            entry.strategy = strategy

    def get_strategy(self, key: str) -> CacheStrategy:
        return self._strategies.get(key, CacheStrategy.CACHE_FIRST)

    # ─── Internals ──────────────────────────────────────────────

    def _live_entry(self, key: str) -> CacheEntry[V] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._expire(key)
            return None
        return entry

    def _expire(self, key: str) -> None:
        self._remove_entry(key)
        self.stats.expirations += 1

    def _remove_entry(self, key: str) -> CacheEntry[V] | None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._total_size -= entry.size
        return entry

    def _estimate_size(self, key: str, value: Any) -> int:
        try:
            return int(self._size_estimator(value))
        except Exception as e:
            error = CacheSerializationError(key, cause=e)
            self.stats.serialization_fallbacks += 1
            logger.debug(f"{error.message}, using default size: {e}")
            return self.settings.default_entry_size_bytes

    @staticmethod
    def _extract_priority(key: str) -> Priority | None:
        parts = key.split(":")
        if len(parts) >= 3 and parts[-1] in _PRIORITY_VALUES:
            return Priority(parts[-1])
        return None

    # ─── Stats ──────────────────────────────────────────────────

    def _get_hit_rate(self) -> float:
        total = self.stats.hits + self.stats.misses
        if total == 0:
            return 0.0
        return self.stats.hits / total

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "entries": len(self._entries),
            "size_bytes": self._total_size,
            "max_size_bytes": self.settings.cache_max_size_bytes,
            "hit_rate_pct": self._get_hit_rate() * 100,
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "expirations": self.stats.expirations,
            "evictions": self.stats.evictions,
            "serialization_fallbacks": self.stats.serialization_fallbacks,
        }
