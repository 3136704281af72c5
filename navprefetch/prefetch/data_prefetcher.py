"""
Data Prefetcher - Route Data Warming
====================================

Runs the data fetchers registered for a route ahead of navigation and
stores their merged results in the shared cache under a deterministic key.

A failing fetcher is isolated: it is logged and left out of the merged
result while the others still land in the cache.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..core.cache_manager import CacheManager
from ..error_instrumentation import log_with_context
from ..exceptions import DataFetchError, NavigationConfigError
from ..types import DataFetcher, RouteParams

logger = logging.getLogger(__name__)

DATA_KEY_PREFIX = "data:"


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def data_cache_key(route: str, params: RouteParams | None = None) -> str:
    """
    Deterministic cache key for a route's data.

    Params are sorted by name, so equal params in any order give the same key.

    Example:
        >>> data_cache_key("/dashboard/statements", {"page": 2, "account": "main"})
        'data:/dashboard/statements?account=main&page=2'
    """
    if not params:
        return f"{DATA_KEY_PREFIX}{route}"
    query = "&".join(f"{name}={_format_param(params[name])}" for name in sorted(params))
    return f"{DATA_KEY_PREFIX}{route}?{query}"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one DataFetcher call."""

    fetcher: DataFetcher
    ok: bool
    value: Any = None
    error: DataFetchError | None = None


@dataclass
class DataPrefetchStats:
    """Statistics for data prefetching."""

    prefetches: int = 0
    skipped_ready: int = 0
    joined_in_flight: int = 0
    fetches_succeeded: int = 0
    fetches_failed: int = 0
    stored: int = 0


class DataPrefetcher:
    """
    Per-route registry of async data fetchers backed by the shared cache.

    Example:
        >>> prefetcher = DataPrefetcher(cache, {
        ...     "/dashboard": [DataFetcher("balance", fetch_balance, stale_time=30_000)],
        ... })
        >>> await prefetcher.prefetch_data("/dashboard")
        >>> prefetcher.get_data("/dashboard")
        {'balance': ...}
    """

    def __init__(
        self,
        cache_manager: CacheManager[Any],
        requirements: Mapping[str, Sequence[DataFetcher]] | None = None,
    ) -> None:
        if cache_manager is None:
            raise NavigationConfigError("cache manager is required", field_name="cache_manager")

        self.cache_manager = cache_manager
        self._requirements: dict[str, list[DataFetcher]] = {}
        self._in_flight: dict[str, asyncio.Task[None]] = {}
        self.stats = DataPrefetchStats()

        for route, fetchers in (requirements or {}).items():
            self.register_data_requirements(route, fetchers)

    # ─── Registry ───────────────────────────────────────────────

    def register_data_requirements(self, route: str, fetchers: Sequence[DataFetcher]) -> None:
        """Replace the fetcher list for ``route``."""
        fetchers = list(fetchers)
        for fetcher in fetchers:
            if not isinstance(fetcher, DataFetcher):
                raise NavigationConfigError(
                    f"expected DataFetcher for route '{route}', got {type(fetcher).__name__}",
                    field_name="fetchers",
                )
        self._requirements[route] = fetchers

    def get_registered_routes(self) -> list[str]:
        return list(self._requirements)

    # ─── Prefetch ───────────────────────────────────────────────

    async def prefetch_data(self, route: str, params: RouteParams | None = None) -> None:
        """
        Fetch and cache the data registered for ``route``.

        No-op when nothing is registered or the data is already cached.
        Concurrent calls for the same key wait on a single fetch.
        """
        fetchers = self._requirements.get(route)
        if not fetchers:
            return

        key = data_cache_key(route, params)
        if self.cache_manager.has(key):
            self.stats.skipped_ready += 1
            return

        task = self._in_flight.get(key)
        if task is not None:
            self.stats.joined_in_flight += 1
        else:
            task = asyncio.ensure_future(self._fetch_and_store(route, params, key, fetchers))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))

        await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        route: str,
        params: RouteParams | None,
        key: str,
        fetchers: list[DataFetcher],
    ) -> None:
        self.stats.prefetches += 1
        call_params = dict(params) if params else None

        outcomes = await asyncio.gather(
            *(self._fetch_one(route, fetcher, call_params) for fetcher in fetchers)
        )

        succeeded = [outcome for outcome in outcomes if outcome.ok]
        for outcome in outcomes:
            if outcome.ok:
                continue
            self.stats.fetches_failed += 1
            log_with_context(
                "warning",
                "data_fetch_failed",
                route=route,
                fetcher=outcome.fetcher.key,
                error_code=outcome.error.error_code if outcome.error else None,
                error=str(outcome.error.cause) if outcome.error else None,
            )
        self.stats.fetches_succeeded += len(succeeded)

        if self._in_flight.get(key) is not asyncio.current_task():
            logger.debug(f"Data for {key} invalidated while fetching; result dropped")
            return

        if not succeeded:
            logger.debug(f"No data fetched for {route}; nothing cached")
            return

        data = {outcome.fetcher.key: outcome.value for outcome in succeeded}
        ttl = min(outcome.fetcher.stale_time for outcome in succeeded)
        self.cache_manager.set(key, data, ttl)
        self.stats.stored += 1

        log_with_context(
            "info",
            "route_data_prefetched",
            route=route,
            cache_key=key,
            keys=sorted(data),
            failed=len(outcomes) - len(succeeded),
            ttl_ms=ttl,
        )

    async def _fetch_one(
        self, route: str, fetcher: DataFetcher, params: dict[str, Any] | None
    ) -> FetchOutcome:
        try:
            value = await fetcher.fetch(params)
        except Exception as e:
            return FetchOutcome(
                fetcher=fetcher, ok=False, error=DataFetchError(route, fetcher.key, cause=e)
            )
        return FetchOutcome(fetcher=fetcher, ok=True, value=value)

    def _release(self, key: str, task: asyncio.Task[None]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    # ─── Lookups ────────────────────────────────────────────────

    def is_data_ready(self, route: str, params: RouteParams | None = None) -> bool:
        return self.cache_manager.has(data_cache_key(route, params))

    def get_data(self, route: str, params: RouteParams | None = None) -> dict[str, Any] | None:
        """Merged data for ``route``/``params``, or None if absent or stale."""
        return self.cache_manager.get(data_cache_key(route, params))

    def invalidate(self, route: str, params: RouteParams | None = None) -> int:
        """
        Drop cached data for ``route``.

        Without params, every parametrised variant of the route goes too.
        Fetches still running for a dropped key are detached, so their
        results are discarded and the next prefetch starts a fresh fetch.

        Returns:
            Number of cache entries removed
        """
        if params:
            key = data_cache_key(route, params)
            self._in_flight.pop(key, None)
            return int(self.cache_manager.delete(key))

        base_key = data_cache_key(route)
        variant_prefix = f"{base_key}?"

        def matches(key: str) -> bool:
            return key == base_key or key.startswith(variant_prefix)

        for key in [key for key in self._in_flight if matches(key)]:
            del self._in_flight[key]

        keys = [base_key] + [
            key for key in self.cache_manager.keys() if key.startswith(variant_prefix)
        ]
        return sum(1 for key in keys if self.cache_manager.delete(key))

    def get_stats(self) -> dict[str, Any]:
        """Get data prefetcher statistics."""
        return {
            "registered_routes": len(self._requirements),
            "in_flight": len(self._in_flight),
            "prefetches": self.stats.prefetches,
            "skipped_ready": self.stats.skipped_ready,
            "joined_in_flight": self.stats.joined_in_flight,
            "fetches_succeeded": self.stats.fetches_succeeded,
            "fetches_failed": self.stats.fetches_failed,
            "stored": self.stats.stored,
        }
