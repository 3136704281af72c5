"""
Pytest Configuration and Shared Fixtures
=========================================

Provides reusable fixtures for all test modules. Time-dependent tests use
ManualScheduler as both the cache clock and the timer scheduler, so no test
waits on real time.
"""

from unittest.mock import AsyncMock

import pytest

from navprefetch.config import NavigationSettings
from navprefetch.core.cache_manager import CacheManager
from navprefetch.core.route_graph import ALL_ROLES, ADMIN_ONLY, RouteGraph, default_route_graph
from navprefetch.prefetch.data_prefetcher import DataPrefetcher
from navprefetch.prefetch.route_prefetcher import RoutePrefetcher
from navprefetch.scheduler import ManualScheduler
from navprefetch.types import RouteDefinition

# ============================================================
# SETTINGS + CLOCK
# ============================================================


@pytest.fixture
def settings() -> NavigationSettings:
    """Default navigation settings."""
    return NavigationSettings()


@pytest.fixture
def small_settings() -> NavigationSettings:
    """Settings with a tiny cache ceiling for backpressure/eviction tests."""
    return NavigationSettings(cache_max_size_bytes=1000)


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Virtual clock + scheduler starting at t=0."""
    return ManualScheduler()


# ============================================================
# CACHE + GRAPH
# ============================================================


@pytest.fixture
def cache(settings: NavigationSettings, scheduler: ManualScheduler) -> CacheManager:
    """Cache driven by the virtual clock."""
    return CacheManager(settings, clock=scheduler.now)


@pytest.fixture
def fixed_size_cache(small_settings: NavigationSettings, scheduler: ManualScheduler) -> CacheManager:
    """Cache where every entry counts as exactly 100 bytes."""
    return CacheManager(small_settings, clock=scheduler.now, size_estimator=lambda value: 100)


@pytest.fixture
def dashboard_graph() -> RouteGraph:
    """Two-child dashboard plus an admin-only page."""
    return RouteGraph(
        [
            RouteDefinition.of(
                "/dashboard",
                ALL_ROLES,
                ["/dashboard/deposit", "/dashboard/withdraw", "/dashboard/admin"],
            ),
            RouteDefinition.of("/dashboard/deposit", ALL_ROLES, ["/dashboard"]),
            RouteDefinition.of("/dashboard/withdraw", ALL_ROLES, ["/dashboard"]),
            RouteDefinition.of("/dashboard/admin", ADMIN_ONLY, ["/dashboard"]),
        ]
    )


@pytest.fixture
def route_graph() -> RouteGraph:
    """Full default route graph."""
    return default_route_graph()


# ============================================================
# PREFETCHERS
# ============================================================


@pytest.fixture
def loader() -> AsyncMock:
    """Route loader that always succeeds."""
    return AsyncMock(return_value=None)


@pytest.fixture
def failing_loader() -> AsyncMock:
    """Route loader that always rejects."""
    return AsyncMock(side_effect=RuntimeError("chunk load failed"))


@pytest.fixture
def route_prefetcher(
    cache: CacheManager,
    loader: AsyncMock,
    settings: NavigationSettings,
    scheduler: ManualScheduler,
) -> RoutePrefetcher:
    return RoutePrefetcher(cache, loader, settings, scheduler)


@pytest.fixture
def data_prefetcher(cache: CacheManager) -> DataPrefetcher:
    return DataPrefetcher(cache)
