"""
navprefetch - Navigation acceleration layer.

Predicts where a user will navigate next and warms route bundles and route
data ahead of time in a size-bounded TTL cache.
"""

from .config import NavigationSettings, get_default_settings
from .core import CacheManager, RouteGraph, RoutePredictor, default_route_graph
from .exceptions import (
    CacheSerializationError,
    DataFetchError,
    MemoryPressureError,
    NavigationConfigError,
    NavPrefetchError,
    PrefetchLoadError,
)
from .logging_config import setup_logging
from .prefetch import DataPrefetcher, RoutePrefetcher, data_cache_key
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .system import NavigationSystem
from .types import (
    CacheEntry,
    CacheStrategy,
    DataFetcher,
    NavigationContext,
    PredictedRoute,
    PrefetchQueueItem,
    PrefetchStatus,
    Priority,
    RouteDefinition,
    UserRole,
)

__version__ = "1.0.0"

__all__ = [
    "NavigationSettings",
    "get_default_settings",
    "CacheManager",
    "RouteGraph",
    "RoutePredictor",
    "default_route_graph",
    "RoutePrefetcher",
    "DataPrefetcher",
    "data_cache_key",
    "NavigationSystem",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "setup_logging",
    "CacheEntry",
    "CacheStrategy",
    "DataFetcher",
    "NavigationContext",
    "PredictedRoute",
    "PrefetchQueueItem",
    "PrefetchStatus",
    "Priority",
    "RouteDefinition",
    "UserRole",
    "NavPrefetchError",
    "NavigationConfigError",
    "CacheSerializationError",
    "PrefetchLoadError",
    "DataFetchError",
    "MemoryPressureError",
]
