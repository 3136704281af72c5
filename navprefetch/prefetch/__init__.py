"""Route bundle and route data prefetchers."""

from .data_prefetcher import DataPrefetcher, FetchOutcome, data_cache_key
from .route_prefetcher import LoadOutcome, PrefetchStats, RoutePrefetcher, route_marker_key

__all__ = [
    "RoutePrefetcher",
    "PrefetchStats",
    "LoadOutcome",
    "route_marker_key",
    "DataPrefetcher",
    "FetchOutcome",
    "data_cache_key",
]
