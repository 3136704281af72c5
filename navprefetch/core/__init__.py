"""Cache, route graph and next-route prediction."""

from .cache_manager import CacheManager, CacheStats, json_size_estimator
from .route_graph import RouteGraph, default_route_graph
from .route_predictor import RoutePredictor

__all__ = [
    "CacheManager",
    "CacheStats",
    "json_size_estimator",
    "RouteGraph",
    "default_route_graph",
    "RoutePredictor",
]
