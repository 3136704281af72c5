"""
navprefetch/exceptions/__init__.py
Custom exceptions for the navigation layer.
"""

from .navigation_exceptions import (
    CacheSerializationError,
    DataFetchError,
    MemoryPressureError,
    NavigationConfigError,
    NavPrefetchError,
    PrefetchLoadError,
)

__all__ = [
    "NavPrefetchError",
    "NavigationConfigError",
    "CacheSerializationError",
    "PrefetchLoadError",
    "DataFetchError",
    "MemoryPressureError",
]
