"""
navprefetch/exceptions/navigation_exceptions.py
Error taxonomy for the navigation acceleration layer.

Only NavigationConfigError ever propagates across the public API, and only
at construction time. The rest describe failures that are recovered
locally:

- CacheSerializationError: value could not be size-estimated (default size used)
- PrefetchLoadError: route module load failed (retried with backoff)
- DataFetchError: a single data fetcher failed (isolated from the batch)
- MemoryPressureError: cache at/over its ceiling (new prefetches refused)
"""

from __future__ import annotations


class NavPrefetchError(Exception):
    """Base exception for all navprefetch errors."""

    def __init__(self, message: str, error_code: str = "UNKNOWN") -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(f"[{error_code}] {message}")


class NavigationConfigError(NavPrefetchError):
    """
    Raised when a component is constructed with invalid configuration.

    This is the fail-fast path: hosts see it immediately at startup rather
    than as silently degraded prefetching later.

    Example:
        >>> raise NavigationConfigError("route loader must be callable", field_name="loader")
    """

    def __init__(self, message: str, field_name: str = "") -> None:
        super().__init__(
            f"Invalid configuration for '{field_name}': {message}",
            error_code="CONFIG_ERROR",
        )
        self.field_name = field_name


class CacheSerializationError(NavPrefetchError):
    """Raised internally when a cache value cannot be serialized for sizing."""

    def __init__(self, key: str, cause: Exception | None = None) -> None:
        super().__init__(
            f"Could not estimate size of cache value for '{key}'",
            error_code="CACHE_SERIALIZATION_ERROR",
        )
        self.key = key
        self.cause = cause
        if cause:
            self.__cause__ = cause


class PrefetchLoadError(NavPrefetchError):
    """
    A route module failed to load during prefetch.

    Transient by assumption: the prefetcher retries with exponential
    backoff and abandons the route once attempts are exhausted.

    Attributes:
        path: Route path whose module failed to load
        attempt: Zero-based retry counter at the time of failure
    """

    def __init__(self, path: str, attempt: int, cause: Exception | None = None) -> None:
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Failed to prefetch route '{path}' (attempt {attempt + 1}){reason}",
            error_code="PREFETCH_LOAD_ERROR",
        )
        self.path = path
        self.attempt = attempt
        self.cause = cause
        if cause:
            self.__cause__ = cause


class DataFetchError(NavPrefetchError):
    """A single DataFetcher rejected while prefetching a route's data."""

    def __init__(self, route: str, fetcher_key: str, cause: Exception | None = None) -> None:
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Data fetcher '{fetcher_key}' failed for route '{route}'{reason}",
            error_code="DATA_FETCH_ERROR",
        )
        self.route = route
        self.fetcher_key = fetcher_key
        self.cause = cause
        if cause:
            self.__cause__ = cause


class MemoryPressureError(NavPrefetchError):
    """Cache size is at or over its ceiling; new prefetch work is refused."""

    def __init__(self, current_bytes: int, ceiling_bytes: int) -> None:
        super().__init__(
            f"Cache size {current_bytes} bytes reached ceiling of {ceiling_bytes} bytes",
            error_code="MEMORY_PRESSURE",
        )
        self.current_bytes = current_bytes
        self.ceiling_bytes = ceiling_bytes
