"""
Core Types - Navigation Acceleration Layer
==========================================

Enums, dataclasses and collaborator signatures shared by the cache,
predictor and prefetchers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .exceptions import NavigationConfigError

V = TypeVar("V")

RouteParams = Mapping[str, str | int | float | bool]
RouteLoader = Callable[[str], Awaitable[None]]
NetworkProbe = Callable[[], float | None]
Clock = Callable[[], float]


# ═══════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════


class Priority(str, Enum):
    """Coarse prefetch urgency."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, 0 = most urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class CacheStrategy(str, Enum):
    """Descriptive caching strategy tag consumed by collaborators."""

    CACHE_FIRST = "cache-first"  # Use cache, fetch in background
    NETWORK_FIRST = "network-first"  # Fetch first, fall back to cache
    CACHE_ONLY = "cache-only"
    NETWORK_ONLY = "network-only"


class UserRole(str, Enum):
    """Dashboard roles gating route access."""

    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class QueueItemType(str, Enum):
    ROUTE = "route"
    DATA = "data"


class PrefetchStatus(str, Enum):
    """Prefetch queue item states."""

    PENDING = "pending"
    LOADING = "loading"
    COMPLETE = "complete"
    FAILED = "failed"


# ═══════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════


@dataclass
class CacheEntry(Generic[V]):
    """A cached value with TTL and access tracking."""

    key: str
    value: V
    timestamp: float
    ttl: float
    size: int
    access_count: int = 0
    last_accessed: float = 0.0
    strategy: CacheStrategy = CacheStrategy.CACHE_FIRST

    def is_expired(self, now: float) -> bool:
        """True once the entry's age has reached its TTL."""
        return now - self.timestamp >= self.ttl

    def touch(self, now: float) -> None:
        """Record a read access."""
        self.access_count += 1
        self.last_accessed = now


@dataclass(frozen=True)
class PredictedRoute:
    """A candidate next route with its urgency and likelihood."""

    path: str
    priority: Priority
    confidence: float


@dataclass
class PrefetchQueueItem:
    """Item tracked by the route prefetch state machine."""

    route: str
    priority: Priority
    type: QueueItemType = QueueItemType.ROUTE
    timestamp: float = 0.0
    retries: int = 0
    status: PrefetchStatus = PrefetchStatus.PENDING
    last_error: str | None = None


@dataclass
class NavigationContext:
    """Where the user is now, and how they got there."""

    current_route: str
    user_role: UserRole
    recent_history: list[str] = field(default_factory=list)
    time_on_page: float = 0.0  # ms

    def __post_init__(self) -> None:
        self.user_role = UserRole(self.user_role)
        self.recent_history = list(self.recent_history)


@dataclass(frozen=True)
class NavigationHistoryEntry:
    """One recorded navigation between two routes."""

    from_route: str
    to_route: str
    role: str
    timestamp: float


@dataclass
class DataFetcher:
    """
    Application-supplied loader for one piece of route data.

    Attributes:
        key: Name of this fetcher's result in the merged data dict
        fetch: Async callable receiving the route params (or None)
        stale_time: Milliseconds the fetched value stays fresh
    """

    key: str
    fetch: Callable[[RouteParams | None], Awaitable[Any]]
    stale_time: float

    def __post_init__(self) -> None:
        if not self.key or not self.key.strip():
            raise NavigationConfigError("fetcher key cannot be empty", field_name="key")
        if not callable(self.fetch):
            raise NavigationConfigError("fetch must be callable", field_name="fetch")
        if self.stale_time <= 0:
            raise NavigationConfigError(
                f"stale_time must be positive, got {self.stale_time}",
                field_name="stale_time",
            )


@dataclass(frozen=True)
class RouteDefinition:
    """Immutable node of the route graph."""

    path: str
    roles: frozenset[UserRole]
    children: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.path:
            raise NavigationConfigError("route path cannot be empty", field_name="path")
        object.__setattr__(self, "roles", frozenset(UserRole(r) for r in self.roles))
        object.__setattr__(self, "children", tuple(self.children))

    @classmethod
    def of(
        cls,
        path: str,
        roles: Sequence[str | UserRole],
        children: Sequence[str] = (),
    ) -> RouteDefinition:
        """Convenience constructor accepting plain sequences."""
        return cls(path=path, roles=frozenset(UserRole(r) for r in roles), children=tuple(children))

    def allows(self, role: str | UserRole) -> bool:
        return UserRole(role) in self.roles
