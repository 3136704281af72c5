"""
Route Prefetcher - Best-Effort Route Bundle Warming
===================================================

Warms route modules ahead of navigation through an injected loader and
records each success as a ``route:{path}`` cache marker.

Per-route state machine:

    pending → loading → complete
                      → failed → (backoff) → loading ...   (up to max attempts)
                      → failed                              (terminal)

Prefetching is an optimization only: load errors are captured as values,
logged and retried with exponential backoff, and never raised to callers.
Hover prefetches are debounced through the scheduler; focus prefetches
start immediately.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass
from typing import Any

from ..config import NavigationSettings
from ..core.cache_manager import CacheManager
from ..error_instrumentation import LatencyMetrics, log_with_context
from ..exceptions import MemoryPressureError, NavigationConfigError, PrefetchLoadError
from ..scheduler import AsyncioScheduler, Scheduler
from ..types import (
    PredictedRoute,
    PrefetchQueueItem,
    PrefetchStatus,
    Priority,
    QueueItemType,
    RouteLoader,
)

logger = logging.getLogger(__name__)

ROUTE_MARKER_PREFIX = "route:"


def route_marker_key(path: str) -> str:
    """Cache key marking ``path`` as warm."""
    return f"{ROUTE_MARKER_PREFIX}{path}"


@dataclass(frozen=True)
class LoadOutcome:
    """Result of one loader invocation."""

    path: str
    ok: bool
    duration_ms: float = 0.0
    error: PrefetchLoadError | None = None


@dataclass
class PrefetchStats:
    """Statistics for route prefetching."""

    loads_started: int = 0
    loads_succeeded: int = 0
    loads_failed: int = 0
    retries_scheduled: int = 0
    abandoned: int = 0
    skipped_duplicate: int = 0
    skipped_memory_pressure: int = 0
    hover_scheduled: int = 0
    hover_cancelled: int = 0


class RoutePrefetcher:
    """
    Priority-aware, deduplicating route prefetcher.

    Features:
    - Dedup against the prefetched set, live cache markers and in-flight loads
    - Soft backpressure: refuses new work while the cache is at its ceiling
    - Exponential backoff retries (``base × 2^retries``) up to max attempts
    - Debounced hover prefetch, immediate focus prefetch
    - Serial, priority-ordered batch prefetch
    """

    def __init__(
        self,
        cache_manager: CacheManager[Any],
        loader: RouteLoader,
        settings: NavigationSettings | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """
        Initialize the route prefetcher.

        Args:
            cache_manager: Shared cache receiving ``route:{path}`` markers
            loader: Async callable warming a route's module; rejects on failure
            settings: Navigation settings (ceiling, marker TTL, hover delay, retries)
            scheduler: Delayed-task scheduler (defaults to the asyncio loop)

        Raises:
            NavigationConfigError: If a collaborator is missing or not callable
        """
        if cache_manager is None:
            raise NavigationConfigError("cache manager is required", field_name="cache_manager")
        if not callable(loader):
            raise NavigationConfigError("route loader must be callable", field_name="loader")

        self.cache_manager = cache_manager
        self.settings = settings or cache_manager.settings
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._loader = loader

        self._queue: dict[str, PrefetchQueueItem] = {}
        self._prefetched: set[str] = set()
        self._hover_timers: dict[str, Any] = {}
        self._retry_timers: dict[str, Any] = {}
        self._tasks: set[asyncio.Task[None]] = set()

        self.stats = PrefetchStats()
        self.load_latency = LatencyMetrics("route_load")

    # ─── Prefetch Entry Points ──────────────────────────────────

    async def prefetch_route(self, path: str, priority: Priority | str = Priority.MEDIUM) -> None:
        """
        Warm ``path`` unless it is already warm, in flight, or memory is tight.

        Awaits the first load attempt; retries run in the background.
        """
        priority = Priority(priority)

        if self.is_prefetched(path) or self._is_in_flight(path):
            self.stats.skipped_duplicate += 1
            return

        current = self.cache_manager.get_size()
        ceiling = self.settings.cache_max_size_bytes
        if current >= ceiling:
            pressure = MemoryPressureError(current, ceiling)
            self.stats.skipped_memory_pressure += 1
            log_with_context(
                "warning",
                "route_prefetch_skipped",
                path=path,
                reason=pressure.error_code,
                current_bytes=current,
                ceiling_bytes=ceiling,
            )
            return

        item = PrefetchQueueItem(
            route=path,
            priority=priority,
            type=QueueItemType.ROUTE,
            timestamp=self.scheduler.now(),
        )
        self._queue[path] = item
        await self._attempt(item)

    def prefetch_on_hover(self, path: str, delay: float | None = None) -> None:
        """Debounced prefetch: restarts the timer on every hover of the same path."""
        if delay is None:
            delay = self.settings.hover_prefetch_delay_ms

        self.cancel_hover_prefetch(path, count=False)
        try:
            token = self.scheduler.schedule(lambda: self._fire_hover(path), delay)
        except RuntimeError:
            logger.warning(f"No running event loop; hover prefetch of {path} dropped")
            return
        self._hover_timers[path] = token
        self.stats.hover_scheduled += 1

    def cancel_hover_prefetch(self, path: str, count: bool = True) -> None:
        """Cancel a pending hover timer. In-flight loads are not affected."""
        token = self._hover_timers.pop(path, None)
        if token is not None:
            self.scheduler.cancel(token)
            if count:
                self.stats.hover_cancelled += 1

    def prefetch_on_focus(self, path: str) -> asyncio.Task[None] | None:
        """Immediate critical prefetch for keyboard focus (no debounce)."""
        return self._spawn(self.prefetch_route(path, Priority.CRITICAL))

    async def prefetch_batch(self, routes: Iterable[PredictedRoute]) -> None:
        """Prefetch routes one at a time, most urgent priority first."""
        ordered = sorted(routes, key=lambda r: Priority(r.priority).rank)
        for route in ordered:
            await self.prefetch_route(route.path, route.priority)

    def is_prefetched(self, path: str) -> bool:
        return path in self._prefetched or self.cache_manager.has(route_marker_key(path))

    # ─── Load Attempts ──────────────────────────────────────────

    async def _attempt(self, item: PrefetchQueueItem) -> None:
        item.status = PrefetchStatus.LOADING
        self.stats.loads_started += 1

        outcome = await self._load_once(item.route, item.retries)

        if self._queue.get(item.route) is not item:
            # Cleared while loading; drop the result
            return

        if outcome.ok:
            self._on_success(item, outcome)
        else:
            self._on_failure(item, outcome)

    async def _load_once(self, path: str, attempt: int) -> LoadOutcome:
        started = self.scheduler.now()
        try:
            await self._loader(path)
        except Exception as e:
            return LoadOutcome(
                path=path,
                ok=False,
                duration_ms=self.scheduler.now() - started,
                error=PrefetchLoadError(path, attempt, cause=e),
            )
        return LoadOutcome(path=path, ok=True, duration_ms=self.scheduler.now() - started)

    def _on_success(self, item: PrefetchQueueItem, outcome: LoadOutcome) -> None:
        self.cache_manager.set(
            route_marker_key(item.route),
            {"prefetched": True, "path": item.route},
            self.settings.route_marker_ttl_ms,
        )
        item.status = PrefetchStatus.COMPLETE
        item.last_error = None
        self._prefetched.add(item.route)

        self.stats.loads_succeeded += 1
        self.load_latency.add(outcome.duration_ms)
        log_with_context(
            "info",
            "route_prefetched",
            path=item.route,
            priority=item.priority.value,
            retries=item.retries,
            duration_ms=outcome.duration_ms,
        )

    def _on_failure(self, item: PrefetchQueueItem, outcome: LoadOutcome) -> None:
        error = outcome.error
        item.status = PrefetchStatus.FAILED
        item.last_error = str(error.cause if error and error.cause else error)
        self.stats.loads_failed += 1

        max_attempts = self.settings.prefetch_retry_max_attempts
        if item.retries < max_attempts:
            delay = self.settings.retry_delay_ms(item.retries)
            item.retries += 1
            self._retry_timers[item.route] = self.scheduler.schedule(
                lambda: self._fire_retry(item), delay
            )
            self.stats.retries_scheduled += 1
            log_with_context(
                "warning",
                "route_prefetch_failed",
                path=item.route,
                error=item.last_error,
                retry=item.retries,
                max_attempts=max_attempts,
                retry_in_ms=delay,
            )
            return

        self.stats.abandoned += 1
        log_with_context(
            "error",
            "route_prefetch_abandoned",
            path=item.route,
            error=item.last_error,
            error_code=error.error_code if error else None,
            retries=item.retries,
        )

    # ─── Timer Callbacks ────────────────────────────────────────

    def _fire_hover(self, path: str) -> None:
        self._hover_timers.pop(path, None)
        self._spawn(self.prefetch_route(path, Priority.HIGH))

    def _fire_retry(self, item: PrefetchQueueItem) -> None:
        self._retry_timers.pop(item.route, None)
        if self._queue.get(item.route) is not item:
            return
        self._spawn(self._attempt(item))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop; prefetch request dropped")
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_in_flight(self, path: str) -> bool:
        item = self._queue.get(path)
        if item is None:
            return False
        if item.status in (PrefetchStatus.PENDING, PrefetchStatus.LOADING):
            return True
        return path in self._retry_timers

    async def wait_for_pending(self) -> None:
        """Wait until every background prefetch task spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ─── Introspection ──────────────────────────────────────────

    def get_queue_status(self) -> list[PrefetchQueueItem]:
        """Snapshot of every queue item."""
        return [dataclasses.replace(item) for item in self._queue.values()]

    def get_item(self, path: str) -> PrefetchQueueItem | None:
        item = self._queue.get(path)
        return dataclasses.replace(item) if item else None

    def clear(self) -> None:
        """Cancel all timers and forget queue and prefetched state."""
        for token in list(self._hover_timers.values()) + list(self._retry_timers.values()):
            self.scheduler.cancel(token)
        self._hover_timers.clear()
        self._retry_timers.clear()
        self._queue.clear()
        self._prefetched.clear()

    def get_stats(self) -> dict[str, Any]:
        """Get prefetcher statistics."""
        status_counts = {status.value: 0 for status in PrefetchStatus}
        for item in self._queue.values():
            status_counts[item.status.value] += 1

        return {
            "queue_size": len(self._queue),
            "queue_status": status_counts,
            "prefetched_routes": len(self._prefetched),
            "pending_hover_timers": len(self._hover_timers),
            "pending_retries": len(self._retry_timers),
            "loads_started": self.stats.loads_started,
            "loads_succeeded": self.stats.loads_succeeded,
            "loads_failed": self.stats.loads_failed,
            "retries_scheduled": self.stats.retries_scheduled,
            "abandoned": self.stats.abandoned,
            "skipped_duplicate": self.stats.skipped_duplicate,
            "skipped_memory_pressure": self.stats.skipped_memory_pressure,
            "hover_scheduled": self.stats.hover_scheduled,
            "hover_cancelled": self.stats.hover_cancelled,
            "load_latency_ms": self.load_latency.to_dict(),
        }
