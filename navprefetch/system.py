"""
NavigationSystem - Wires Prediction Into Prefetching
====================================================

One shared cache, one predictor and both prefetchers, driven by route
changes and UI intent (hover, focus). Hosts construct one instance per
session and call ``on_route_change`` whenever the user lands on a page.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Mapping, Sequence
from typing import Any

from .config import NavigationSettings
from .core.cache_manager import CacheManager
from .core.route_graph import RouteGraph
from .core.route_predictor import RoutePredictor
from .error_instrumentation import create_navigation_context, navigation_scope
from .prefetch.data_prefetcher import DataPrefetcher
from .prefetch.route_prefetcher import RoutePrefetcher
from .scheduler import AsyncioScheduler, Scheduler
from .types import (
    Clock,
    DataFetcher,
    NavigationContext,
    NetworkProbe,
    PredictedRoute,
    Priority,
    RouteLoader,
    UserRole,
)

logger = logging.getLogger(__name__)


class NavigationSystem:
    """
    Facade over the navigation acceleration components.

    Example:
        >>> system = NavigationSystem(loader=load_route_module)
        >>> predictions = await system.on_route_change("/dashboard", "user")
        >>> system.is_prefetched("/dashboard/deposit")
        True
    """

    def __init__(
        self,
        loader: RouteLoader,
        data_requirements: Mapping[str, Sequence[DataFetcher]] | None = None,
        settings: NavigationSettings | None = None,
        route_graph: RouteGraph | None = None,
        network_probe: NetworkProbe | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        session_id: str | None = None,
    ) -> None:
        self.settings = settings or NavigationSettings()
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()
        clock = clock or self.scheduler.now

        self.cache: CacheManager[Any] = CacheManager(self.settings, clock=clock)
        self.predictor = RoutePredictor(route_graph, self.settings, network_probe, clock)
        self.route_prefetcher = RoutePrefetcher(self.cache, loader, self.settings, self.scheduler)
        self.data_prefetcher = DataPrefetcher(self.cache, data_requirements)

        self._session = create_navigation_context(session_id=session_id)
        self._current_route: str | None = None
        self._recent_history: deque[str] = deque(maxlen=self.settings.recent_history_limit)

    @property
    def session_id(self) -> str:
        return self._session["session_id"]

    @property
    def current_route(self) -> str | None:
        return self._current_route

    @property
    def recent_history(self) -> list[str]:
        """Previously visited routes, most recent last."""
        return list(self._recent_history)

    def _scope_fields(self, user_role: str | None, current_route: str | None) -> dict[str, Any]:
        return {
            **self._session,
            "user_role": user_role or self._session.get("user_role"),
            "current_route": current_route,
        }

    # ─── Route Changes ──────────────────────────────────────────

    async def on_route_change(
        self,
        route: str,
        user_role: UserRole | str,
        time_on_page_ms: float = 0,
    ) -> list[PredictedRoute]:
        """
        Record the navigation, predict next routes and prefetch them.

        Route bundles are prefetched as one priority-ordered batch while the
        predicted routes' data is fetched concurrently.

        Returns:
            The predictions that were prefetched
        """
        role = UserRole(user_role)
        previous = self._current_route

        if previous is not None and previous != route:
            self.predictor.record_navigation(previous, route, role)
            self._recent_history.append(previous)
        self._current_route = route
        self._session["user_role"] = role.value

        context = NavigationContext(
            current_route=route,
            user_role=role,
            recent_history=list(self._recent_history),
            time_on_page=time_on_page_ms,
        )

        with navigation_scope(**self._scope_fields(role.value, route)):
            predictions = self.predictor.predict_next_routes(context)
            logger.debug(f"Predicted {[p.path for p in predictions]} from {route}")

            await asyncio.gather(
                self.route_prefetcher.prefetch_batch(predictions),
                *(self.data_prefetcher.prefetch_data(p.path) for p in predictions),
            )

        return predictions

    # ─── Direct Intent ──────────────────────────────────────────

    async def prefetch(self, path: str, priority: Priority | str = Priority.MEDIUM) -> None:
        """Prefetch one route's bundle and data."""
        with navigation_scope(**self._scope_fields(None, self._current_route)):
            await asyncio.gather(
                self.route_prefetcher.prefetch_route(path, priority),
                self.data_prefetcher.prefetch_data(path),
            )

    def prefetch_on_hover(self, path: str, delay: float | None = None) -> None:
        self.route_prefetcher.prefetch_on_hover(path, delay)

    def prefetch_on_focus(self, path: str) -> None:
        self.route_prefetcher.prefetch_on_focus(path)

    def cancel_prefetch(self, path: str) -> None:
        """Cancel a pending hover prefetch for ``path``."""
        self.route_prefetcher.cancel_hover_prefetch(path)

    def is_prefetched(self, path: str) -> bool:
        return self.route_prefetcher.is_prefetched(path)

    def is_data_ready(self, path: str) -> bool:
        return self.data_prefetcher.is_data_ready(path)

    async def wait_for_pending(self) -> None:
        await self.route_prefetcher.wait_for_pending()

    # ─── Maintenance ────────────────────────────────────────────

    def relieve_memory_pressure(self) -> list[str]:
        """Evict least recently used entries if the cache is over its ceiling."""
        if not self.cache.should_evict():
            return []
        return self.cache.relieve_memory_pressure()

    def clear(self) -> None:
        """Forget all cached, queued and historical state."""
        self.route_prefetcher.clear()
        self.cache.clear()
        self.predictor.clear_history()
        self._recent_history.clear()
        self._current_route = None

    def get_stats(self) -> dict[str, Any]:
        """Aggregate statistics from every component."""
        return {
            "session_id": self.session_id,
            "current_route": self._current_route,
            "cache": self.cache.get_stats(),
            "predictor": self.predictor.get_stats(),
            "route_prefetcher": self.route_prefetcher.get_stats(),
            "data_prefetcher": self.data_prefetcher.get_stats(),
        }
