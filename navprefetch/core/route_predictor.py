"""
Route Predictor - Next-Navigation Scoring
=========================================

Scores the routes a user is likely to open next from the current page.
Candidates are the current route's children in the role-gated route graph;
each gets a coarse priority and a confidence built from:

- direct-child boost (+0.3)
- historical transition frequency (+0.05 per transition, capped at +0.2)
- dwell time (+0.1 after 5s on the page)
- recency (+0.15 if the route is in the recent history)

On a slow network only the single best candidate is returned.
"""

import logging
from collections import deque
from typing import Any

from ..config import NavigationSettings
from ..scheduler import system_clock_ms
from ..types import (
    Clock,
    NavigationContext,
    NavigationHistoryEntry,
    NetworkProbe,
    PredictedRoute,
    Priority,
)
from .route_graph import RouteGraph, default_route_graph

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.5
DIRECT_CHILD_BOOST = 0.3
TRANSITION_BOOST = 0.05
MAX_TRANSITION_BOOST = 0.2
DWELL_BOOST = 0.1
RECENT_HISTORY_BOOST = 0.15

LONG_DWELL_MS = 5000
FREQUENT_TRANSITION_COUNT = 3


class RoutePredictor:
    """
    Predicts next routes from the route graph and navigation history.

    Output is deterministic: the same graph, history and context always
    produce the same ordered predictions.
    """

    def __init__(
        self,
        route_graph: RouteGraph | None = None,
        settings: NavigationSettings | None = None,
        network_probe: NetworkProbe | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the predictor.

        Args:
            route_graph: Immutable route graph (defaults to the dashboard graph)
            settings: Navigation settings (fan-out, slow-network threshold, history size)
            network_probe: Callable returning current downlink in Mbps, or None
            clock: Millisecond clock used to timestamp history entries
        """
        self.route_graph = route_graph or default_route_graph()
        self.settings = settings or NavigationSettings()
        self.network_probe = network_probe
        self._clock = clock or system_clock_ms

        self._history: deque[NavigationHistoryEntry] = deque(
            maxlen=self.settings.history_limit
        )
        self._predictions_made = 0

    # ─── Prediction ─────────────────────────────────────────────

    def predict_next_routes(self, context: NavigationContext) -> list[PredictedRoute]:
        """
        Predict the routes the user is most likely to visit next.

        Returns:
            PredictedRoute list sorted by confidence descending (declared
            child order breaks ties), truncated to the fan-out limit
        """
        children = self.route_graph.children(context.current_route)
        if not children:
            return []

        accessible = [
            child for child in children if self.route_graph.allows(child, context.user_role)
        ]

        predictions = [
            PredictedRoute(
                path=child,
                priority=self._calculate_priority(child, context),
                confidence=self._calculate_confidence(child, context),
            )
            for child in accessible
        ]

        # sorted() is stable, so equal confidences keep declared order
        predictions = sorted(predictions, key=lambda p: p.confidence, reverse=True)

        self._predictions_made += 1
        return predictions[: self._prediction_limit()]

    def get_priority(self, route: str, context: NavigationContext) -> Priority:
        """Priority of ``route`` as a next step from ``context.current_route``."""
        return self._calculate_priority(route, context)

    def _calculate_priority(self, route: str, context: NavigationContext) -> Priority:
        if self.route_graph.is_child(context.current_route, route):
            return Priority.CRITICAL

        if self.get_transition_count(context.current_route, route) > FREQUENT_TRANSITION_COUNT:
            return Priority.HIGH

        if self.route_graph.allows(route, context.user_role):
            return Priority.MEDIUM

        return Priority.LOW

    def _calculate_confidence(self, route: str, context: NavigationContext) -> float:
        confidence = BASE_CONFIDENCE

        if self.route_graph.is_child(context.current_route, route):
            confidence += DIRECT_CHILD_BOOST

        transitions = self.get_transition_count(context.current_route, route)
        confidence += min(transitions * TRANSITION_BOOST, MAX_TRANSITION_BOOST)

        if context.time_on_page > LONG_DWELL_MS:
            confidence += DWELL_BOOST

        if route in context.recent_history:
            confidence += RECENT_HISTORY_BOOST

        return min(1.0, max(0.0, confidence))

    def _prediction_limit(self) -> int:
        if self.is_slow_network():
            return 1
        return self.settings.max_predicted_routes

    def is_slow_network(self) -> bool:
        """True if the probed downlink is below the slow-network threshold."""
        if self.network_probe is None:
            return False
        try:
            downlink = self.network_probe()
        except Exception as e:
            logger.debug(f"Network probe failed, assuming fast network: {e}")
            return False
        if downlink is None:
            return False
        return downlink < self.settings.slow_network_threshold_mbps

    # ─── History ────────────────────────────────────────────────

    def record_navigation(self, from_route: str, to_route: str, user_role: str) -> None:
        """Append a navigation to the bounded history (oldest dropped first)."""
        self._history.append(
            NavigationHistoryEntry(
                from_route=from_route,
                to_route=to_route,
                role=str(getattr(user_role, "value", user_role)),
                timestamp=self._clock(),
            )
        )

    def get_transition_count(self, from_route: str, to_route: str) -> int:
        """How many recorded navigations went ``from_route`` → ``to_route``."""
        return sum(
            1 for entry in self._history
            if entry.from_route == from_route and entry.to_route == to_route
        )

    @property
    def history(self) -> tuple[NavigationHistoryEntry, ...]:
        """Snapshot of the recorded history, oldest first."""
        return tuple(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    # ─── Stats ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get predictor statistics."""
        return {
            "routes": self.route_graph.route_count,
            "history_size": len(self._history),
            "history_limit": self.settings.history_limit,
            "predictions_made": self._predictions_made,
            "slow_network": self.is_slow_network(),
        }
