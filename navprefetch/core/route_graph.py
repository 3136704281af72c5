"""
RouteGraph - Role-Gated Navigation Graph
========================================

Immutable directed graph of the application's routes using NetworkX.
Each node carries its RouteDefinition (allowed roles, ordered children);
an edge parent → child means the child is one click away.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import networkx as nx

from ..exceptions import NavigationConfigError
from ..types import RouteDefinition, UserRole

logger = logging.getLogger(__name__)

ALL_ROLES = (UserRole.USER, UserRole.AGENT, UserRole.ADMIN)
STAFF_ROLES = (UserRole.AGENT, UserRole.ADMIN)
ADMIN_ONLY = (UserRole.ADMIN,)


class RouteGraph:
    """
    Frozen route graph.

    Children keep their declared order (prediction ties are broken by it),
    so the ordered tuple on each RouteDefinition is authoritative; the
    NetworkX graph answers structural questions.
    """

    def __init__(self, routes: Iterable[RouteDefinition]):
        graph: nx.DiGraph = nx.DiGraph()

        for route in routes:
            if graph.has_node(route.path) and "definition" in graph.nodes[route.path]:
                raise NavigationConfigError(
                    f"duplicate route definition for '{route.path}'", field_name="routes"
                )
            graph.add_node(route.path, definition=route)
            for child in route.children:
                graph.add_edge(route.path, child)

        undefined = sorted(n for n, data in graph.nodes(data=True) if "definition" not in data)
        if undefined:
            logger.debug(f"Route graph references undefined routes: {undefined}")

        self._graph = nx.freeze(graph)
        logger.info(
            f"RouteGraph initialized: routes={self.route_count}, "
            f"edges={self._graph.number_of_edges()}"
        )

    @property
    def graph(self) -> nx.DiGraph:
        """Access the underlying (frozen) NetworkX graph."""
        return self._graph

    @property
    def route_count(self) -> int:
        """Number of defined routes."""
        return sum(1 for _ in self)

    def __iter__(self) -> Iterator[RouteDefinition]:
        for _, data in self._graph.nodes(data=True):
            if "definition" in data:
                yield data["definition"]

    def __contains__(self, path: object) -> bool:
        return self.get(path) is not None  # type: ignore[arg-type]

    def get(self, path: str) -> RouteDefinition | None:
        """Definition for ``path``, or None for unknown routes."""
        if not self._graph.has_node(path):
            return None
        return self._graph.nodes[path].get("definition")

    def children(self, path: str) -> tuple[str, ...]:
        """Declared children of ``path`` in order (empty for unknown routes)."""
        definition = self.get(path)
        return definition.children if definition else ()

    def is_child(self, parent: str, child: str) -> bool:
        return self._graph.has_edge(parent, child)

    def allows(self, path: str, role: UserRole | str) -> bool:
        """True if ``path`` is defined and ``role`` may visit it."""
        definition = self.get(path)
        return definition is not None and definition.allows(role)


def default_route_graph() -> RouteGraph:
    """Route graph of the fintech dashboard (public, user, agent and admin pages)."""
    routes = [
        # Public
        RouteDefinition.of("/", ALL_ROLES, ["/login", "/register"]),
        RouteDefinition.of("/login", ALL_ROLES, ["/dashboard"]),
        RouteDefinition.of("/register", ALL_ROLES, ["/dashboard"]),
        # User
        RouteDefinition.of(
            "/dashboard",
            ALL_ROLES,
            [
                "/dashboard/deposit",
                "/dashboard/withdraw",
                "/dashboard/send",
                "/dashboard/statements",
                "/dashboard/profile",
            ],
        ),
        RouteDefinition.of("/dashboard/deposit", ALL_ROLES, ["/dashboard/statements", "/dashboard"]),
        RouteDefinition.of("/dashboard/withdraw", ALL_ROLES, ["/dashboard/statements", "/dashboard"]),
        RouteDefinition.of("/dashboard/send", ALL_ROLES, ["/dashboard/statements", "/dashboard"]),
        RouteDefinition.of("/dashboard/statements", ALL_ROLES, ["/dashboard", "/dashboard/deposit"]),
        RouteDefinition.of("/dashboard/profile", ALL_ROLES, ["/dashboard"]),
        RouteDefinition.of("/dashboard/airtime", ALL_ROLES, ["/dashboard/statements", "/dashboard"]),
        RouteDefinition.of("/dashboard/notifications", ALL_ROLES, ["/dashboard"]),
        # Agent
        RouteDefinition.of(
            "/dashboard/agent",
            STAFF_ROLES,
            [
                "/dashboard/agent/deposit",
                "/dashboard/agent/withdraw",
                "/dashboard/agent/transfer",
                "/dashboard/agent/airtime",
            ],
        ),
        RouteDefinition.of("/dashboard/agent/deposit", STAFF_ROLES, ["/dashboard/agent", "/dashboard/statements"]),
        RouteDefinition.of("/dashboard/agent/withdraw", STAFF_ROLES, ["/dashboard/agent", "/dashboard/statements"]),
        RouteDefinition.of("/dashboard/agent/transfer", STAFF_ROLES, ["/dashboard/agent", "/dashboard/statements"]),
        RouteDefinition.of("/dashboard/agent/airtime", STAFF_ROLES, ["/dashboard/agent", "/dashboard/statements"]),
        # Admin
        RouteDefinition.of(
            "/dashboard/admin",
            ADMIN_ONLY,
            [
                "/dashboard/admin/users",
                "/dashboard/admin/deposits",
                "/dashboard/admin/currencies",
                "/dashboard/admin/sms",
            ],
        ),
        RouteDefinition.of("/dashboard/admin/users", ADMIN_ONLY, ["/dashboard/admin"]),
        RouteDefinition.of("/dashboard/admin/deposits", ADMIN_ONLY, ["/dashboard/admin"]),
        RouteDefinition.of("/dashboard/admin/currencies", ADMIN_ONLY, ["/dashboard/admin"]),
        RouteDefinition.of("/dashboard/admin/sms", ADMIN_ONLY, ["/dashboard/admin"]),
    ]
    return RouteGraph(routes)
