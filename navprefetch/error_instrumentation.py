"""
Error Instrumentation Module
Structured event logging and latency tracking for the navigation layer.

Every prefetch event is logged with the navigation context that was active
when it happened (session, role, current route), so a failed prefetch can
be tied back to the page the user was on.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

from .logging_config import CONTEXT_FIELDS

logger = logging.getLogger(__name__)

navigation_context: ContextVar[dict[str, Any]] = ContextVar(
    "navigation_context", default={}
)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def create_navigation_context(
    user_role: str | None = None,
    current_route: str | None = None,
    session_id: str | None = None,
) -> dict[str, Any]:
    """
    Create context describing the navigation session.

    All events logged while it is active include these fields.
    """
    return {
        "session_id": session_id or str(uuid.uuid4()),
        "user_role": user_role,
        "current_route": current_route,
    }


def get_navigation_context() -> dict[str, Any]:
    """Get the current navigation context (empty if none is set)."""
    return dict(navigation_context.get())


@contextmanager
def navigation_scope(**fields: Any) -> Iterator[dict[str, Any]]:
    """Temporarily merge ``fields`` into the navigation context."""
    merged = {**navigation_context.get(), **fields}
    token = navigation_context.set(merged)
    try:
        yield merged
    finally:
        navigation_context.reset(token)


def log_with_context(level: str, message: str, **kwargs: Any) -> None:
    """
    Log an event as one JSON line with the navigation context attached.

    Context fields are also set on the record for ``StructuredFormatter``.

    Example:
        >>> log_with_context("warning", "route_prefetch_failed", path="/dashboard", attempt=1)
    """
    log_entry = {
        **navigation_context.get(),
        "message": message,
        "level": level.upper(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **kwargs,
    }
    extra = {name: log_entry[name] for name in CONTEXT_FIELDS if log_entry.get(name) is not None}
    logger.log(
        _LEVELS.get(level.upper(), logging.INFO),
        json.dumps(log_entry, default=str),
        extra=extra,
    )


class LatencyMetrics:
    """Track and summarize operation latency (milliseconds)."""

    def __init__(self, operation: str, max_samples: int = 1000):
        self.operation = operation
        self.max_samples = max_samples
        self.latencies: list[float] = []

    def _percentile(self, fraction: float) -> float:
        if not self.latencies:
            return 0.0
        sorted_latencies = sorted(self.latencies)
        index = max(0, int(len(sorted_latencies) * fraction) - 1)
        return sorted_latencies[index]

    @property
    def p50(self) -> float:
        if not self.latencies:
            return 0.0
        sorted_latencies = sorted(self.latencies)
        return sorted_latencies[len(sorted_latencies) // 2]

    @property
    def p95(self) -> float:
        return self._percentile(0.95)

    @property
    def p99(self) -> float:
        return self._percentile(0.99)

    def add(self, latency_ms: float) -> None:
        self.latencies.append(latency_ms)
        if len(self.latencies) > self.max_samples:
            self.latencies.pop(0)

    def reset(self) -> None:
        self.latencies.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
            "count": len(self.latencies),
        }
