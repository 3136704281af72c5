"""Navigation prefetch settings.

Named constants for cache sizing, TTLs, hover debounce, prediction fan-out,
retry backoff and slow-network detection. Every value can be overridden by
keyword argument or by an environment variable prefixed ``NAV_PREFETCH_``
(e.g. ``NAV_PREFETCH_MAX_PREDICTED_ROUTES=5``). Invalid values fail at
construction.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CACHE_MAX_SIZE_MB = 100
CACHE_MAX_SIZE_BYTES = CACHE_MAX_SIZE_MB * 1024 * 1024
DEFAULT_CACHE_TTL_MS = 5 * 60 * 1000
ROUTE_MARKER_TTL_MS = 5 * 60 * 1000
HOVER_PREFETCH_DELAY_MS = 100
MAX_PREDICTED_ROUTES = 3
PREFETCH_RETRY_MAX_ATTEMPTS = 3
PREFETCH_RETRY_BASE_DELAY_MS = 1000
SLOW_NETWORK_THRESHOLD_MBPS = 1.5
NAVIGATION_HISTORY_LIMIT = 100
RECENT_HISTORY_LIMIT = 10
MEMORY_PRESSURE_REDUCTION_PERCENT = 50
DEFAULT_ENTRY_SIZE_BYTES = 1024


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


class NavigationSettings(BaseSettings):
    """Environment-driven knobs for the navigation acceleration layer."""

    model_config = SettingsConfigDict(
        env_prefix="NAV_PREFETCH_", extra="ignore", frozen=True
    )

    cache_max_size_bytes: int = Field(default=CACHE_MAX_SIZE_BYTES)
    default_cache_ttl_ms: int = Field(default=DEFAULT_CACHE_TTL_MS)
    route_marker_ttl_ms: int = Field(default=ROUTE_MARKER_TTL_MS)
    hover_prefetch_delay_ms: int = Field(default=HOVER_PREFETCH_DELAY_MS)
    max_predicted_routes: int = Field(default=MAX_PREDICTED_ROUTES)
    prefetch_retry_max_attempts: int = Field(default=PREFETCH_RETRY_MAX_ATTEMPTS)
    prefetch_retry_base_delay_ms: int = Field(default=PREFETCH_RETRY_BASE_DELAY_MS)
    slow_network_threshold_mbps: float = Field(default=SLOW_NETWORK_THRESHOLD_MBPS)
    history_limit: int = Field(default=NAVIGATION_HISTORY_LIMIT)
    recent_history_limit: int = Field(default=RECENT_HISTORY_LIMIT)
    memory_pressure_reduction_percent: int = Field(
        default=MEMORY_PRESSURE_REDUCTION_PERCENT
    )
    default_entry_size_bytes: int = Field(default=DEFAULT_ENTRY_SIZE_BYTES)

    @field_validator(
        "cache_max_size_bytes",
        "default_cache_ttl_ms",
        "route_marker_ttl_ms",
        "max_predicted_routes",
        "history_limit",
        "recent_history_limit",
        "default_entry_size_bytes",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        _require(value > 0, "value must be positive")
        return value

    @field_validator(
        "hover_prefetch_delay_ms",
        "prefetch_retry_max_attempts",
        "prefetch_retry_base_delay_ms",
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        _require(value >= 0, "value must be non-negative")
        return value

    @field_validator("slow_network_threshold_mbps")
    @classmethod
    def _threshold_non_negative(cls, value: float) -> float:
        _require(value >= 0.0, "slow_network_threshold_mbps must be non-negative")
        return value

    @field_validator("memory_pressure_reduction_percent")
    @classmethod
    def _percent_range(cls, value: int) -> int:
        _require(
            0 < value < 100,
            "memory_pressure_reduction_percent must be between 1 and 99",
        )
        return value

    @property
    def memory_pressure_target_bytes(self) -> int:
        """Size the cache is trimmed to when relieving memory pressure."""
        keep_percent = 100 - self.memory_pressure_reduction_percent
        return self.cache_max_size_bytes * keep_percent // 100

    def retry_delay_ms(self, retries: int) -> int:
        """Backoff delay before retry number ``retries`` (zero-based)."""
        return self.prefetch_retry_base_delay_ms * (2**retries)


def get_default_settings() -> NavigationSettings:
    """Build settings from defaults and the current environment."""
    return NavigationSettings()
