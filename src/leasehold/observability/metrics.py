"""Prometheus metrics for lease coordination.

Provides metrics collection and exposure:
- Acquire outcomes (acquired, contended, error)
- Renewal ticks (ok, lost, error) and active renewals
- Lease losses and releases

Usage:
    from leasehold.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.acquire_total.labels(outcome="acquired").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, generate_latest

from leasehold.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass

    def dec(self, amount: float = 1) -> None:
        """No-op."""
        pass

    def set(self, value: float) -> None:
        """No-op."""
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    acquire_total: Any = None
    release_total: Any = None
    renewals_total: Any = None
    leases_lost_total: Any = None
    renewals_active: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if enabled is None:
            enabled = settings.enable_metrics

        if not enabled:
            logger.info("Metrics are disabled")
            self._disable()
            self._initialized = True
            return

        self._registry = registry

        self.acquire_total = Counter(
            "leasehold_acquire_total",
            "Lease acquire attempts",
            ["outcome"],
            registry=registry,
        )

        self.release_total = Counter(
            "leasehold_release_total",
            "Lease releases",
            registry=registry,
        )

        self.renewals_total = Counter(
            "leasehold_renewals_total",
            "Lease renewal ticks",
            ["result"],
            registry=registry,
        )

        self.leases_lost_total = Counter(
            "leasehold_leases_lost_total",
            "Leases found missing by a renewal tick",
            registry=registry,
        )

        self.renewals_active = Gauge(
            "leasehold_renewals_active",
            "Leases with a scheduled renewal in this process",
            registry=registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def _disable(self) -> None:
        noop = NoOpMetric()
        self.acquire_total = noop
        self.release_total = noop
        self.renewals_total = noop
        self.leases_lost_total = noop
        self.renewals_active = noop

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
