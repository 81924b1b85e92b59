"""Observability module for leasehold.

Provides metrics and structured logging:
- Prometheus counters for acquires, renewals and lease losses
- JSON structured logging with lease context
"""

from leasehold.observability.logging import (
    LogContext,
    configure_logging,
    instance_id_var,
    lease_name_var,
)
from leasehold.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "lease_name_var",
    "instance_id_var",
    # Metrics
    "MetricsRegistry",
    "metrics_registry",
    "get_metrics",
]
