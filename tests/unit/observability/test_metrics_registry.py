"""Tests for the Prometheus metrics registry."""

from prometheus_client import CollectorRegistry

from leasehold.observability.metrics import MetricsRegistry, NoOpMetric, get_metrics


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_enabled_registers_metrics(self) -> None:
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(enabled=True, registry=registry)

        metrics.acquire_total.labels(outcome="acquired").inc()
        metrics.acquire_total.labels(outcome="contended").inc(2)
        metrics.renewals_active.set(3)

        assert registry.get_sample_value(
            "leasehold_acquire_total", {"outcome": "acquired"}
        ) == 1.0
        assert registry.get_sample_value(
            "leasehold_acquire_total", {"outcome": "contended"}
        ) == 2.0
        assert registry.get_sample_value("leasehold_renewals_active") == 3.0

        output = metrics.generate_latest()
        assert b"leasehold_leases_lost_total" in output

    def test_initialize_is_idempotent(self) -> None:
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(enabled=True, registry=registry)
        counter = metrics.release_total

        # Re-registering on the same registry would raise
        metrics.initialize(enabled=True, registry=registry)

        assert metrics.release_total is counter

    def test_disabled_uses_noop(self) -> None:
        metrics = MetricsRegistry()
        metrics.initialize(enabled=False)

        assert isinstance(metrics.acquire_total, NoOpMetric)
        metrics.acquire_total.labels(outcome="error").inc()
        metrics.renewals_active.dec()
        assert metrics.generate_latest() == b"# Metrics disabled\n"

    def test_get_metrics_returns_initialized_global(self) -> None:
        metrics = get_metrics()

        assert metrics is get_metrics()
        assert metrics._initialized is True
