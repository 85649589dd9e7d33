"""Prometheus metrics for the profiler trigger engine."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all alerting engine metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Ingestion metrics
        self.samples_ingested_total = Counter(
            "profiler_trigger_samples_ingested_total",
            "Metric samples accepted for evaluation",
            ["metric_type"],
            registry=self._registry,
        )

        self.samples_rejected_total = Counter(
            "profiler_trigger_samples_rejected_total",
            "Samples discarded before evaluation",
            ["reason"],  # out_of_order, malformed, unknown_metric
            registry=self._registry,
        )

        self.request_events_total = Counter(
            "profiler_trigger_request_events_total",
            "Request outcomes ingested",
            ["success"],
            registry=self._registry,
        )

        # Arbitration metrics
        self.triggers_fired_total = Counter(
            "profiler_trigger_triggers_fired_total",
            "Captures started by the engine",
            ["reason", "channel"],
            registry=self._registry,
        )

        self.candidates_dropped_total = Counter(
            "profiler_trigger_candidates_dropped_total",
            "Qualified candidates that did not fire",
            ["channel", "cause"],  # cause: cooldown, in_progress, precedence
            registry=self._registry,
        )

        self.sink_failures_total = Counter(
            "profiler_trigger_sink_failures_total",
            "Captures the trigger sink failed to start",
            registry=self._registry,
        )

        # Capture metrics
        self.capture_in_progress = Gauge(
            "profiler_trigger_capture_in_progress",
            "1 while an engine-initiated capture is running",
            registry=self._registry,
        )

        self.capture_duration_seconds = Histogram(
            "profiler_trigger_capture_duration_seconds",
            "Time from trigger to capture completion",
            ["outcome"],
            buckets=(1, 5, 10, 30, 60, 120, 300, 600),
            registry=self._registry,
        )

        # Configuration metrics
        self.configuration_updates_total = Counter(
            "profiler_trigger_configuration_updates_total",
            "Configuration replacement attempts",
            ["status"],  # accepted, rejected
            registry=self._registry,
        )

        self.info = Info(
            "profiler_trigger",
            "Profiler trigger engine information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8009, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from profiler_trigger import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
