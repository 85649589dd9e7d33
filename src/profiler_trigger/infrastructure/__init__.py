"""Infrastructure components: configuration, logging, metrics, tracing."""

from profiler_trigger.infrastructure.config import Config, get_config
from profiler_trigger.infrastructure.logging import get_logger, setup_logging
from profiler_trigger.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from profiler_trigger.infrastructure.tracing import get_tracer, setup_tracing, trace_span

__all__ = [
    "Config",
    "get_config",
    "get_logger",
    "setup_logging",
    "MetricsRegistry",
    "get_metrics",
    "setup_metrics",
    "get_tracer",
    "setup_tracing",
    "trace_span",
]
