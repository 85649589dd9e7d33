"""OpenTelemetry tracing configuration for the profiler trigger engine."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from profiler_trigger.infrastructure.config import get_config

TRACER_NAME = "profiler_trigger"


def setup_tracing() -> trace.Tracer:
    """Configure OpenTelemetry tracing.

    Spans go to the OTLP collector when ``observability.otlp_endpoint`` is
    set, otherwise to the console.
    """
    from profiler_trigger import __version__

    config = get_config()

    resource = Resource.create(
        {
            "service.name": config.observability.service_name,
            "service.version": __version__,
            "deployment.environment": config.observability.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if config.observability.otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.observability.otlp_endpoint, insecure=True)
    else:
        exporter = ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)

    return trace.get_tracer(TRACER_NAME)


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name)


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run the body inside a span on the engine tracer.

    Args:
        name: Name of the span
        attributes: Optional attributes to set on the span

    Yields:
        The created span
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        yield span
