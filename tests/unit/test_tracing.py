"""Unit tests for tracing helpers."""

import pytest
from opentelemetry import trace

from profiler_trigger.infrastructure.tracing import get_tracer, trace_span


@pytest.mark.unit
class TestTraceSpan:
    """Span context manager."""

    def test_span_is_current_inside_block(self):
        """Span is the active span for the duration of the block."""
        with trace_span("alerting.dispatch", {"trigger.id": "trigger-1"}) as span:
            assert trace.get_current_span() is span
        assert trace.get_current_span() is not span

    def test_without_attributes(self):
        """Attributes are optional."""
        with trace_span("alerting.tick") as span:
            assert span is not None

    def test_get_tracer(self):
        """Default tracer is returned without setup."""
        assert get_tracer() is not None
