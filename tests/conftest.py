"""Pytest configuration and fixtures for profiler_trigger tests."""

from __future__ import annotations

from typing import Callable, Generator, Optional

import pytest
from prometheus_client import CollectorRegistry

from profiler_trigger.adapters.outbound.clock import ManualClock
from profiler_trigger.application.alerting_engine import AlertingEngine
from profiler_trigger.domain.entities.trigger import CaptureOutcome, TriggerEvent
from profiler_trigger.domain.value_objects.identifiers import CaptureHandle
from profiler_trigger.infrastructure.config import get_config
from profiler_trigger.infrastructure.container import Container
from profiler_trigger.infrastructure.metrics import MetricsRegistry
from profiler_trigger.ports.outbound.trigger_sink import SinkUnavailable


class RecordingSink:
    """TriggerSink that records every capture it is asked to start."""

    def __init__(self) -> None:
        self.events: list[TriggerEvent] = []
        self.failures_left = 0
        self.error: Exception = SinkUnavailable("profiler busy")
        self.on_start: Optional[Callable[[CaptureHandle], None]] = None

    def fail_next(self, times: int = 1, error: Exception | None = None) -> None:
        """Make the next ``times`` start_capture calls raise."""
        self.failures_left = times
        if error is not None:
            self.error = error

    def start_capture(self, event: TriggerEvent) -> CaptureHandle:
        if self.failures_left > 0:
            self.failures_left -= 1
            raise self.error
        self.events.append(event)
        handle = CaptureHandle(event.trigger_id)
        if self.on_start is not None:
            self.on_start(handle)
        return handle

    @property
    def fired_at(self) -> list[float]:
        return [e.fired_at for e in self.events]


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manual clock starting at t=0."""
    return ManualClock()


@pytest.fixture
def sink() -> RecordingSink:
    """Provide a recording trigger sink."""
    return RecordingSink()


@pytest.fixture
def collector_registry() -> CollectorRegistry:
    """Provide an isolated Prometheus collector registry."""
    return CollectorRegistry(auto_describe=True)


@pytest.fixture
def metrics_registry(collector_registry: CollectorRegistry) -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    return MetricsRegistry(registry=collector_registry)


@pytest.fixture
def engine(
    sink: RecordingSink, clock: ManualClock, metrics_registry: MetricsRegistry
) -> Generator[AlertingEngine, None, None]:
    """Provide an engine on a manual clock with everything disabled."""
    engine = AlertingEngine(sink, clock=clock, metrics=metrics_registry)
    yield engine
    engine.stop()


@pytest.fixture
def complete(engine: AlertingEngine) -> Callable[[TriggerEvent], bool]:
    """Report successful completion of a recorded capture."""

    def _complete(event: TriggerEvent, outcome: CaptureOutcome = CaptureOutcome.SUCCEEDED) -> bool:
        return engine.on_capture_complete(CaptureHandle(event.trigger_id), outcome)

    return _complete


@pytest.fixture
def container() -> Generator[None, None, None]:
    """Reset the DI container and cached configuration around a test."""
    Container.reset()
    get_config.cache_clear()
    yield
    Container.reset()
    get_config.cache_clear()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
