"""Integration tests for ExecutorTriggerSink wired to the engine."""

from __future__ import annotations

import threading

import pytest

from profiler_trigger.adapters.outbound import ExecutorTriggerSink, ManualClock
from profiler_trigger.application import AlertingEngine
from profiler_trigger.domain.entities import CaptureOutcome
from profiler_trigger.domain.value_objects import AlertingConfiguration, AlertMetricType, AlertRule
from profiler_trigger.infrastructure.container import Container

CONFIGURATION = AlertingConfiguration(
    cpu_alert=AlertRule(
        metric_type=AlertMetricType.CPU, enabled=True, threshold=50, profile_duration=0, cooldown=0
    )
)


@pytest.mark.integration
class TestExecutorTriggerSink:
    """Captures run on a worker thread and report completion."""

    def test_capture_runs_and_completes(self, metrics_registry) -> None:
        release = threading.Event()
        done = threading.Event()
        seen = []

        def capture(event):
            seen.append(event.trigger_id)
            release.wait(5)

        sink = ExecutorTriggerSink(capture)
        engine = AlertingEngine(sink, CONFIGURATION, clock=ManualClock(), metrics=metrics_registry)
        outcomes = []

        def on_complete(handle, outcome):
            engine.on_capture_complete(handle, outcome)
            outcomes.append(outcome)
            done.set()

        sink.attach(on_complete)
        try:
            engine.submit(AlertMetricType.CPU, 90)
            event = engine.tick()
            assert event is not None
            assert engine.capture_in_progress

            release.set()
            assert done.wait(5)
            assert not engine.capture_in_progress
            assert seen == [event.trigger_id]
            assert outcomes == [CaptureOutcome.SUCCEEDED]
        finally:
            sink.shutdown()

    def test_failing_capture_reports_failed(self) -> None:
        done = threading.Event()
        outcomes = []

        def capture(event):
            raise OSError("profiler crashed")

        def on_complete(handle, outcome):
            outcomes.append((handle, outcome))
            done.set()

        sink = ExecutorTriggerSink(capture, on_complete)
        try:
            engine = AlertingEngine(sink, CONFIGURATION, clock=ManualClock())
            engine.submit(AlertMetricType.CPU, 90)
            event = engine.tick()

            assert done.wait(5)
            assert outcomes == [(event.trigger_id, CaptureOutcome.FAILED)]
        finally:
            sink.shutdown()

    def test_shutdown_sink_rejects_capture(self) -> None:
        sink = ExecutorTriggerSink(lambda event: None)
        sink.shutdown()
        engine = AlertingEngine(sink, CONFIGURATION, clock=ManualClock())
        engine.submit(AlertMetricType.CPU, 90)

        assert engine.tick() is None
        assert not engine.capture_in_progress
        assert engine.last_event is None


@pytest.mark.integration
class TestContainer:
    """Engine wiring through the DI container."""

    def test_build_engine_attaches_completion(self, container, monkeypatch) -> None:
        monkeypatch.setenv("PROFILER_TRIGGER_ALERTS__CPU__ENABLED", "true")
        monkeypatch.setenv("PROFILER_TRIGGER_ALERTS__CPU__THRESHOLD", "50")
        monkeypatch.setenv("PROFILER_TRIGGER_ALERTS__CPU__PROFILE_DURATION_SECONDS", "0")
        monkeypatch.setenv("PROFILER_TRIGGER_OBSERVABILITY__LOG_FORMAT", "console")

        sink = ExecutorTriggerSink(lambda event: None)
        try:
            engine = Container.get().build_engine(sink, clock=ManualClock())
            engine.submit(AlertMetricType.CPU, 90)
            assert engine.tick() is not None
            sink.shutdown(wait=True)

            assert not engine.capture_in_progress
            assert engine.configuration.cpu_alert.threshold == 50.0
        finally:
            sink.shutdown()
