"""Dependency injection container for the profiler trigger engine."""

from dataclasses import dataclass
from typing import Optional

import structlog
from opentelemetry import trace

from profiler_trigger.application.alerting_engine import AlertingEngine
from profiler_trigger.adapters.outbound.executor_sink import ExecutorTriggerSink
from profiler_trigger.infrastructure.config import Config, get_config
from profiler_trigger.infrastructure.logging import setup_logging
from profiler_trigger.infrastructure.metrics import MetricsRegistry, get_metrics
from profiler_trigger.infrastructure.tracing import setup_tracing
from profiler_trigger.ports.outbound.clock import Clock
from profiler_trigger.ports.outbound.trigger_sink import TriggerSink


@dataclass
class Container:
    """Dependency injection container for alerting engine components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry

    _instance: "Container | None" = None

    @classmethod
    def create(cls) -> "Container":
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging()
        tracer = setup_tracing()
        metrics = get_metrics()

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.info(
            "profiler_trigger_container_initialized",
            environment=config.observability.environment,
            cpu_alert=config.alerts.cpu.enabled,
            memory_alert=config.alerts.memory.enabled,
            periodic=config.alerts.periodic.enabled,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def build_engine(self, sink: TriggerSink, clock: Optional[Clock] = None) -> AlertingEngine:
        """Wire an AlertingEngine from the container's configuration.

        An ExecutorTriggerSink gets the engine's completion callback attached.
        """
        engine = AlertingEngine(
            sink,
            configuration=self.config.to_alerting_configuration(),
            clock=clock,
            metrics=self.metrics,
            tick_interval_seconds=self.config.engine.tick_interval_seconds,
            request_window_max_events=self.config.engine.request_window_max_events,
            trigger_id_prefix=self.config.engine.trigger_id_prefix,
        )
        if isinstance(sink, ExecutorTriggerSink):
            sink.attach(engine.on_capture_complete)
        return engine


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()


def build_engine(sink: TriggerSink, clock: Optional[Clock] = None) -> AlertingEngine:
    """Build an engine using the global container."""
    return get_container().build_engine(sink, clock=clock)
