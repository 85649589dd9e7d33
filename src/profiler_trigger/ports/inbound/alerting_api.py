"""Inbound port interfaces for the alerting engine.

Inbound ports define what the engine offers to its collaborators: metric
producers, request telemetry, the configuration owner and the trigger sink.
Adapters implement transports (REST, in-process) on top of this.
"""

from __future__ import annotations

from typing import Any, Protocol

from profiler_trigger.domain.entities.trigger import CaptureOutcome, RequestOutcome, TriggerEvent
from profiler_trigger.domain.value_objects.alerting_config import (
    AlertingConfiguration,
    CollectionPlanConfiguration,
)
from profiler_trigger.domain.value_objects.identifiers import AlertMetricType, CaptureHandle


class AlertingAPI(Protocol):
    """Main API offered by the alerting engine."""

    def submit(
        self, metric_type: AlertMetricType | str, value: float, timestamp: float | None = None
    ) -> bool:
        """Ingest one resource metric sample.

        Safe to call from multiple producer threads.

        Args:
            metric_type: CPU or MEMORY.
            value: Observed value.
            timestamp: Monotonic instant; defaults to the engine clock.

        Returns:
            False if the sample was discarded as malformed or out of order.
        """
        ...

    def submit_request_event(
        self, outcome: RequestOutcome, timestamp: float | None = None
    ) -> None:
        """Ingest one request outcome."""
        ...

    def set_configuration(self, configuration: AlertingConfiguration) -> None:
        """Atomically replace the active configuration.

        Raises:
            ConfigurationInvalid: If the configuration is rejected. The
                previous configuration stays active.
        """
        ...

    def set_collection_plan(self, plan: CollectionPlanConfiguration) -> None:
        """Atomically replace only the collection plan."""
        ...

    def tick(self, now: float | None = None) -> TriggerEvent | None:
        """Run one evaluation round and dispatch at most one capture."""
        ...

    def on_capture_complete(
        self, handle: CaptureHandle, outcome: CaptureOutcome = CaptureOutcome.SUCCEEDED
    ) -> bool:
        """Sink callback releasing the capture-in-progress flag."""
        ...

    def status(self) -> dict[str, Any]:
        """Snapshot of channel phases and capture state."""
        ...
