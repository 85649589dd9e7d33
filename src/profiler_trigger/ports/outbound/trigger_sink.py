"""Trigger sink port.

The sink is the profiler-side collaborator that performs the actual capture.
The engine calls ``start_capture`` and does not wait for the capture; the sink
reports completion later through the engine's ``on_capture_complete``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from profiler_trigger.domain.entities.trigger import TriggerEvent
from profiler_trigger.domain.value_objects.identifiers import CaptureHandle


class TriggerSink(Protocol):
    """Protocol for starting profile captures.

    Thread Safety:
        ``start_capture`` is called from the engine's tick thread, outside the
        engine lock. It may call back into the engine.
    """

    @abstractmethod
    def start_capture(self, event: TriggerEvent) -> CaptureHandle:
        """Start a capture for ``event`` and return immediately.

        Args:
            event: The trigger decision.

        A sink that reports completion before this call returns must identify
        the capture as ``CaptureHandle(event.trigger_id)``.

        Returns:
            Handle identifying the capture in the completion callback.

        Raises:
            SinkUnavailable: If the capture cannot be started.
        """
        ...


class SinkUnavailable(Exception):
    """Raised when a trigger sink cannot start a capture."""

    pass
