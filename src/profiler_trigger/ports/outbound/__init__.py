"""Outbound ports - interfaces the engine depends on."""

from profiler_trigger.ports.outbound.clock import Clock
from profiler_trigger.ports.outbound.trigger_sink import SinkUnavailable, TriggerSink

__all__ = ["Clock", "TriggerSink", "SinkUnavailable"]
