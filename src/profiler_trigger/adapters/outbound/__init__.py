"""Outbound adapters - concrete clocks and trigger sinks."""

from profiler_trigger.adapters.outbound.clock import ManualClock, MonotonicClock
from profiler_trigger.adapters.outbound.executor_sink import ExecutorTriggerSink

__all__ = ["ManualClock", "MonotonicClock", "ExecutorTriggerSink"]
