"""Inbound ports - interfaces the engine offers."""

from profiler_trigger.ports.inbound.alerting_api import AlertingAPI

__all__ = ["AlertingAPI"]
