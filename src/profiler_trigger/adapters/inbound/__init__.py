"""Inbound adapters - transports on top of the alerting API."""

from profiler_trigger.adapters.inbound.rest_api import create_app

__all__ = ["create_app"]
