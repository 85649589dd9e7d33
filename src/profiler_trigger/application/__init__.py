"""Application layer for the profiler trigger engine.

Orchestrates domain services behind the AlertingAPI.
"""

from profiler_trigger.application.alerting_engine import AlertingEngine

__all__ = [
    "AlertingEngine",
]
