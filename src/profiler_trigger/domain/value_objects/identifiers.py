"""Channel identifiers and trigger classification tags.

Every independent trigger source (a resource metric, a request trigger, the
collection plan, the default periodic policy) is addressed by a ChannelKey.
The key is what the cooldown ledger and the evaluation state store are
indexed by, so two sources never share hysteresis or cooldown bookkeeping.
"""

from __future__ import annotations

from enum import Enum
from typing import NewType

ChannelKey = NewType("ChannelKey", str)
"""Key of one evaluation channel (e.g. "cpu", "memory", "request:checkout")."""

CaptureHandle = NewType("CaptureHandle", str)
"""Opaque token returned by a trigger sink for a started capture."""


class AlertMetricType(Enum):
    """Metric family a trigger originates from."""

    CPU = "cpu"
    MEMORY = "memory"
    REQUEST = "request"
    MANUAL = "manual"
    PERIODIC = "periodic"

    def is_resource(self) -> bool:
        """Check if this is a scalar resource metric fed by samples."""
        return self in (AlertMetricType.CPU, AlertMetricType.MEMORY)


class TriggerReason(Enum):
    """Why a capture was started."""

    THRESHOLD = "threshold"
    COLLECTION_PLAN = "collection_plan"
    DEFAULT_PERIODIC = "default_periodic"
    REQUEST_TRIGGER = "request_trigger"


COLLECTION_PLAN_CHANNEL = ChannelKey("collection_plan")
PERIODIC_CHANNEL = ChannelKey("periodic")


def resource_channel(metric_type: AlertMetricType) -> ChannelKey:
    """Channel key for a resource metric rule."""
    return ChannelKey(metric_type.value)


def request_channel(name: str) -> ChannelKey:
    """Channel key for a named request trigger."""
    return ChannelKey(f"request:{name}")
