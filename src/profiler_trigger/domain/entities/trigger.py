"""Trigger-path entities: request outcomes, candidates and trigger events."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from profiler_trigger.domain.value_objects.identifiers import (
    AlertMetricType,
    ChannelKey,
    TriggerReason,
)


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    """Outcome of one served request.

    Attributes:
        duration_ms: Request latency in milliseconds
        success: False when the request failed
        error: Optional error description
        name: Operation name, matched against request trigger filters
    """

    duration_ms: float
    success: bool = True
    error: str | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.duration_ms, bool) or not isinstance(self.duration_ms, (int, float)):
            raise ValueError(f"duration_ms must be a number, got {self.duration_ms!r}")
        if not math.isfinite(self.duration_ms) or self.duration_ms < 0:
            raise ValueError(f"duration_ms must be finite and >= 0, got {self.duration_ms}")


@dataclass(frozen=True)
class CandidateAlert:
    """A channel that qualified for a capture and awaits arbitration."""

    channel: ChannelKey
    metric_type: AlertMetricType
    reason: TriggerReason
    profile_duration: float
    cooldown: float
    qualified_at: float
    observed_value: float | None = None
    threshold: float | None = None
    settings: Mapping[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class TriggerEvent:
    """Decision to start profiling now, emitted once per firing."""

    trigger_id: str
    metric_type: AlertMetricType
    reason: TriggerReason
    profile_duration: float
    fired_at: float
    channel: ChannelKey
    observed_value: float | None = None
    threshold: float | None = None
    settings: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger_id": self.trigger_id,
            "metric_type": self.metric_type.value,
            "reason": self.reason.value,
            "profile_duration": self.profile_duration,
            "fired_at": self.fired_at,
            "channel": self.channel,
            "observed_value": self.observed_value,
            "threshold": self.threshold,
            "settings": dict(self.settings),
        }


class CaptureOutcome(str, Enum):
    """How a capture ended, as reported by the sink."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
