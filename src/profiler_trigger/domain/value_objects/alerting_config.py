"""Immutable alerting configuration.

The whole alerting subsystem is driven by one AlertingConfiguration value:
per-metric alert rules, request triggers, the default periodic policy and the
operator-issued collection plan. A configuration is never mutated; new
configuration arrives as a new value and replaces the old one wholesale.

All values are validated on construction. An invalid value raises
ConfigurationInvalid and is never clamped into range.

Durations and instants are float seconds on the engine's monotonic clock.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Protocol

from profiler_trigger.domain.value_objects.identifiers import (
    COLLECTION_PLAN_CHANNEL,
    AlertMetricType,
    ChannelKey,
    TriggerReason,
    request_channel,
    resource_channel,
)


class ConfigurationInvalid(ValueError):
    """Raised when an alerting configuration violates its invariants."""

    pass


def _check_non_negative(name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigurationInvalid(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or value < 0:
        raise ConfigurationInvalid(f"{name} must be >= 0, got {value}")


class TriggerRule(Protocol):
    """Hysteresis and cooldown policy shared by every sample-driven rule.

    Both resource rules (CPU, MEMORY) and request triggers expose this
    interface so the threshold evaluator can run the same algorithm on
    either without knowing which one it holds.
    """

    @property
    def channel(self) -> ChannelKey: ...

    @property
    def metric_type(self) -> AlertMetricType: ...

    @property
    def reason(self) -> TriggerReason: ...

    @property
    def enabled(self) -> bool: ...

    @property
    def threshold(self) -> float: ...

    @property
    def profile_duration(self) -> float: ...

    @property
    def cooldown(self) -> float: ...


@dataclass(frozen=True, slots=True)
class AlertRule:
    """Threshold rule for a scalar resource metric.

    Attributes:
        metric_type: CPU or MEMORY
        enabled: Disabled rules never fire and never accumulate
        threshold: Value at or above which the metric counts as breaching
        profile_duration: How long the breach must hold, and how long to profile
        cooldown: Minimum time between two firings of this rule
    """

    metric_type: AlertMetricType
    enabled: bool = False
    threshold: float = 0.0
    profile_duration: float = 0.0
    cooldown: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.metric_type, AlertMetricType) or not self.metric_type.is_resource():
            raise ConfigurationInvalid(
                f"AlertRule requires a resource metric type, got {self.metric_type!r}"
            )
        _check_non_negative("threshold", self.threshold)
        _check_non_negative("profile_duration", self.profile_duration)
        _check_non_negative("cooldown", self.cooldown)

    @property
    def channel(self) -> ChannelKey:
        return resource_channel(self.metric_type)

    @property
    def reason(self) -> TriggerReason:
        return TriggerReason.THRESHOLD


@dataclass(frozen=True, slots=True)
class RequestTriggerRule:
    """Trigger evaluated against request outcomes instead of resource samples.

    The evaluated scalar is the breach ratio: the fraction of requests inside
    the sliding window that were slower than ``latency_threshold_ms`` or
    failed. The ratio is then run through the same hysteresis as AlertRule.

    Attributes:
        name: Unique trigger name, used as the channel key
        enabled: Disabled triggers never fire
        threshold: Breach ratio (0..1) at or above which the channel breaches
        profile_duration: How long the ratio must hold, and how long to profile
        cooldown: Minimum time between two firings of this trigger
        latency_threshold_ms: Requests slower than this count as breaching
        window_seconds: Width of the sliding aggregation window
        minimum_samples: Events required in the window before evaluating
        name_filter: Optional regex; only matching request names are counted
    """

    name: str
    enabled: bool = True
    threshold: float = 0.5
    profile_duration: float = 30.0
    cooldown: float = 300.0
    latency_threshold_ms: float = 1000.0
    window_seconds: float = 60.0
    minimum_samples: int = 1
    name_filter: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationInvalid("RequestTriggerRule.name must not be empty")
        _check_non_negative("threshold", self.threshold)
        if self.threshold > 1.0:
            raise ConfigurationInvalid(
                f"request trigger threshold is a ratio and must be <= 1, got {self.threshold}"
            )
        _check_non_negative("profile_duration", self.profile_duration)
        _check_non_negative("cooldown", self.cooldown)
        _check_non_negative("latency_threshold_ms", self.latency_threshold_ms)
        _check_non_negative("window_seconds", self.window_seconds)
        if self.window_seconds == 0:
            raise ConfigurationInvalid("window_seconds must be > 0")
        if self.minimum_samples < 1:
            raise ConfigurationInvalid(
                f"minimum_samples must be >= 1, got {self.minimum_samples}"
            )
        if self.name_filter is not None:
            try:
                re.compile(self.name_filter)
            except re.error as e:
                raise ConfigurationInvalid(f"invalid name_filter {self.name_filter!r}: {e}") from e

    @property
    def channel(self) -> ChannelKey:
        return request_channel(self.name)

    @property
    def metric_type(self) -> AlertMetricType:
        return AlertMetricType.REQUEST

    @property
    def reason(self) -> TriggerReason:
        return TriggerReason.REQUEST_TRIGGER

    def matches(self, request_name: str | None) -> bool:
        """Check if a request is in scope for this trigger."""
        if self.name_filter is None:
            return True
        return re.search(self.name_filter, request_name or "") is not None

    def is_breach(self, duration_ms: float, success: bool) -> bool:
        """Check if a single request outcome counts as breaching."""
        return (not success) or duration_ms > self.latency_threshold_ms


@dataclass(frozen=True, slots=True)
class DefaultPeriodicPolicy:
    """Background profiling cadence, independent of any threshold."""

    enabled: bool = False
    interval: float = 3600.0
    profile_duration: float = 120.0

    def __post_init__(self) -> None:
        _check_non_negative("interval", self.interval)
        _check_non_negative("profile_duration", self.profile_duration)
        if self.enabled and self.interval == 0:
            raise ConfigurationInvalid("interval must be > 0 when the periodic policy is enabled")


@dataclass(frozen=True)
class CollectionPlanConfiguration:
    """Operator-issued manual collection window.

    A plan is active at ``t`` iff ``enabled and start_timestamp <= t <= expiration``.
    With ``single_trigger`` the plan fires once and is consumed. Otherwise it
    is a standing override for its window: without a request trigger it fires
    on activation and again each time ``cooldown`` elapses; with a request
    trigger it fires when the request criteria qualify.

    Attributes:
        enabled: Whether the plan is in effect at all
        single_trigger: Consume the plan after the first capture
        start_timestamp: Start of the validity window
        expiration: End of the validity window (inclusive)
        profile_duration: Capture duration for plan-initiated profiles
        cooldown: Re-fire interval of a standing plan
        settings: Opaque profiler settings passed through to the sink
        request_trigger: Optional request criteria scoped to the plan window
    """

    enabled: bool = False
    single_trigger: bool = True
    start_timestamp: float = 0.0
    expiration: float = 0.0
    profile_duration: float = 120.0
    cooldown: float = 0.0
    settings: Mapping[str, Any] = field(default_factory=dict, hash=False)
    request_trigger: RequestTriggerRule | None = None

    def __post_init__(self) -> None:
        _check_non_negative("profile_duration", self.profile_duration)
        _check_non_negative("cooldown", self.cooldown)
        for name in ("start_timestamp", "expiration"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or math.isnan(value):
                raise ConfigurationInvalid(f"{name} must be a number, got {value!r}")
        if self.start_timestamp > self.expiration:
            raise ConfigurationInvalid(
                f"start_timestamp ({self.start_timestamp}) must be <= expiration ({self.expiration})"
            )
        if self.request_trigger is not None and not isinstance(self.request_trigger, RequestTriggerRule):
            raise ConfigurationInvalid("request_trigger must be a RequestTriggerRule")
        # Read-only copy; every plan TriggerEvent shares it.
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings or {})))

    @property
    def channel(self) -> ChannelKey:
        return COLLECTION_PLAN_CHANNEL

    def is_active(self, now: float) -> bool:
        """Check if the plan window covers ``now``."""
        return self.enabled and self.start_timestamp <= now <= self.expiration

    def is_expired(self, now: float) -> bool:
        return now > self.expiration


def _default_rule(metric_type: AlertMetricType) -> AlertRule:
    return AlertRule(metric_type=metric_type)


@dataclass(frozen=True)
class AlertingConfiguration:
    """Overall configuration of the alerting subsystem."""

    cpu_alert: AlertRule = field(default_factory=lambda: _default_rule(AlertMetricType.CPU))
    memory_alert: AlertRule = field(default_factory=lambda: _default_rule(AlertMetricType.MEMORY))
    default_policy: DefaultPeriodicPolicy = field(default_factory=DefaultPeriodicPolicy)
    collection_plan: CollectionPlanConfiguration = field(
        default_factory=CollectionPlanConfiguration
    )
    request_triggers: tuple[RequestTriggerRule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "request_triggers", tuple(self.request_triggers))
        self.validate()

    def validate(self) -> None:
        """Check cross-field invariants.

        Raises:
            ConfigurationInvalid: If any invariant is violated.
        """
        if not isinstance(self.cpu_alert, AlertRule) or self.cpu_alert.metric_type != AlertMetricType.CPU:
            raise ConfigurationInvalid("cpu_alert must be an AlertRule for CPU")
        if (
            not isinstance(self.memory_alert, AlertRule)
            or self.memory_alert.metric_type != AlertMetricType.MEMORY
        ):
            raise ConfigurationInvalid("memory_alert must be an AlertRule for MEMORY")
        if not isinstance(self.default_policy, DefaultPeriodicPolicy):
            raise ConfigurationInvalid("default_policy must be a DefaultPeriodicPolicy")
        if not isinstance(self.collection_plan, CollectionPlanConfiguration):
            raise ConfigurationInvalid("collection_plan must be a CollectionPlanConfiguration")

        seen: set[str] = set()
        for rule in self.request_triggers:
            if not isinstance(rule, RequestTriggerRule):
                raise ConfigurationInvalid(f"request trigger must be a RequestTriggerRule, got {rule!r}")
            if rule.name in seen:
                raise ConfigurationInvalid(f"duplicate request trigger name {rule.name!r}")
            seen.add(rule.name)

    def rule_for(self, metric_type: AlertMetricType) -> AlertRule | None:
        """Get the resource rule for a metric type, if one exists."""
        if metric_type == AlertMetricType.CPU:
            return self.cpu_alert
        if metric_type == AlertMetricType.MEMORY:
            return self.memory_alert
        return None

    @property
    def resource_rules(self) -> tuple[AlertRule, AlertRule]:
        """Resource rules in precedence order (CPU before MEMORY)."""
        return (self.cpu_alert, self.memory_alert)
