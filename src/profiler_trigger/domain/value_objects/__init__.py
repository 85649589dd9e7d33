"""Value objects for the alerting domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal,
which is exactly how the engine detects that a rule "changed identity".

Exports:
    Identifiers:
        - ChannelKey, CaptureHandle
        - AlertMetricType, TriggerReason
        - COLLECTION_PLAN_CHANNEL, PERIODIC_CHANNEL

    Configuration:
        - AlertRule, RequestTriggerRule, TriggerRule
        - DefaultPeriodicPolicy, CollectionPlanConfiguration
        - AlertingConfiguration, ConfigurationInvalid
"""

from profiler_trigger.domain.value_objects.alerting_config import (
    AlertingConfiguration,
    AlertRule,
    CollectionPlanConfiguration,
    ConfigurationInvalid,
    DefaultPeriodicPolicy,
    RequestTriggerRule,
    TriggerRule,
)
from profiler_trigger.domain.value_objects.identifiers import (
    COLLECTION_PLAN_CHANNEL,
    PERIODIC_CHANNEL,
    AlertMetricType,
    CaptureHandle,
    ChannelKey,
    TriggerReason,
    request_channel,
    resource_channel,
)

__all__ = [
    # Identifiers
    "ChannelKey",
    "CaptureHandle",
    "AlertMetricType",
    "TriggerReason",
    "COLLECTION_PLAN_CHANNEL",
    "PERIODIC_CHANNEL",
    "request_channel",
    "resource_channel",
    # Configuration
    "AlertRule",
    "RequestTriggerRule",
    "TriggerRule",
    "DefaultPeriodicPolicy",
    "CollectionPlanConfiguration",
    "AlertingConfiguration",
    "ConfigurationInvalid",
]
