"""Domain services for the alerting engine."""

from profiler_trigger.domain.services.collection_plan_tracker import CollectionPlanTracker
from profiler_trigger.domain.services.cooldown_tracker import CooldownTracker
from profiler_trigger.domain.services.periodic_scheduler import PeriodicScheduler
from profiler_trigger.domain.services.request_trigger_evaluator import (
    RequestTriggerEvaluator,
    RequestWindow,
)
from profiler_trigger.domain.services.threshold_evaluator import ThresholdEvaluator
from profiler_trigger.domain.services.trigger_arbiter import (
    ActiveCapture,
    ArbitrationDecision,
    TriggerArbiter,
)

__all__ = [
    "ThresholdEvaluator",
    "CooldownTracker",
    "RequestTriggerEvaluator",
    "RequestWindow",
    "CollectionPlanTracker",
    "PeriodicScheduler",
    "TriggerArbiter",
    "ArbitrationDecision",
    "ActiveCapture",
]
