"""Domain entities for the alerting engine."""

from profiler_trigger.domain.entities.evaluation_state import (
    ChannelPhase,
    EvaluationState,
    EvaluationStateStore,
    PlanPhase,
)
from profiler_trigger.domain.entities.trigger import (
    CandidateAlert,
    CaptureOutcome,
    RequestOutcome,
    TriggerEvent,
)

__all__ = [
    "ChannelPhase",
    "PlanPhase",
    "EvaluationState",
    "EvaluationStateStore",
    "CandidateAlert",
    "CaptureOutcome",
    "RequestOutcome",
    "TriggerEvent",
]
