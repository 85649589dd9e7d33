"""Default periodic profiling policy.

A baseline cadence that fires independently of any threshold. The schedule is
armed when the policy is applied; the first capture is due ``interval`` after
arming and every following one ``interval`` after the previous periodic
capture. A due capture that loses arbitration stays due.
"""

from __future__ import annotations

from profiler_trigger.domain.entities.evaluation_state import EvaluationStateStore
from profiler_trigger.domain.entities.trigger import CandidateAlert
from profiler_trigger.domain.value_objects.alerting_config import DefaultPeriodicPolicy
from profiler_trigger.domain.value_objects.identifiers import (
    PERIODIC_CHANNEL,
    AlertMetricType,
    TriggerReason,
)


class PeriodicScheduler:
    """Emits DEFAULT_PERIODIC candidates on a fixed cadence."""

    def __init__(self, states: EvaluationStateStore | None = None) -> None:
        self._states = states if states is not None else EvaluationStateStore()

    def arm(self, now: float) -> None:
        """Start the cadence from ``now``."""
        state = self._states.get(PERIODIC_CHANNEL)
        state.clear()
        state.armed_at = now

    def next_due(self, policy: DefaultPeriodicPolicy) -> float | None:
        """Instant the next periodic capture becomes due."""
        if not policy.enabled:
            return None
        state = self._states.get(PERIODIC_CHANNEL)
        base = state.last_fired_at if state.last_fired_at is not None else state.armed_at
        if base is None:
            return None
        return base + policy.interval

    def tick(self, policy: DefaultPeriodicPolicy, now: float) -> CandidateAlert | None:
        """Get the periodic candidate if one is due at ``now``."""
        due = self.next_due(policy)
        if due is None or now < due:
            return None
        return CandidateAlert(
            channel=PERIODIC_CHANNEL,
            metric_type=AlertMetricType.PERIODIC,
            reason=TriggerReason.DEFAULT_PERIODIC,
            profile_duration=policy.profile_duration,
            cooldown=policy.interval,
            qualified_at=now,
        )
