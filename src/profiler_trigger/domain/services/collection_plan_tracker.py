"""Collection plan tracker.

Evaluates the operator-issued manual override. A plan only ever produces
candidates while ``now`` lies inside ``[start_timestamp, expiration]``:

- single trigger, no request criteria: one candidate at the first tick that
  observes the plan active; the plan is CONSUMED once that candidate fires.
- standing plan, no request criteria: a candidate on activation, then again
  every time the plan's cooldown has elapsed since the last plan capture.
- any plan with request criteria: request outcomes inside the window are run
  through the request trigger hysteresis; a qualified ratio is the candidate.

Outside the window nothing is evaluated and in-progress hysteresis is
discarded. Expired plans are inert; removing them is up to whoever owns the
configuration.
"""

from __future__ import annotations

import dataclasses
import logging

from profiler_trigger.domain.entities.evaluation_state import PlanPhase
from profiler_trigger.domain.entities.trigger import CandidateAlert, RequestOutcome
from profiler_trigger.domain.services.cooldown_tracker import CooldownTracker
from profiler_trigger.domain.services.request_trigger_evaluator import RequestTriggerEvaluator
from profiler_trigger.domain.value_objects.alerting_config import CollectionPlanConfiguration
from profiler_trigger.domain.value_objects.identifiers import (
    COLLECTION_PLAN_CHANNEL,
    AlertMetricType,
    TriggerReason,
)

logger = logging.getLogger(__name__)


class CollectionPlanTracker:
    """Tracks activation, consumption and expiry of the collection plan."""

    def __init__(self, requests: RequestTriggerEvaluator, cooldowns: CooldownTracker) -> None:
        """Initialize the tracker.

        Args:
            requests: Request evaluator used for plan-scoped request criteria.
            cooldowns: Cooldown ledger shared with the other channels.
        """
        self._requests = requests
        self._states = requests.thresholds.states
        self._cooldowns = cooldowns

    def phase(self, plan: CollectionPlanConfiguration, now: float) -> PlanPhase:
        """Observable phase of the plan at ``now``."""
        if not plan.enabled:
            return PlanPhase.INACTIVE
        if self._states.get(COLLECTION_PLAN_CHANNEL).plan_consumed:
            return PlanPhase.CONSUMED
        if plan.is_expired(now):
            return PlanPhase.EXPIRED
        if now < plan.start_timestamp:
            return PlanPhase.INACTIVE
        return PlanPhase.ACTIVE

    def tick(self, plan: CollectionPlanConfiguration, now: float) -> CandidateAlert | None:
        """Evaluate the plan at ``now``.

        Returns:
            The plan's candidate, if it has one at this instant.
        """
        state = self._states.get(COLLECTION_PLAN_CHANNEL)
        phase = self.phase(plan, now)

        if phase is not PlanPhase.ACTIVE:
            if phase.is_terminal() and (state.pending is not None or state.exceed_start is not None):
                logger.info(f"Collection plan {phase.name.lower()}; discarding pending evaluation")
            self._requests.discard(COLLECTION_PLAN_CHANNEL)
            return None

        if plan.request_trigger is not None:
            # Candidates come from on_request_event.
            return state.pending

        if not plan.single_trigger and self._cooldowns.is_cooling_down(
            COLLECTION_PLAN_CHANNEL, plan.cooldown, now
        ):
            return None

        if state.pending is None:
            state.pending = self._candidate(plan, now, cooldown=0.0 if plan.single_trigger else plan.cooldown)
        return state.pending

    def on_request_event(
        self, plan: CollectionPlanConfiguration, outcome: RequestOutcome, now: float
    ) -> CandidateAlert | None:
        """Account a request outcome against the plan's request criteria."""
        rule = plan.request_trigger
        if rule is None or self.phase(plan, now) is not PlanPhase.ACTIVE:
            return None

        qualified = self._requests.on_request_event(
            rule, outcome, now, channel=COLLECTION_PLAN_CHANNEL
        )
        if qualified is None:
            return None

        candidate = dataclasses.replace(
            self._candidate(plan, now, cooldown=rule.cooldown),
            observed_value=qualified.observed_value,
            threshold=qualified.threshold,
        )
        self._states.get(COLLECTION_PLAN_CHANNEL).pending = candidate
        return candidate

    def consume(self, plan: CollectionPlanConfiguration, candidate: CandidateAlert) -> None:
        """Record that the plan's candidate fired."""
        state = self._states.get(COLLECTION_PLAN_CHANNEL)
        if state.pending is candidate:
            state.pending = None
        if plan.single_trigger:
            state.plan_consumed = True
            logger.info("Single-trigger collection plan consumed")

    def reset(self) -> None:
        """Forget everything about the current plan."""
        self._requests.reset(COLLECTION_PLAN_CHANNEL)
        self._cooldowns.forget(COLLECTION_PLAN_CHANNEL)

    def _candidate(
        self, plan: CollectionPlanConfiguration, now: float, cooldown: float
    ) -> CandidateAlert:
        return CandidateAlert(
            channel=COLLECTION_PLAN_CHANNEL,
            metric_type=AlertMetricType.MANUAL,
            reason=TriggerReason.COLLECTION_PLAN,
            profile_duration=plan.profile_duration,
            cooldown=cooldown,
            qualified_at=now,
            settings=plan.settings,
        )
