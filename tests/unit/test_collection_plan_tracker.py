"""Unit tests for CollectionPlanTracker."""

from __future__ import annotations

import pytest

from profiler_trigger.domain.entities import EvaluationStateStore, PlanPhase, RequestOutcome
from profiler_trigger.domain.services import (
    CollectionPlanTracker,
    CooldownTracker,
    RequestTriggerEvaluator,
    ThresholdEvaluator,
)
from profiler_trigger.domain.value_objects import (
    COLLECTION_PLAN_CHANNEL,
    AlertMetricType,
    CollectionPlanConfiguration,
    RequestTriggerRule,
    TriggerReason,
)


def plan(**overrides) -> CollectionPlanConfiguration:
    values = dict(enabled=True, start_timestamp=100.0, expiration=200.0, profile_duration=30.0)
    values.update(overrides)
    return CollectionPlanConfiguration(**values)


@pytest.mark.unit
class TestCollectionPlanTracker:
    """Plan activation, consumption and expiry."""

    @pytest.fixture
    def store(self) -> EvaluationStateStore:
        return EvaluationStateStore()

    @pytest.fixture
    def cooldowns(self, store: EvaluationStateStore) -> CooldownTracker:
        return CooldownTracker(store)

    @pytest.fixture
    def tracker(self, store: EvaluationStateStore, cooldowns: CooldownTracker) -> CollectionPlanTracker:
        return CollectionPlanTracker(RequestTriggerEvaluator(ThresholdEvaluator(store)), cooldowns)

    def test_phases(self, tracker: CollectionPlanTracker) -> None:
        """Test the plan moves INACTIVE, ACTIVE, EXPIRED over its window."""
        p = plan()

        assert tracker.phase(p, 50.0) is PlanPhase.INACTIVE
        assert tracker.phase(p, 100.0) is PlanPhase.ACTIVE
        assert tracker.phase(p, 200.0) is PlanPhase.ACTIVE
        assert tracker.phase(p, 200.5) is PlanPhase.EXPIRED
        assert tracker.phase(plan(enabled=False), 150.0) is PlanPhase.INACTIVE

    def test_no_candidate_outside_window(self, tracker: CollectionPlanTracker) -> None:
        """Test a plan never fires before start or after expiration."""
        assert tracker.tick(plan(), 99.0) is None
        assert tracker.tick(plan(), 201.0) is None

    def test_single_trigger_candidate(self, tracker: CollectionPlanTracker) -> None:
        """Test the candidate carries the plan settings and no cooldown."""
        p = plan(settings={"mode": "cpu"})

        candidate = tracker.tick(p, 100.0)

        assert candidate is not None
        assert candidate.channel == COLLECTION_PLAN_CHANNEL
        assert candidate.metric_type is AlertMetricType.MANUAL
        assert candidate.reason is TriggerReason.COLLECTION_PLAN
        assert candidate.profile_duration == 30.0
        assert candidate.cooldown == 0.0
        assert candidate.settings == {"mode": "cpu"}

    def test_candidate_stays_armed_until_consumed(self, tracker: CollectionPlanTracker) -> None:
        """Test the same candidate is offered until it fires."""
        p = plan()

        first = tracker.tick(p, 100.0)
        assert tracker.tick(p, 101.0) is first

        tracker.consume(p, first)

        assert tracker.phase(p, 102.0) is PlanPhase.CONSUMED
        assert tracker.tick(p, 102.0) is None
        assert tracker.tick(p, 150.0) is None

    def test_standing_plan_refires_after_cooldown(
        self, tracker: CollectionPlanTracker, cooldowns: CooldownTracker
    ) -> None:
        """Test a standing plan fires again once its cooldown elapsed."""
        p = plan(single_trigger=False, cooldown=40.0)

        first = tracker.tick(p, 100.0)
        assert first is not None
        assert first.cooldown == 40.0
        cooldowns.admit(COLLECTION_PLAN_CHANNEL, first.cooldown, 100.0)
        tracker.consume(p, first)

        assert tracker.phase(p, 110.0) is PlanPhase.ACTIVE
        assert tracker.tick(p, 139.0) is None
        second = tracker.tick(p, 140.0)
        assert second is not None
        assert second is not first

    def test_request_criteria(self, tracker: CollectionPlanTracker) -> None:
        """Test plan-scoped request criteria produce a plan candidate."""
        rule = RequestTriggerRule(name="plan", threshold=0.5, profile_duration=0.0, cooldown=15.0)
        p = plan(request_trigger=rule)

        assert tracker.tick(p, 100.0) is None

        candidate = tracker.on_request_event(p, RequestOutcome(duration_ms=5000.0), 101.0)

        assert candidate is not None
        assert candidate.metric_type is AlertMetricType.MANUAL
        assert candidate.reason is TriggerReason.COLLECTION_PLAN
        assert candidate.cooldown == 15.0
        assert candidate.observed_value == 1.0
        assert tracker.tick(p, 101.0) is candidate

    def test_request_events_outside_window_ignored(self, tracker: CollectionPlanTracker) -> None:
        """Request events outside the plan window are ignored."""
        rule = RequestTriggerRule(name="plan", profile_duration=0.0)
        p = plan(request_trigger=rule)

        assert tracker.on_request_event(p, RequestOutcome(duration_ms=5000.0), 50.0) is None

    def test_expiry_discards_pending(self, tracker: CollectionPlanTracker, store: EvaluationStateStore) -> None:
        """Test an unfired candidate is dropped when the plan expires."""
        p = plan()
        tracker.tick(p, 150.0)
        assert store.get(COLLECTION_PLAN_CHANNEL).pending is not None

        assert tracker.tick(p, 250.0) is None
        assert store.get(COLLECTION_PLAN_CHANNEL).pending is None

    def test_reset_rearms_consumed_plan(self, tracker: CollectionPlanTracker) -> None:
        """Test a reset plan is active again."""
        p = plan()
        tracker.consume(p, tracker.tick(p, 100.0))

        tracker.reset()

        assert tracker.phase(p, 120.0) is PlanPhase.ACTIVE
        assert tracker.tick(p, 120.0) is not None

    def test_terminal_phases(self, tracker: CollectionPlanTracker) -> None:
        """Test CONSUMED and EXPIRED are terminal, INACTIVE and ACTIVE are not."""
        p = plan()

        assert not tracker.phase(p, 50.0).is_terminal()
        assert not tracker.phase(p, 150.0).is_terminal()
        assert tracker.phase(p, 250.0).is_terminal()

        tracker.consume(p, tracker.tick(p, 150.0))
        assert tracker.phase(p, 160.0) is PlanPhase.CONSUMED
        assert tracker.phase(p, 160.0).is_terminal()
