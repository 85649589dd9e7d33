"""Threshold evaluator with time-based hysteresis.

For every channel the evaluator remembers the instant at which the observed
value first became >= threshold and stayed there. A channel qualifies once the
breach has lasted ``profile_duration``:

    value >= threshold:
        exceed_start = exceed_start or now
        if now - exceed_start >= profile_duration:
            emit candidate, clear exceed_start
    value < threshold:
        clear exceed_start (no partial credit)

Clearing exceed_start on emission means one continuous breach cannot re-arm
itself: the next firing needs another full ``profile_duration`` of breach.
Samples that arrive while the channel is cooling down do not accumulate, so
that breach only starts counting once the cooldown has elapsed.

Sample instants come from the caller's monotonic clock. A sample older than
the last one processed for the same channel is ignored; equal instants are
accepted.
"""

from __future__ import annotations

import logging

from profiler_trigger.domain.entities.evaluation_state import (
    ChannelPhase,
    EvaluationStateStore,
)
from profiler_trigger.domain.entities.trigger import CandidateAlert
from profiler_trigger.domain.value_objects.alerting_config import TriggerRule
from profiler_trigger.domain.value_objects.identifiers import ChannelKey

logger = logging.getLogger(__name__)


class ThresholdEvaluator:
    """Sliding-window hysteresis state machine, one window per channel."""

    def __init__(self, states: EvaluationStateStore | None = None) -> None:
        """Initialize the evaluator.

        Args:
            states: Shared state store. A private one is created if omitted.
        """
        self._states = states if states is not None else EvaluationStateStore()

    @property
    def states(self) -> EvaluationStateStore:
        return self._states

    def is_stale(self, channel: ChannelKey, now: float) -> bool:
        """Check if a sample at ``now`` is older than the last one processed."""
        state = self._states.get(channel)
        return state.last_sample_at is not None and now < state.last_sample_at

    def on_sample(
        self,
        rule: TriggerRule,
        value: float,
        now: float,
        channel: ChannelKey | None = None,
    ) -> CandidateAlert | None:
        """Feed one sample to the rule's channel.

        Args:
            rule: Rule to evaluate against.
            value: Observed value.
            now: Monotonic instant of the sample.
            channel: Channel override; defaults to ``rule.channel``.

        Returns:
            A candidate alert if the channel qualified with this sample.
        """
        if not rule.enabled:
            return None

        key = channel or rule.channel
        state = self._states.get(key)

        if state.last_sample_at is not None and now < state.last_sample_at:
            logger.debug(
                f"Ignoring out-of-order sample on {key}: {now} < {state.last_sample_at}"
            )
            return None
        state.last_sample_at = now

        if state.last_fired_at is not None and now < state.last_fired_at + rule.cooldown:
            state.discard_hysteresis()
            return None

        if value < rule.threshold:
            if state.exceed_start is not None or state.pending is not None:
                logger.debug(f"{key} dropped below threshold ({value} < {rule.threshold})")
            state.discard_hysteresis()
            return None

        if state.exceed_start is None:
            state.exceed_start = now

        if now - state.exceed_start < rule.profile_duration:
            return None

        candidate = CandidateAlert(
            channel=key,
            metric_type=rule.metric_type,
            reason=rule.reason,
            profile_duration=rule.profile_duration,
            cooldown=rule.cooldown,
            qualified_at=now,
            observed_value=value,
            threshold=rule.threshold,
        )
        state.exceed_start = None
        state.pending = candidate
        logger.debug(
            f"{key} breached {rule.threshold} for {rule.profile_duration}s (value {value})"
        )
        return candidate

    def pending(self, channel: ChannelKey) -> CandidateAlert | None:
        """Get the qualified, not yet fired candidate of a channel."""
        return self._states.get(channel).pending

    def disarm(self, channel: ChannelKey, candidate: CandidateAlert | None = None) -> None:
        """Drop the pending candidate of a channel.

        Args:
            channel: Channel to disarm.
            candidate: If given, only disarm when it is still the pending one.
        """
        state = self._states.get(channel)
        if candidate is None or state.pending is candidate:
            state.pending = None

    def reset(self, channel: ChannelKey) -> None:
        """Return a channel to the empty state."""
        self._states.reset(channel)

    def phase(self, rule: TriggerRule, now: float) -> ChannelPhase:
        """Observable phase of a rule's channel at ``now``."""
        if not rule.enabled:
            return ChannelPhase.IDLE
        state = self._states.get(rule.channel)
        if state.last_fired_at is not None and now < state.last_fired_at + rule.cooldown:
            return ChannelPhase.COOLDOWN
        if state.exceed_start is not None or state.pending is not None:
            return ChannelPhase.ACCUMULATING
        return ChannelPhase.IDLE
