"""Request trigger evaluation.

Request outcomes are aggregated per channel in a sliding time window. Each
incoming outcome updates the window and produces one scalar sample, the
breach ratio (breaching requests / requests in window), which is then fed to
the ThresholdEvaluator. The hysteresis and cooldown semantics are therefore
identical to those of resource metrics.

No sample is produced until the window holds ``minimum_samples`` outcomes,
so a single slow request on an idle service cannot read as a 100% ratio.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Tuple

from profiler_trigger.domain.entities.trigger import CandidateAlert, RequestOutcome
from profiler_trigger.domain.services.threshold_evaluator import ThresholdEvaluator
from profiler_trigger.domain.value_objects.alerting_config import RequestTriggerRule
from profiler_trigger.domain.value_objects.identifiers import ChannelKey

logger = logging.getLogger(__name__)


class RequestWindow:
    """Time-bounded window of (instant, breached) request outcomes."""

    def __init__(self, max_events: int = 10000) -> None:
        self._events: Deque[Tuple[float, bool]] = deque(maxlen=max_events)
        self._breaches = 0

    def add(self, now: float, breached: bool) -> None:
        if len(self._events) == self._events.maxlen:
            _, evicted = self._events[0]
            if evicted:
                self._breaches -= 1
        self._events.append((now, breached))
        if breached:
            self._breaches += 1

    def prune(self, cutoff: float) -> None:
        """Drop events strictly older than ``cutoff``."""
        while self._events and self._events[0][0] < cutoff:
            _, breached = self._events.popleft()
            if breached:
                self._breaches -= 1

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def breach_ratio(self) -> float:
        if not self._events:
            return 0.0
        return self._breaches / len(self._events)


class RequestTriggerEvaluator:
    """Feeds request-outcome breach ratios through the threshold evaluator."""

    def __init__(self, thresholds: ThresholdEvaluator, max_events: int = 10000) -> None:
        """Initialize the evaluator.

        Args:
            thresholds: Hysteresis evaluator shared with resource channels.
            max_events: Upper bound on outcomes kept per window.
        """
        self._thresholds = thresholds
        self._max_events = max_events
        self._windows: Dict[ChannelKey, RequestWindow] = {}

    @property
    def thresholds(self) -> ThresholdEvaluator:
        return self._thresholds

    def on_request_event(
        self,
        rule: RequestTriggerRule,
        outcome: RequestOutcome,
        now: float,
        channel: ChannelKey | None = None,
    ) -> CandidateAlert | None:
        """Account one request outcome.

        Args:
            rule: Request trigger to evaluate.
            outcome: The request outcome.
            now: Monotonic instant of the outcome.
            channel: Channel override; defaults to ``rule.channel``.

        Returns:
            A candidate alert if the channel qualified with this outcome.
        """
        if not rule.enabled or not rule.matches(outcome.name):
            return None

        key = channel or rule.channel
        if self._thresholds.is_stale(key, now):
            logger.debug(f"Ignoring out-of-order request event on {key}")
            return None

        window = self._windows.get(key)
        if window is None:
            window = RequestWindow(self._max_events)
            self._windows[key] = window

        window.add(now, rule.is_breach(outcome.duration_ms, outcome.success))
        window.prune(now - rule.window_seconds)

        if window.count < rule.minimum_samples:
            return None

        return self._thresholds.on_sample(rule, window.breach_ratio, now, channel=key)

    def window(self, channel: ChannelKey) -> RequestWindow | None:
        return self._windows.get(channel)

    def discard(self, channel: ChannelKey) -> None:
        """Drop the window and in-progress hysteresis, keeping the cooldown ledger."""
        self._windows.pop(channel, None)
        self._thresholds.states.get(channel).discard_hysteresis()

    def reset(self, channel: ChannelKey) -> None:
        """Drop the window and hysteresis of a channel."""
        self._windows.pop(channel, None)
        self._thresholds.reset(channel)
