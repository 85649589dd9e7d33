"""Trigger arbiter: precedence and mutual exclusion.

At most one engine-initiated capture runs at a time. When several channels
qualify in the same evaluation tick they are ordered by precedence:

    1. Collection plan        (operator intent wins over heuristics)
    2. Threshold alerts       (CPU before MEMORY)
    3. Request triggers       (configuration order)
    4. Default periodic       (only when nothing else fires)

Candidates are offered to the cooldown gate in that order and the first one
admitted fires. Candidates rejected by cooldown are returned as ``rejected``
so the caller can disarm them. Candidates that lost to a higher-precedence
one are ``deferred`` and stay armed for the next tick.

While a capture is in progress every candidate is ``dropped``: the cooldown
ledger and single-trigger consumption are left untouched, so the candidate
re-qualifies once the running capture completes.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Iterable

from profiler_trigger.domain.entities.trigger import CandidateAlert, CaptureOutcome, TriggerEvent
from profiler_trigger.domain.services.cooldown_tracker import CooldownTracker
from profiler_trigger.domain.value_objects.identifiers import (
    AlertMetricType,
    CaptureHandle,
    TriggerReason,
)

logger = logging.getLogger(__name__)

_REASON_PRECEDENCE = {
    TriggerReason.COLLECTION_PLAN: 0,
    TriggerReason.THRESHOLD: 1,
    TriggerReason.REQUEST_TRIGGER: 2,
    TriggerReason.DEFAULT_PERIODIC: 3,
}

_METRIC_PRECEDENCE = {
    AlertMetricType.CPU: 0,
    AlertMetricType.MEMORY: 1,
}


@dataclass
class ActiveCapture:
    """The capture currently owning the in-progress flag."""

    event: TriggerEvent
    candidate: CandidateAlert
    handle: CaptureHandle | None = None
    completed_early: bool = False
    outcome: CaptureOutcome | None = None


@dataclass
class ArbitrationDecision:
    """Result of one arbitration round."""

    event: TriggerEvent | None = None
    selected: CandidateAlert | None = None
    rejected: list[CandidateAlert] = field(default_factory=list)
    deferred: list[CandidateAlert] = field(default_factory=list)
    dropped: list[CandidateAlert] = field(default_factory=list)


class TriggerArbiter:
    """Owns the capture-in-progress flag and resolves precedence.

    Thread Safety:
        Not thread-safe. The engine serializes all calls under its lock.
    """

    def __init__(self, cooldowns: CooldownTracker, id_prefix: str = "trigger") -> None:
        """Initialize the arbiter.

        Args:
            cooldowns: Cooldown gate consulted before a candidate fires.
            id_prefix: Prefix of generated trigger ids.
        """
        self._cooldowns = cooldowns
        self._id_prefix = id_prefix
        self._ids = itertools.count(1)
        self._active: ActiveCapture | None = None

    @property
    def capture_in_progress(self) -> bool:
        return self._active is not None

    @property
    def active(self) -> ActiveCapture | None:
        return self._active

    @staticmethod
    def order(candidates: Iterable[CandidateAlert]) -> list[CandidateAlert]:
        """Sort candidates by precedence, keeping input order among equals."""
        return sorted(
            candidates,
            key=lambda c: (
                _REASON_PRECEDENCE[c.reason],
                _METRIC_PRECEDENCE.get(c.metric_type, len(_METRIC_PRECEDENCE)),
            ),
        )

    def arbitrate(self, candidates: Iterable[CandidateAlert], now: float) -> ArbitrationDecision:
        """Pick at most one candidate to fire at ``now``.

        Args:
            candidates: Candidates qualified at this tick.
            now: Decision instant.

        Returns:
            The decision. ``decision.event`` is set when a capture must start.
        """
        ordered = self.order(candidates)
        decision = ArbitrationDecision()

        if self._active is not None:
            decision.dropped = ordered
            return decision

        for candidate in ordered:
            if decision.selected is not None:
                decision.deferred.append(candidate)
                continue
            if not self._cooldowns.admit(candidate.channel, candidate.cooldown, now):
                decision.rejected.append(candidate)
                continue
            decision.selected = candidate

        if decision.selected is None:
            return decision

        selected = decision.selected
        decision.event = TriggerEvent(
            trigger_id=f"{self._id_prefix}-{next(self._ids)}",
            metric_type=selected.metric_type,
            reason=selected.reason,
            profile_duration=selected.profile_duration,
            fired_at=now,
            channel=selected.channel,
            observed_value=selected.observed_value,
            threshold=selected.threshold,
            settings=selected.settings,
        )
        self._active = ActiveCapture(event=decision.event, candidate=selected)
        return decision

    def confirm(self, event: TriggerEvent, handle: CaptureHandle) -> bool:
        """Record that the sink accepted ``event``.

        Returns:
            True if the capture is still running, False if it already
            completed while the sink call was in flight.
        """
        active = self._active
        if active is None or active.event is not event:
            return False
        if active.completed_early:
            self._active = None
            return False
        active.handle = handle
        return True

    def abort(self, event: TriggerEvent) -> bool:
        """Undo a firing whose capture could not be started.

        Clears the in-progress flag and rolls back the cooldown ledger so the
        channel retries on its next qualification.
        """
        active = self._active
        if active is None or active.event is not event:
            return False
        self._cooldowns.rollback(event.channel, event.fired_at)
        self._active = None
        return True

    def complete(
        self, handle: CaptureHandle, outcome: CaptureOutcome = CaptureOutcome.SUCCEEDED
    ) -> ActiveCapture | None:
        """Release the in-progress flag for a finished capture.

        A completion that arrives before ``start_capture`` returned is only
        accepted under the handle ``CaptureHandle(trigger_id)`` of the capture
        being started; anything else is a stale or duplicate callback.

        Returns:
            The capture that finished, or None if ``handle`` is unknown.
        """
        active = self._active
        if active is None:
            return None
        if active.handle is None:
            if handle != CaptureHandle(active.event.trigger_id):
                return None
            logger.debug(f"Capture {handle} completed before start_capture returned")
            active.completed_early = True
            active.outcome = outcome
            return active
        if active.handle != handle:
            return None
        active.outcome = outcome
        self._active = None
        return active
