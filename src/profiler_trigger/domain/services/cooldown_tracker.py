"""Cooldown tracker.

A channel that fired at ``last_fired_at`` may not fire again until
``now >= last_fired_at + cooldown``. The ledger lives in the shared
EvaluationState, so CPU, MEMORY and every request trigger cool down
independently.

The firing instant is recorded at decision time, before the trigger sink is
invoked. A slow capture therefore does not stretch the cooldown and a fast one
does not shorten it. If the sink then refuses to start the capture, the
caller rolls the record back so the channel can retry on its next
qualification.
"""

from __future__ import annotations

from typing import Dict

from profiler_trigger.domain.entities.evaluation_state import EvaluationStateStore
from profiler_trigger.domain.value_objects.identifiers import ChannelKey


class CooldownTracker:
    """Per-channel re-fire suppression."""

    def __init__(self, states: EvaluationStateStore | None = None) -> None:
        self._states = states if states is not None else EvaluationStateStore()
        # Value of last_fired_at before the latest admission, for rollback.
        self._previous: Dict[ChannelKey, float | None] = {}

    def is_cooling_down(self, channel: ChannelKey, cooldown: float, now: float) -> bool:
        """Check if the channel is still inside its cooldown window."""
        last = self._states.get(channel).last_fired_at
        return last is not None and now < last + cooldown

    def remaining(self, channel: ChannelKey, cooldown: float, now: float) -> float:
        """Seconds left until the channel may fire again (0 if it may fire now)."""
        last = self._states.get(channel).last_fired_at
        if last is None:
            return 0.0
        return max(0.0, last + cooldown - now)

    def admit(self, channel: ChannelKey, cooldown: float, now: float) -> bool:
        """Admit a firing if the channel is not cooling down.

        On admission ``last_fired_at`` is updated to ``now``.

        Args:
            channel: Channel that wants to fire.
            cooldown: Cooldown of the channel's rule.
            now: Decision instant.

        Returns:
            True if the firing is allowed.
        """
        if self.is_cooling_down(channel, cooldown, now):
            return False
        state = self._states.get(channel)
        self._previous[channel] = state.last_fired_at
        state.last_fired_at = now
        return True

    def rollback(self, channel: ChannelKey, fired_at: float) -> bool:
        """Undo an admission whose capture never started.

        Only rolls back if ``fired_at`` is still the recorded firing, so a
        reset or a later admission is never clobbered.

        Returns:
            True if the ledger was restored.
        """
        state = self._states.get(channel)
        if state.last_fired_at != fired_at:
            return False
        state.last_fired_at = self._previous.pop(channel, None)
        return True

    def forget(self, channel: ChannelKey) -> None:
        """Drop rollback bookkeeping for a channel that was reset."""
        self._previous.pop(channel, None)
