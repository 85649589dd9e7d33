"""Per-channel evaluation state.

The engine owns exactly one EvaluationState per channel (CPU, MEMORY, each
request trigger, the collection plan, the periodic policy). Services never
keep their own copies; they all read and write through the shared
EvaluationStateStore so that a reset clears hysteresis, the cooldown ledger
and plan consumption together.

Channel lifecycle (threshold path):

    IDLE ──breach──> ACCUMULATING ──fire──> COOLDOWN ──elapsed──> IDLE
      ^                   │
      └──────dip──────────┘

Plan lifecycle:

    INACTIVE ──start──> ACTIVE ──fire (single trigger)──> CONSUMED
                          │
                          └──expiration──> EXPIRED

CONSUMED and EXPIRED are terminal until a new configuration arrives.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, Iterator

from profiler_trigger.domain.value_objects.identifiers import ChannelKey

if TYPE_CHECKING:
    from profiler_trigger.domain.entities.trigger import CandidateAlert


class ChannelPhase(Enum):
    """Observable phase of a threshold or request channel."""

    IDLE = auto()
    ACCUMULATING = auto()
    COOLDOWN = auto()


class PlanPhase(Enum):
    """Observable phase of the collection plan."""

    INACTIVE = auto()
    ACTIVE = auto()
    CONSUMED = auto()
    EXPIRED = auto()

    def is_terminal(self) -> bool:
        return self in (PlanPhase.CONSUMED, PlanPhase.EXPIRED)


@dataclass
class EvaluationState:
    """Mutable state of one channel.

    Attributes:
        exceed_start: Instant the value first went continuously >= threshold
        last_fired_at: Instant of the last admitted firing (cooldown ledger)
        plan_consumed: Single-trigger plan already fired
        last_sample_at: Latest sample instant processed, for ordering checks
        armed_at: Instant a periodic schedule was (re)armed
        pending: Qualified candidate waiting for arbitration
    """

    exceed_start: float | None = None
    last_fired_at: float | None = None
    plan_consumed: bool = False
    last_sample_at: float | None = None
    armed_at: float | None = None
    pending: CandidateAlert | None = None

    def clear(self) -> None:
        """Return to the empty state."""
        self.exceed_start = None
        self.last_fired_at = None
        self.plan_consumed = False
        self.last_sample_at = None
        self.armed_at = None
        self.pending = None

    def discard_hysteresis(self) -> None:
        """Drop in-progress accumulation without touching the cooldown ledger."""
        self.exceed_start = None
        self.pending = None


class EvaluationStateStore:
    """Registry of per-channel state.

    Thread Safety:
        Not thread-safe. The engine serializes all access under its lock.
    """

    def __init__(self) -> None:
        self._states: Dict[ChannelKey, EvaluationState] = {}

    def get(self, channel: ChannelKey) -> EvaluationState:
        """Get the state of a channel, creating an empty one on first use."""
        state = self._states.get(channel)
        if state is None:
            state = EvaluationState()
            self._states[channel] = state
        return state

    def reset(self, channel: ChannelKey) -> None:
        """Reset a channel to the empty state."""
        state = self._states.get(channel)
        if state is not None:
            state.clear()

    def __contains__(self, channel: object) -> bool:
        return channel in self._states

    def __iter__(self) -> Iterator[ChannelKey]:
        return iter(list(self._states))

    def __len__(self) -> int:
        return len(self._states)
