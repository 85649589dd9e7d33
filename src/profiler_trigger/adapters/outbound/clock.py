"""Clock adapters.

MonotonicClock is the production time source. ManualClock only moves when
told to, which makes hysteresis and cooldown windows reproducible in tests
and simulations.
"""

from __future__ import annotations

import threading
import time


class MonotonicClock:
    """Clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock advanced explicitly by the caller."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new instant."""
        if seconds < 0:
            raise ValueError(f"cannot move a monotonic clock backwards ({seconds})")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, instant: float) -> None:
        """Jump to ``instant``, which must not be in the past."""
        with self._lock:
            if instant < self._now:
                raise ValueError(f"cannot move a monotonic clock backwards ({instant} < {self._now})")
            self._now = instant
