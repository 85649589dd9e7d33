"""Clock port.

Every channel measures durations against the same monotonic clock so that
precedence between channels qualifying together stays deterministic.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source in float seconds."""

    @abstractmethod
    def now(self) -> float:
        """Return the current monotonic instant."""
        ...
