"""Interval timer driven by a millisecond clock."""

from __future__ import annotations

import time
from typing import Callable


def monotonic_ms() -> int:
    """Milliseconds from a monotonic clock."""
    return int(time.monotonic() * 1000)


class Timer:
    """Fires once each time ``interval`` milliseconds have passed."""

    def __init__(self, interval: int = 0, clock: Callable[[], int] = monotonic_ms) -> None:
        self.interval = interval
        self._clock = clock
        self._previous = clock()

    def is_time(self) -> bool:
        """Return True and restart when the interval has elapsed."""
        now = self._clock()
        if now - self._previous >= self.interval:
            self._previous = now
            return True
        return False

    def elapsed(self) -> int:
        """Milliseconds since the last start."""
        return self._clock() - self._previous

    def reset(self) -> None:
        self._previous = self._clock()