"""
Session clock.

Starts on the user's first keystroke (or first submission), not when the
session object is created, and reports elapsed whole seconds.
"""

import time
from typing import Callable, Optional


class SessionClock:

    def __init__(self, now: Callable[[], float] = time.monotonic):
        self._now = now
        self._started_at: Optional[float] = None

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def start(self) -> bool:
        """Start the clock; returns False if it was already running."""
        if self._started_at is not None:
            return False
        self._started_at = self._now()
        return True

    @property
    def elapsed(self) -> int:
        """Whole seconds since start, 0 before the session starts."""
        if self._started_at is None:
            return 0
        return int(self._now() - self._started_at)

    def has_crossed(self, boundary: int) -> bool:
        return self.started and self.elapsed >= boundary
