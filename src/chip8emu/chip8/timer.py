"""60 Hz countdown timers (delay and sound)."""

from __future__ import annotations

import time
from typing import Callable, Optional

TIMER_RATE_HZ = 60
TIMER_PERIOD = 1.0 / TIMER_RATE_HZ


class Timer:
    """8-bit counter that decays by one every 1/60 s of wall-clock time.

    Decay is driven by :meth:`tick` and depends only on elapsed time, so the
    timer runs at the same speed whatever the instruction rate is.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, *, period: float = TIMER_PERIOD) -> None:
        self._clock = clock
        self._period = period
        self._value = 0
        self._last_decrement = clock()

    def value(self) -> int:
        return self._value

    def set(self, value: int) -> None:
        self._value = value & 0xFF
        self._last_decrement = self._clock()

    def tick(self, now: Optional[float] = None) -> bool:
        """Decrement once if a full period has elapsed; return True if it did."""

        if now is None:
            now = self._clock()
        if self._value == 0:
            self._last_decrement = now
            return False
        if now - self._last_decrement < self._period:
            return False
        self._value -= 1
        self._last_decrement += self._period
        if now - self._last_decrement >= self._period:
            # Too far behind to catch up one tick at a time.
            self._last_decrement = now
        return True

    def reset(self) -> None:
        self._value = 0
        self._last_decrement = self._clock()
