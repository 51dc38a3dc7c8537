"""
Clock sources for the escrow ledger.

Timelocks are compared against `now()` in whole unix seconds.
"""

import time


class Clock:
    """Source of the current ledger time."""

    def now(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock, truncated to seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and simulations to put the ledger exactly on, before or
    after a timelock.
    """

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int):
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now
