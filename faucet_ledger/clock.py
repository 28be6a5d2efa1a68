"""
Time Source Module

The ledger never reads wall-clock time itself. Callers pass `now`
explicitly or the ledger asks its injected clock. Both clocks here are
monotonically non-decreasing and report whole seconds.
"""

from abc import ABC, abstractmethod
import threading
import time


class Clock(ABC):
    """Abstract time source"""

    @abstractmethod
    def now(self) -> int:
        """Current timestamp in whole seconds"""
        pass


class SystemClock(Clock):
    """Wall-clock seconds, clamped so that readings never go backwards"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(time.time())
            if current < self._last:
                current = self._last
            self._last = current
            return current


class ManualClock(Clock):
    """
    Deterministic clock for tests and simulations.
    Time only moves when told to, and never backwards.
    """

    def __init__(self, start: int = 0):
        if isinstance(start, bool) or not isinstance(start, int) or start < 0:
            raise ValueError("Clock start must be a non-negative integer")
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by `seconds` and return the new reading"""
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise ValueError("Clock can only advance by a non-negative integer")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute timestamp (not earlier than the current one)"""
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("Timestamp must be an integer")
        with self._lock:
            if timestamp < self._now:
                raise ValueError(f"Clock cannot move backwards from {self._now} to {timestamp}")
            self._now = timestamp
