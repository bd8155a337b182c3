from __future__ import annotations

"""
Time sources. The vault reads the clock exactly once per operation; tests and
the CLI inject a ManualClock to simulate elapsed days deterministically.
"""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current time in integer seconds."""
        ...


class SystemClock:
    """Wall clock (unix seconds)."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("start must be non-negative")
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def set(self, ts: int) -> None:
        ts = int(ts)
        with self._lock:
            if ts < self._now:
                raise ValueError(f"clock cannot move backwards ({ts} < {self._now})")
            self._now = ts

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def advance_units(self, units: int, unit_seconds: int) -> int:
        return self.advance(units * unit_seconds)


__all__ = ["Clock", "SystemClock", "ManualClock"]
