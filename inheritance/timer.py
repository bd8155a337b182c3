from __future__ import annotations

"""
Check-in timer: last proof-of-life timestamp and the two inactivity thresholds.

Thresholds are cumulative from the last check-in and compared strictly:

    elapsed >  check_in_period                 -> overdue (ACTIVE -> WARNING)
    elapsed >  check_in_period + grace_period  -> grace expired (WARNING -> VERIFICATION)
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .config import TimingConfig
from .model import State


@dataclass
class CheckInTimer:
    timing: TimingConfig
    last_check_in: int

    def elapsed(self, now: int) -> int:
        return max(0, now - self.last_check_in)

    def is_overdue(self, now: int) -> bool:
        return now - self.last_check_in > self.timing.check_in_period

    def is_grace_expired(self, now: int) -> bool:
        return now - self.last_check_in > self.timing.verification_after

    def record(self, now: int) -> None:
        self.last_check_in = int(now)

    def deadline_for(self, state: State) -> int:
        """Timestamp of the next time threshold for `state`, or -1 when none applies."""
        if state == State.ACTIVE:
            return self.last_check_in + self.timing.check_in_period
        if state == State.WARNING:
            return self.last_check_in + self.timing.verification_after
        return -1

    def time_remaining(self, state: State, now: int) -> int:
        """Seconds until the next threshold; 0 when already past or none applies."""
        deadline = self.deadline_for(state)
        if deadline < 0:
            return 0
        return max(0, deadline - now)

    def to_dict(self) -> Dict[str, Any]:
        return {"timing": self.timing.to_dict(), "last_check_in": self.last_check_in}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CheckInTimer":
        return cls(timing=TimingConfig.from_dict(d.get("timing") or {}), last_check_in=int(d["last_check_in"]))


__all__ = ["CheckInTimer"]
