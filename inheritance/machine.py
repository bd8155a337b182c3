from __future__ import annotations

"""
Lifecycle transitions as a pure function of (state, facts).

    ACTIVE --overdue--> WARNING --grace expired--> VERIFICATION --deceased--> DISTRIBUTION

WARNING -> ACTIVE is not a transition of this machine; only an owner check-in
performs it. DISTRIBUTION is terminal.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import TimingConfig
from .model import State

Transition = Tuple[State, State]


@dataclass(frozen=True)
class Facts:
    """Everything a transition may depend on, sampled once per evaluation."""
    now: int
    last_check_in: int
    owner_deceased: bool

    @property
    def elapsed(self) -> int:
        return self.now - self.last_check_in


def next_state(current: State, facts: Facts, timing: TimingConfig) -> Optional[State]:
    if current == State.ACTIVE and facts.elapsed > timing.check_in_period:
        return State.WARNING
    if current == State.WARNING and facts.elapsed > timing.verification_after:
        return State.VERIFICATION
    if current == State.VERIFICATION and facts.owner_deceased:
        return State.DISTRIBUTION
    return None


def cascade(current: State, facts: Facts, timing: TimingConfig) -> List[Transition]:
    """Apply `next_state` until it settles; returns the transitions in order."""
    steps: List[Transition] = []
    state = current
    while True:
        nxt = next_state(state, facts, timing)
        if nxt is None:
            return steps
        steps.append((state, nxt))
        state = nxt


__all__ = ["Facts", "Transition", "next_state", "cascade"]
