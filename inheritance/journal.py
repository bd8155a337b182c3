from __future__ import annotations

"""
All-or-nothing execution across the vault and its collaborators.

Every participant exposes `snapshot()` and `restore(snap)`. `Journal.atomic()`
snapshots them all on entry; if the body raises, each participant is restored
in reverse order and the exception propagates unchanged.

    with journal.atomic():
        funds.deposit(amount)       # touches asset + reserve
        events.emit(...)            # appended, or truncated on failure

Scopes nest like savepoints: an inner scope that fails restores what it
changed and re-raises; if the caller catches that, the outer scope carries on
and can still commit or fail as a whole.

Collaborators that cannot be snapshotted (an external reserve, for example)
are simply not enrolled; the caller is then responsible for their atomicity.
"""

import contextlib
import logging
from typing import Any, Iterator, List, Protocol, Tuple, runtime_checkable

log = logging.getLogger(__name__)


@runtime_checkable
class Journaled(Protocol):
    def snapshot(self) -> Any:
        ...

    def restore(self, snap: Any) -> None:
        ...


class Journal:
    def __init__(self) -> None:
        self._participants: List[Tuple[str, Journaled]] = []
        self._depth = 0

    def enroll(self, name: str, participant: Any) -> bool:
        """Add `participant` if it supports snapshot/restore; returns whether it was enrolled."""
        if not isinstance(participant, Journaled):
            log.debug("journal: %s is not journaled; skipping", name)
            return False
        if any(p is participant for _, p in self._participants):
            return False
        self._participants.append((name, participant))
        return True

    @property
    def participants(self) -> List[str]:
        return [n for n, _ in self._participants]

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        # Every scope is a savepoint; a nested failure unwinds only its own body.
        snaps = [(name, p, p.snapshot()) for name, p in self._participants]
        self._depth += 1
        try:
            yield
        except BaseException as e:
            for name, p, snap in reversed(snaps):
                p.restore(snap)
            log.warning(
                "rolled back %s at depth %d: %s",
                ", ".join(n for n, _, _ in snaps) or "nothing",
                self._depth,
                e,
            )
            raise
        finally:
            self._depth -= 1

    @property
    def depth(self) -> int:
        return self._depth


__all__ = ["Journaled", "Journal"]
