from __future__ import annotations

"""
Per-vault event log.

Events are validated on emit (known name, identifier-like keys, and values
restricted to int / bool / bytes / address strings) and can be rendered as
canonical receipt dicts:

    {"seq": 3, "ts": 1700000000, "name": "PayoutMade",
     "args": [{"k": "amount", "t": "i", "v": 500}, {"k": "beneficiary", "t": "a", "v": "0x..."}]}

      t="i" => integer
      t="z" => boolean
      t="b" => bytes as 0x-prefixed hex
      t="a" => address string

The log is append-only; the journal rolls it back by truncating to a mark.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .model import is_address

DEPOSITED = "Deposited"
WITHDRAWN = "Withdrawn"
CHECKED_IN = "CheckedIn"
STATE_CHANGED = "StateChanged"
BENEFICIARY_ADDED = "BeneficiaryAdded"
BENEFICIARY_REMOVED = "BeneficiaryRemoved"
PAYOUT_MADE = "PayoutMade"

EVENT_NAMES = frozenset(
    {
        DEPOSITED,
        WITHDRAWN,
        CHECKED_IN,
        STATE_CHANGED,
        BENEFICIARY_ADDED,
        BENEFICIARY_REMOVED,
        PAYOUT_MADE,
    }
)

MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EventError(ValueError):
    """Raised for malformed events; indicates a programming error, not user input."""


@dataclass(frozen=True)
class Event:
    seq: int
    ts: int
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_receipt(self) -> Dict[str, Any]:
        enc: List[Dict[str, Any]] = []
        for k, v in self.args.items():
            if isinstance(v, (bytes, bytearray)):
                enc.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
            elif isinstance(v, bool):
                enc.append({"k": k, "t": "z", "v": v})
            elif isinstance(v, int):
                enc.append({"k": k, "t": "i", "v": int(v)})
            else:
                enc.append({"k": k, "t": "a", "v": v})
        return {"seq": self.seq, "ts": self.ts, "name": self.name, "args": enc}

    @classmethod
    def from_receipt(cls, d: Mapping[str, Any]) -> "Event":
        args: Dict[str, Any] = {}
        for a in d.get("args", ()):
            t, v = a["t"], a["v"]
            if t == "b":
                args[a["k"]] = bytes.fromhex(v[2:])
            elif t == "z":
                args[a["k"]] = bool(v)
            elif t == "i":
                args[a["k"]] = int(v)
            else:
                args[a["k"]] = str(v)
        return cls(seq=int(d["seq"]), ts=int(d["ts"]), name=str(d["name"]), args=args)


class EventLog:
    def __init__(self, events: Optional[Iterable[Event]] = None) -> None:
        self._events: List[Event] = list(events or ())

    # --- validation ---------------------------------------------------------

    @staticmethod
    def _check_name(name: Any) -> str:
        if name not in EVENT_NAMES:
            raise EventError(f"unknown event name {name!r}")
        return name

    @staticmethod
    def _check_key(key: Any) -> str:
        if not isinstance(key, str) or not key or len(key) > MAX_KEY_LEN or not _KEY_RE.match(key):
            raise EventError(f"invalid event key {key!r}")
        return key

    @staticmethod
    def _check_value(value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            if len(value) > MAX_BYTES_LEN:
                raise EventError("event bytes arg too long")
            return bytes(value)
        if isinstance(value, bool):
            # bool before int
            return value
        if isinstance(value, int):
            if value.bit_length() > MAX_INT_BITS:
                raise EventError("event int arg out of range")
            return int(value)
        if is_address(value):
            return value.lower()
        raise EventError(f"unsupported event arg type {type(value).__name__}")

    # --- core ---------------------------------------------------------------

    def emit(self, name: str, ts: int, args: Optional[Mapping[str, Any]] = None) -> Event:
        checked = {self._check_key(k): self._check_value(v) for k, v in (args or {}).items()}
        ev = Event(seq=len(self._events), ts=int(ts), name=self._check_name(name), args=checked)
        self._events.append(ev)
        return ev

    def events(self, name: Optional[str] = None, since: int = 0) -> List[Event]:
        return [e for e in self._events[since:] if name is None or e.name == name]

    def __len__(self) -> int:
        return len(self._events)

    def mark(self) -> int:
        return len(self._events)

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    # journal participant
    def snapshot(self) -> int:
        return self.mark()

    def restore(self, mark: int) -> None:
        self.truncate(mark)

    def receipts(self, since: int = 0) -> List[Dict[str, Any]]:
        return [e.to_receipt() for e in self._events[since:]]

    def dump(self) -> List[Dict[str, Any]]:
        return self.receipts()

    @classmethod
    def load(cls, rows: Iterable[Mapping[str, Any]]) -> "EventLog":
        return cls(Event.from_receipt(r) for r in rows)


__all__ = [
    "DEPOSITED",
    "WITHDRAWN",
    "CHECKED_IN",
    "STATE_CHANGED",
    "BENEFICIARY_ADDED",
    "BENEFICIARY_REMOVED",
    "PAYOUT_MADE",
    "EVENT_NAMES",
    "Event",
    "EventError",
    "EventLog",
]
