from __future__ import annotations

"""
Beneficiary registry: a fixed table of ten optional slots.

Invariants
----------
- the sum of occupied percentages never exceeds 100
- an address occupies at most one slot
- a freed index is reused by the next successful add (lowest empty index wins)

Structural problems with the input (zero or malformed address, percentage
outside [1, 100]) raise. Requests that are well-formed but cannot be honoured
(duplicate, over-allocation, full table, unknown address on remove) return a
rejected RegistryOutcome and leave the table untouched.

Role and lifecycle guards are applied by the vault, not here.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import InvalidAddress, InvalidAmount
from .model import EMPTY_SLOT, BeneficiarySlot, is_zero_address, normalize_address

log = logging.getLogger(__name__)

MAX_BENEFICIARIES = 10
FULL_ALLOCATION = 100


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"


class RejectReason(str, Enum):
    DUPLICATE = "duplicate"
    OVER_ALLOCATED = "over_allocated"
    REGISTRY_FULL = "registry_full"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class RegistryOutcome:
    status: OutcomeStatus
    reason: Optional[RejectReason] = None
    slot: Optional[int] = None

    @classmethod
    def applied_at(cls, slot: int) -> "RegistryOutcome":
        return cls(OutcomeStatus.APPLIED, None, slot)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "RegistryOutcome":
        return cls(OutcomeStatus.REJECTED, reason, None)

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    def __bool__(self) -> bool:
        return self.applied

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "slot": self.slot,
        }


class BeneficiaryRegistry:
    def __init__(self, slots: Optional[Sequence[Optional[BeneficiarySlot]]] = None) -> None:
        self._slots: List[Optional[BeneficiarySlot]] = [None] * MAX_BENEFICIARIES
        if slots is not None:
            if len(slots) != MAX_BENEFICIARIES:
                raise ValueError(f"registry needs exactly {MAX_BENEFICIARIES} slots")
            self._slots = list(slots)
            if self.determined_percentage() > FULL_ALLOCATION:
                raise ValueError("registry allocation exceeds 100%")

    # -- reads -----------------------------------------------------------------

    def __iter__(self) -> Iterator[Tuple[int, BeneficiarySlot]]:
        """Occupied slots as (index, slot), in index order."""
        for i, s in enumerate(self._slots):
            if s is not None:
                yield i, s

    def find(self, address: str) -> Optional[int]:
        a = address.lower()
        for i, s in self:
            if s.address == a:
                return i
        return None

    def active_count(self) -> int:
        return sum(1 for _ in self)

    def determined_percentage(self) -> int:
        return sum(s.percentage for _, s in self)

    def is_fully_determined(self) -> bool:
        return self.determined_percentage() == FULL_ALLOCATION

    def snapshot(self) -> List[Tuple[str, int]]:
        """Full table; empty slots as (ZERO_ADDRESS, 0)."""
        return [s.as_tuple() if s is not None else EMPTY_SLOT for s in self._slots]

    def active_snapshot(self) -> List[Tuple[str, int]]:
        return [s.as_tuple() for _, s in self]

    # -- writes ----------------------------------------------------------------

    def add(self, address: str, percentage: int) -> RegistryOutcome:
        addr = normalize_address(address)
        if is_zero_address(addr):
            raise InvalidAddress(addr, "beneficiary must not be the zero address")
        if isinstance(percentage, bool) or not isinstance(percentage, int) or not (1 <= percentage <= FULL_ALLOCATION):
            raise InvalidAmount(percentage, "percentage must be an integer in [1, 100]")

        if self.find(addr) is not None:
            return self._reject(RejectReason.DUPLICATE, addr)
        if self.determined_percentage() + percentage > FULL_ALLOCATION:
            return self._reject(RejectReason.OVER_ALLOCATED, addr)
        try:
            idx = self._slots.index(None)
        except ValueError:
            return self._reject(RejectReason.REGISTRY_FULL, addr)

        self._slots[idx] = BeneficiarySlot(addr, percentage)
        log.info("beneficiary added slot=%d address=%s pct=%d", idx, addr, percentage)
        return RegistryOutcome.applied_at(idx)

    def remove(self, address: str) -> RegistryOutcome:
        addr = normalize_address(address)
        idx = None if is_zero_address(addr) else self.find(addr)
        if idx is None:
            return self._reject(RejectReason.NOT_FOUND, addr)
        self._slots[idx] = None
        log.info("beneficiary removed slot=%d address=%s", idx, addr)
        return RegistryOutcome.applied_at(idx)

    @staticmethod
    def _reject(reason: RejectReason, addr: str) -> RegistryOutcome:
        log.debug("registry change rejected (%s) for %s", reason.value, addr)
        return RegistryOutcome.rejected(reason)

    # -- journal / persistence -------------------------------------------------

    def copy_slots(self) -> List[Optional[BeneficiarySlot]]:
        return list(self._slots)

    def restore_slots(self, slots: Sequence[Optional[BeneficiarySlot]]) -> None:
        self._slots = list(slots)

    def dump(self) -> List[Optional[Dict[str, Any]]]:
        return [s.to_dict() if s is not None else None for s in self._slots]

    @classmethod
    def load(cls, rows: Sequence[Optional[Dict[str, Any]]]) -> "BeneficiaryRegistry":
        return cls([BeneficiarySlot.from_dict(r) if r else None for r in rows])


__all__ = [
    "MAX_BENEFICIARIES",
    "FULL_ALLOCATION",
    "OutcomeStatus",
    "RejectReason",
    "RegistryOutcome",
    "BeneficiaryRegistry",
]
