from __future__ import annotations

"""
Core value types shared across the vault: addresses, lifecycle state and the
beneficiary slot record.
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Mapping, Tuple

from .errors import InvalidAddress

ZERO_ADDRESS = "0x" + "0" * 40

_ADDR_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(_ADDR_RE.match(value))


def normalize_address(value: Any) -> str:
    """
    Return the lower-cased canonical form of a 0x-prefixed 20-byte hex address.

    Raises InvalidAddress for anything else. The zero address is syntactically
    valid; callers that must reject it check `is_zero_address` themselves.
    """
    if not is_address(value):
        raise InvalidAddress(value)
    return value.lower()


def is_zero_address(value: str) -> bool:
    return value.lower() == ZERO_ADDRESS


class State(IntEnum):
    """Vault lifecycle. DISTRIBUTION is terminal."""

    ACTIVE = 0
    WARNING = 1
    VERIFICATION = 2
    DISTRIBUTION = 3


@dataclass(frozen=True)
class BeneficiarySlot:
    address: str
    percentage: int

    def as_tuple(self) -> Tuple[str, int]:
        return (self.address, self.percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "percentage": self.percentage}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "BeneficiarySlot":
        return cls(address=normalize_address(d["address"]), percentage=int(d["percentage"]))


EMPTY_SLOT: Tuple[str, int] = (ZERO_ADDRESS, 0)


__all__ = [
    "ZERO_ADDRESS",
    "EMPTY_SLOT",
    "is_address",
    "normalize_address",
    "is_zero_address",
    "State",
    "BeneficiarySlot",
]
