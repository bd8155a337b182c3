from __future__ import annotations

"""
Role guards for the vault.

Two roles are fixed when the vault is created and never change:

- owner:  the estate holder; funds, check-ins and beneficiary edits
- notary: uploads death attestations and receives the unallocated remainder

Callers are compared in canonical (lower-case) form; a malformed caller is
simply not authorised.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .errors import InvalidAddress, Unauthorized
from .model import is_address, is_zero_address, normalize_address


def _canonical_or_none(caller: Any):
    return caller.lower() if is_address(caller) else None


@dataclass(frozen=True)
class AccessControl:
    owner: str
    notary: str

    def __post_init__(self) -> None:
        for role in ("owner", "notary"):
            addr = normalize_address(getattr(self, role))
            if is_zero_address(addr):
                raise InvalidAddress(addr, f"{role} must not be the zero address")
            object.__setattr__(self, role, addr)

    def is_owner(self, caller: Any) -> bool:
        return _canonical_or_none(caller) == self.owner

    def is_notary(self, caller: Any) -> bool:
        return _canonical_or_none(caller) == self.notary

    def require_owner(self, caller: Any) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(role="owner", caller=caller)

    def require_notary(self, caller: Any) -> None:
        if not self.is_notary(caller):
            raise Unauthorized(role="notary", caller=caller)

    def to_dict(self) -> Dict[str, Any]:
        return {"owner": self.owner, "notary": self.notary}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "AccessControl":
        return cls(owner=d["owner"], notary=d["notary"])


__all__ = ["AccessControl"]
