from __future__ import annotations
# inheritance/errors.py
"""
Error types for the inheritance custody vault. Every error carries a stable
`code`, a human message and a small JSON-able `details` mapping so it can be
surfaced through logs and the CLI unchanged.

Exports:
- InheritanceError (base)
- Unauthorized
- InvalidAddress
- InvalidAmount
- StateLocked, AdministrativeChangeBlocked, PostDistributionLock
- InsufficientBalance
- PayoutAlreadyCompleted
- TokenError, InsufficientFunds
- ReserveError
- StoreError

Registry saturation (duplicate, over-allocation, full table) is not an error;
see inheritance.registry.RegistryOutcome.
"""


import json
from typing import Any, Dict, Mapping, Optional


class InheritanceError(Exception):
    """Base class for vault domain errors."""

    code: str = "INHERITANCE_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:
        if self.details:
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class Unauthorized(InheritanceError):
    """Caller is not the role the operation requires."""
    code = "UNAUTHORIZED"

    def __init__(
        self,
        *,
        role: str,
        caller: Any,
        message: str = "",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"role": role, "caller": str(caller)})
        super().__init__(message or f"only the {role} may call this", details=d)


class InvalidAddress(InheritanceError):
    code = "INVALID_ADDRESS"

    def __init__(self, address: Any = None, message: str = "invalid address", *, details: Optional[Mapping[str, Any]] = None) -> None:
        d = dict(details or {})
        d.setdefault("address", str(address))
        super().__init__(message, details=d)


class InvalidAmount(InheritanceError):
    """Non-positive amount or a percentage outside [1, 100]."""
    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any = None, message: str = "invalid amount", *, details: Optional[Mapping[str, Any]] = None) -> None:
        d = dict(details or {})
        d.setdefault("amount", amount if isinstance(amount, int) else str(amount))
        super().__init__(message, details=d)


class StateLocked(InheritanceError):
    """Operation is not permitted in the vault's current state."""
    code = "STATE_LOCKED"

    def __init__(
        self,
        *,
        state: Any,
        operation: str,
        message: str = "",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"state": getattr(state, "name", str(state)), "operation": operation})
        super().__init__(message or f"{operation} not allowed in state {d['state']}", details=d)


class AdministrativeChangeBlocked(StateLocked):
    """Beneficiary edits outside ACTIVE / WARNING."""
    code = "ADMINISTRATIVE_CHANGE_BLOCKED"


class PostDistributionLock(StateLocked):
    """Funds operations after distribution has executed."""
    code = "POST_DISTRIBUTION_LOCK"


class InsufficientBalance(InheritanceError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, *, requested: int, available: int, message: str = "insufficient balance", details: Optional[Mapping[str, Any]] = None) -> None:
        d = dict(details or {})
        d.update({"requested": int(requested), "available": int(available)})
        super().__init__(message, details=d)


class PayoutAlreadyCompleted(InheritanceError):
    code = "PAYOUT_ALREADY_COMPLETED"

    def __init__(self, message: str = "payout already completed", *, details: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message, details=details)


class InvalidProof(InheritanceError):
    """Attestation proof that is neither bytes nor text."""
    code = "INVALID_PROOF"

    def __init__(self, proof: Any = None, message: str = "proof must be bytes or str", *, details: Optional[Mapping[str, Any]] = None) -> None:
        d = dict(details or {})
        d.setdefault("type", type(proof).__name__)
        super().__init__(message, details=d)


class TokenError(InheritanceError):
    """Custody token ledger failures."""
    code = "TOKEN_ERROR"


class InsufficientFunds(TokenError):
    code = "TOKEN_INSUFFICIENT_FUNDS"

    def __init__(self, *, account: str, need: int, have: int, message: str = "insufficient funds", details: Optional[Mapping[str, Any]] = None) -> None:
        d = dict(details or {})
        d.update({"account": account, "need": int(need), "have": int(have)})
        super().__init__(message, details=d)


class ReserveError(InheritanceError):
    """Yield reserve adapter failures."""
    code = "RESERVE_ERROR"


class StoreError(InheritanceError):
    """Persistence failures (missing deployment, corrupt snapshot, ...)."""
    code = "STORE_ERROR"


__all__ = [
    "InheritanceError",
    "Unauthorized",
    "InvalidAddress",
    "InvalidAmount",
    "StateLocked",
    "AdministrativeChangeBlocked",
    "PostDistributionLock",
    "InsufficientBalance",
    "PayoutAlreadyCompleted",
    "InvalidProof",
    "TokenError",
    "InsufficientFunds",
    "ReserveError",
    "StoreError",
]
