from __future__ import annotations

"""
Yield reserve adapter.

The vault parks every deposit in a reserve and pulls value back on withdraw or
at distribution. `ReserveAdapter` is the narrow interface the vault relies on;
`InMemoryReserve` is a deterministic pool backed by the shared asset ledger.
Interest mechanics are not modelled: yield appears only when `accrue` or
`accrue_bps` is called (by a test, the CLI, or a simulation driver).

Accounting
----------
The reserve tracks the custodian's deposited principal and holds the position
value in its own ledger account. Partial withdrawals return a pro-rata slice
of the position:

    returned = position_value * amount // principal

so yield earned on the withdrawn slice travels with it, and truncation favours
the pool.
"""

import logging
from typing import Any, Dict, Mapping, Protocol, runtime_checkable

from ..asset import TokenLedger
from ..errors import InvalidAmount, ReserveError
from ..model import normalize_address

log = logging.getLogger(__name__)


@runtime_checkable
class ReserveAdapter(Protocol):
    def deposit(self, amount: int) -> None:
        """Pull `amount` from the custodian into the reserve."""
        ...

    def withdraw(self, amount: int) -> int:
        """Redeem `amount` of principal; returns the value sent to the custodian."""
        ...

    def withdraw_all(self) -> int:
        """Redeem the whole position; returns the value sent to the custodian."""
        ...

    def position_value(self) -> int:
        ...


class InMemoryReserve:
    def __init__(self, asset: TokenLedger, address: str, custodian: str) -> None:
        self.asset = asset
        self.address = normalize_address(address)
        self.custodian = normalize_address(custodian)
        self.principal = 0

    # -- ReserveAdapter --------------------------------------------------------

    def deposit(self, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount, "reserve deposit must be positive")
        self.asset.transfer(self.custodian, self.address, amount)
        self.principal += amount
        log.debug("reserve deposit %d (principal=%d)", amount, self.principal)

    def withdraw(self, amount: int) -> int:
        if amount <= 0:
            raise InvalidAmount(amount, "reserve withdraw must be positive")
        if amount > self.principal:
            raise ReserveError(
                "withdraw exceeds deposited principal",
                details={"requested": amount, "principal": self.principal},
            )
        out = self.position_value() * amount // self.principal
        self.asset.transfer(self.address, self.custodian, out)
        self.principal -= amount
        log.debug("reserve withdraw %d -> returned %d", amount, out)
        return out

    def withdraw_all(self) -> int:
        out = self.position_value()
        self.asset.transfer(self.address, self.custodian, out)
        self.principal = 0
        log.debug("reserve withdraw_all -> returned %d", out)
        return out

    def position_value(self) -> int:
        return self.asset.balance_of(self.address)

    # -- yield simulation ------------------------------------------------------

    def accrue(self, amount: int) -> None:
        """Mint `amount` of yield into the position."""
        if amount < 0:
            raise InvalidAmount(amount, "accrued yield must be non-negative")
        if amount and self.principal == 0:
            raise ReserveError("cannot accrue yield on an empty position")
        self.asset.mint(self.address, amount)
        log.info("reserve accrued %d (value=%d)", amount, self.position_value())

    def accrue_bps(self, bps: int) -> int:
        """Accrue `bps` basis points of the current position value; returns the amount."""
        if not (0 <= bps <= 10_000):
            raise InvalidAmount(bps, "bps must be between 0 and 10000")
        amount = self.position_value() * bps // 10_000
        if amount:
            self.accrue(amount)
        return amount

    # -- journal / persistence -------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return {"principal": self.principal}

    def restore(self, snap: Mapping[str, Any]) -> None:
        self.principal = int(snap["principal"])

    def dump(self) -> Dict[str, Any]:
        return {"address": self.address, "custodian": self.custodian, "principal": self.principal}

    @classmethod
    def load(cls, asset: TokenLedger, d: Mapping[str, Any]) -> "InMemoryReserve":
        r = cls(asset, d["address"], d["custodian"])
        r.principal = int(d.get("principal", 0))
        return r


__all__ = ["ReserveAdapter", "InMemoryReserve"]
