from __future__ import annotations

"""
Funds ledger: the vault's principal (net deposits) and the plumbing between the
owner's wallet, the vault custody account and the yield reserve.

Deposit:   owner --amount--> custody --amount--> reserve
Withdraw:  reserve --amount + yield slice--> custody --amount--> owner

The yield slice returned on a partial withdrawal stays in custody and is paid
out with everything else at distribution. `principal` is a cost basis, not a
valuation; see `custody_value` for the latter.
"""

import logging

from .adapters.reserve import ReserveAdapter
from .asset import TokenLedger
from .errors import InsufficientBalance, InvalidAmount

log = logging.getLogger(__name__)


def _require_positive(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount, "amount must be a positive integer")
    return amount


class FundsLedger:
    def __init__(self, asset: TokenLedger, reserve: ReserveAdapter, custody: str, owner: str, principal: int = 0) -> None:
        self.asset = asset
        self.reserve = reserve
        self.custody = custody
        self.owner = owner
        self.principal = int(principal)

    def balance(self) -> int:
        return self.principal

    def deposit(self, amount: int) -> None:
        _require_positive(amount)
        self.asset.transfer(self.owner, self.custody, amount)
        self.reserve.deposit(amount)
        self.principal += amount
        log.info("deposit %d (principal=%d)", amount, self.principal)

    def withdraw(self, amount: int) -> int:
        """Return `amount` to the owner; returns the surplus retained in custody."""
        _require_positive(amount)
        if amount > self.principal:
            raise InsufficientBalance(requested=amount, available=self.principal)
        returned = self.reserve.withdraw(amount)
        self.asset.transfer(self.custody, self.owner, amount)
        self.principal -= amount
        surplus = returned - amount
        log.info("withdraw %d (principal=%d, retained=%d)", amount, self.principal, surplus)
        return surplus

    def idle(self) -> int:
        """Value sitting in custody outside the reserve."""
        return self.asset.balance_of(self.custody)

    def custody_value(self) -> int:
        return self.reserve.position_value() + self.idle()

    def reset(self) -> None:
        self.principal = 0


__all__ = ["FundsLedger"]
