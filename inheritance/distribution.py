from __future__ import annotations

"""
One-shot distribution of the estate.

Planning is pure integer arithmetic over the custody total:

    share_i   = total * pct_i // 100                      (each occupied slot, index order)
    remainder = total * (100 - sum(pct)) // 100           (notary, only if sum(pct) < 100)

Each amount is floored independently, so `dust = total - sum(amounts)` stays
in custody. Zero-valued lines are still paid (and evented) so every allocation
leaves a record.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Tuple

from .asset import TokenLedger
from .errors import InvalidAmount
from .ledger import FundsLedger
from .registry import FULL_ALLOCATION

log = logging.getLogger(__name__)

BENEFICIARY = "beneficiary"
NOTARY = "notary"


@dataclass(frozen=True)
class PayoutLine:
    address: str
    amount: int
    role: str = BENEFICIARY

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "amount": self.amount, "role": self.role}


@dataclass(frozen=True)
class PayoutPlan:
    total: int
    lines: Tuple[PayoutLine, ...] = field(default_factory=tuple)

    @property
    def paid(self) -> int:
        return sum(line.amount for line in self.lines)

    @property
    def dust(self) -> int:
        return self.total - self.paid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "paid": self.paid,
            "dust": self.dust,
            "lines": [line.to_dict() for line in self.lines],
        }


def plan_distribution(total: int, allocations: Iterable[Tuple[str, int]], notary: str) -> PayoutPlan:
    if total < 0:
        raise InvalidAmount(total, "distribution total must be non-negative")
    lines: List[PayoutLine] = []
    determined = 0
    for address, pct in allocations:
        determined += pct
        lines.append(PayoutLine(address, total * pct // FULL_ALLOCATION))
    if determined > FULL_ALLOCATION:
        raise InvalidAmount(determined, "allocations exceed 100%")
    if determined < FULL_ALLOCATION:
        lines.append(PayoutLine(notary, total * (FULL_ALLOCATION - determined) // FULL_ALLOCATION, NOTARY))
    return PayoutPlan(total=total, lines=tuple(lines))


class DistributionEngine:
    """Liquidates the reserve position and executes a payout plan from custody."""

    def __init__(self, asset: TokenLedger, funds: FundsLedger) -> None:
        self.asset = asset
        self.funds = funds

    def liquidate(self) -> int:
        """Pull the whole reserve position into custody; returns the custody total."""
        returned = self.funds.reserve.withdraw_all()
        total = self.funds.idle()
        log.info("liquidated reserve: returned=%d custody_total=%d", returned, total)
        return total

    def run(
        self,
        allocations: Iterable[Tuple[str, int]],
        notary: str,
        on_payout: Callable[[PayoutLine], None],
    ) -> PayoutPlan:
        total = self.liquidate()
        plan = plan_distribution(total, allocations, notary)
        for line in plan.lines:
            self.asset.transfer(self.funds.custody, line.address, line.amount)
            on_payout(line)
            log.info("payout %s %s amount=%d", line.role, line.address, line.amount)
        self.funds.reset()
        if plan.dust:
            log.info("distribution dust retained in custody: %d", plan.dust)
        return plan


__all__ = [
    "BENEFICIARY",
    "NOTARY",
    "PayoutLine",
    "PayoutPlan",
    "plan_distribution",
    "DistributionEngine",
]
