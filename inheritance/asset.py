"""
inheritance.asset - deterministic balance ledger for the custodied asset.

One ledger holds every account the vault touches: the owner's wallet, the
vault custody account, the reserve pool and the beneficiaries. It stands in
for the stablecoin the vault custodies (6 decimals by default).

- mint(to, amount)                  # test / simulation faucet
- balance_of(addr) -> int
- transfer(frm, to, amount)         # raises InsufficientFunds
- total_supply() -> int

Deterministic: no wall-clock, no randomness, pure arithmetic with explicit caps.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping

from .errors import InsufficientFunds, InvalidAmount, TokenError
from .model import normalize_address

log = logging.getLogger(__name__)

MAX_BALANCE_BITS = 256


def _check_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(amount, "amount must be int")
    if amount < 0:
        raise InvalidAmount(amount, "amount must be non-negative")
    if amount.bit_length() > MAX_BALANCE_BITS:
        raise InvalidAmount(amount, f"amount exceeds {MAX_BALANCE_BITS}-bit limit")
    return amount


def _add_checked(a: int, b: int) -> int:
    c = a + b
    if c.bit_length() > MAX_BALANCE_BITS:
        raise TokenError("balance overflow")
    return c


class TokenLedger:
    def __init__(self, symbol: str = "USDC", decimals: int = 6) -> None:
        self.symbol = symbol
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._supply = 0
        self._lock = threading.RLock()

    # -- reads -----------------------------------------------------------------

    def balance_of(self, addr: str) -> int:
        a = normalize_address(addr)
        with self._lock:
            return self._balances.get(a, 0)

    def total_supply(self) -> int:
        with self._lock:
            return self._supply

    # -- writes ----------------------------------------------------------------

    def mint(self, to: str, amount: int) -> None:
        a = normalize_address(to)
        _check_amount(amount)
        with self._lock:
            self._balances[a] = _add_checked(self._balances.get(a, 0), amount)
            self._supply = _add_checked(self._supply, amount)
        log.debug("mint %s %d -> %s", self.symbol, amount, a)

    def transfer(self, frm: str, to: str, amount: int) -> None:
        """Move `amount` from `frm` to `to`. Zero is a no-op."""
        f = normalize_address(frm)
        t = normalize_address(to)
        _check_amount(amount)
        if amount == 0:
            return
        with self._lock:
            have = self._balances.get(f, 0)
            if amount > have:
                raise InsufficientFunds(account=f, need=amount, have=have)
            self._balances[f] = have - amount
            self._balances[t] = _add_checked(self._balances.get(t, 0), amount)

    # -- journal / persistence -------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {"balances": {k: v for k, v in self._balances.items() if v}, "supply": self._supply}

    def restore(self, snap: Mapping[str, Any]) -> None:
        with self._lock:
            self._balances = dict(snap["balances"])
            self._supply = int(snap["supply"])

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "symbol": self.symbol,
                "decimals": self.decimals,
                "supply": self._supply,
                "balances": {k: v for k, v in sorted(self._balances.items()) if v},
            }

    @classmethod
    def load(cls, d: Mapping[str, Any]) -> "TokenLedger":
        t = cls(symbol=str(d.get("symbol", "USDC")), decimals=int(d.get("decimals", 6)))
        t._balances = {normalize_address(k): int(v) for k, v in (d.get("balances") or {}).items()}
        t._supply = int(d.get("supply", sum(t._balances.values())))
        return t


__all__ = ["TokenLedger", "MAX_BALANCE_BITS"]
