from __future__ import annotations

"""
A self-contained deployment: asset ledger, yield reserve, death oracle and the
vault wired to them. The CLI and the tests build everything through here.

Account addresses for the vault custody and the reserve pool are derived
deterministically from the owner so a deployment can be recreated from its
snapshot alone.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .adapters.attestation import InMemoryDeathOracle
from .adapters.reserve import InMemoryReserve
from .asset import TokenLedger
from .clock import Clock
from .config import ProtocolConfig, TimingConfig
from .model import normalize_address
from .vault import InheritanceVault

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def derive_address(tag: str) -> str:
    """Deterministic 20-byte address for a label."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


@dataclass
class Deployment:
    asset: TokenLedger
    reserve: InMemoryReserve
    oracle: InMemoryDeathOracle
    vault: InheritanceVault

    @classmethod
    def create(
        cls,
        owner: str,
        notary: str,
        *,
        clock: Optional[Clock] = None,
        timing: Optional[TimingConfig] = None,
        config: Optional[ProtocolConfig] = None,
        symbol: str = "USDC",
    ) -> "Deployment":
        cfg = config or ProtocolConfig()
        owner = normalize_address(owner)
        custody = derive_address(f"vault-custody:{owner}")
        asset = TokenLedger(symbol=symbol, decimals=cfg.token_decimals)
        reserve = InMemoryReserve(asset, derive_address(f"reserve-pool:{owner}"), custody)
        oracle = InMemoryDeathOracle()
        vault = InheritanceVault(
            owner,
            notary,
            custody=custody,
            asset=asset,
            reserve=reserve,
            oracle=oracle,
            clock=clock,
            timing=timing or cfg.timing,
        )
        log.info("deployed vault owner=%s notary=%s custody=%s", vault.owner, vault.notary, custody)
        return cls(asset=asset, reserve=reserve, oracle=oracle, vault=vault)

    def dump(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "asset": self.asset.dump(),
            "reserve": self.reserve.dump(),
            "oracle": self.oracle.dump(),
            "vault": self.vault.dump(),
        }

    @classmethod
    def load(cls, d: Mapping[str, Any], *, clock: Optional[Clock] = None) -> "Deployment":
        version = int(d.get("version", 0))
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported deployment snapshot version {version}")
        asset = TokenLedger.load(d["asset"])
        reserve = InMemoryReserve.load(asset, d["reserve"])
        oracle = InMemoryDeathOracle.load(d.get("oracle") or {})
        vault = InheritanceVault.load(d["vault"], asset=asset, reserve=reserve, oracle=oracle, clock=clock)
        return cls(asset=asset, reserve=reserve, oracle=oracle, vault=vault)


__all__ = ["Deployment", "derive_address", "SNAPSHOT_VERSION"]
