from __future__ import annotations

"""
Death attestation adapter.

The vault never verifies proofs itself. It forwards the notary's upload to an
oracle and later asks the oracle whether the owner is deceased.
`InMemoryDeathOracle` accepts any proof; a positive attestation is sticky, so a
later `deceased=False` for the same owner is ignored (and logged).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Protocol, runtime_checkable

from ..model import normalize_address

log = logging.getLogger(__name__)


@runtime_checkable
class DeathAttestationAdapter(Protocol):
    def is_deceased(self, owner: str) -> bool:
        ...

    def get_proof(self, owner: str) -> bytes:
        ...

    def record(self, owner: str, deceased: bool, proof: bytes) -> None:
        ...


@dataclass(frozen=True)
class Attestation:
    deceased: bool
    proof: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"deceased": self.deceased, "proof": "0x" + self.proof.hex()}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Attestation":
        raw = str(d.get("proof", "0x"))
        return cls(deceased=bool(d["deceased"]), proof=bytes.fromhex(raw[2:] if raw.startswith("0x") else raw))


class InMemoryDeathOracle:
    def __init__(self) -> None:
        self._records: Dict[str, Attestation] = {}

    def is_deceased(self, owner: str) -> bool:
        rec = self._records.get(normalize_address(owner))
        return bool(rec and rec.deceased)

    def get_proof(self, owner: str) -> bytes:
        rec = self._records.get(normalize_address(owner))
        return rec.proof if rec else b""

    def record(self, owner: str, deceased: bool, proof: bytes) -> None:
        key = normalize_address(owner)
        prev = self._records.get(key)
        if prev is not None and prev.deceased and not deceased:
            log.warning("ignoring retraction of death attestation for %s", key)
            return
        self._records[key] = Attestation(deceased=bool(deceased), proof=bytes(proof))
        log.info("attestation recorded owner=%s deceased=%s proof_len=%d", key, bool(deceased), len(proof))

    # -- journal / persistence -------------------------------------------------

    def snapshot(self) -> Dict[str, Attestation]:
        return dict(self._records)

    def restore(self, snap: Mapping[str, Attestation]) -> None:
        self._records = dict(snap)

    def dump(self) -> Dict[str, Any]:
        return {k: v.to_dict() for k, v in sorted(self._records.items())}

    @classmethod
    def load(cls, d: Mapping[str, Any]) -> "InMemoryDeathOracle":
        o = cls()
        o._records = {normalize_address(k): Attestation.from_dict(v) for k, v in d.items()}
        return o


__all__ = ["DeathAttestationAdapter", "Attestation", "InMemoryDeathOracle"]
