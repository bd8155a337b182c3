"""
External collaborators of the vault: the yield reserve and the death oracle.
"""

from .attestation import Attestation, DeathAttestationAdapter, InMemoryDeathOracle
from .reserve import InMemoryReserve, ReserveAdapter

__all__ = [
    "ReserveAdapter",
    "InMemoryReserve",
    "DeathAttestationAdapter",
    "Attestation",
    "InMemoryDeathOracle",
]
