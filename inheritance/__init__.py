from __future__ import annotations
"""
inheritance - conditional custody of an estate.

An owner deposits funds into a vault that parks them in a yield reserve and
periodically checks in. If the owner goes silent past the check-in and grace
periods and a notary attests the owner's death, the vault liquidates the
reserve and pays the registered beneficiaries their percentages, with any
unallocated remainder going to the notary. Payout happens exactly once.

Public surface (lazily loaded):
- config, errors, model, clock, events, asset
- access, timer, registry, ledger, machine, distribution, journal
- vault, deployment, store, adapters, cli
"""


import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "config",
    "errors",
    "model",
    "clock",
    "events",
    "asset",
    "access",
    "timer",
    "registry",
    "ledger",
    "machine",
    "distribution",
    "journal",
    "vault",
    "deployment",
    "store",
    "adapters",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------

_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the package version string."""
    return __version__
