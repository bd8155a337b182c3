import hashlib
from types import SimpleNamespace

import pytest

from inheritance.clock import ManualClock
from inheritance.config import DAY_SECONDS, load_config
from inheritance.deployment import Deployment

T0 = 1_700_000_000
USDC = 10**6


def mkaddr(tag: str) -> str:
    """Deterministic 20-byte hex address for a label."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch):
    for key in (
        "INHERITANCE_CONFIG_FILE",
        "INHERITANCE_CHECK_IN_PERIOD_UNITS",
        "INHERITANCE_GRACE_PERIOD_UNITS",
        "INHERITANCE_TIME_UNIT_SECONDS",
        "INHERITANCE_TOKEN_DECIMALS",
        "INHERITANCE_DB",
    ):
        monkeypatch.delenv(key, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def acct():
    return SimpleNamespace(
        owner=mkaddr("owner"),
        notary=mkaddr("notary"),
        alice=mkaddr("alice"),
        bob=mkaddr("bob"),
        carol=mkaddr("carol"),
        stranger=mkaddr("stranger"),
    )


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def days(clock):
    """Advance the manual clock by whole days."""

    def _advance(n: int, extra_seconds: int = 0) -> int:
        return clock.advance(n * DAY_SECONDS + extra_seconds)

    return _advance


@pytest.fixture
def dep(acct, clock):
    d = Deployment.create(acct.owner, acct.notary, clock=clock)
    d.asset.mint(acct.owner, 10_000 * USDC)
    return d


@pytest.fixture
def vault(dep):
    return dep.vault
