import pytest

from inheritance import events as ev
from inheritance.adapters.attestation import InMemoryDeathOracle
from inheritance.adapters.reserve import InMemoryReserve
from inheritance.asset import TokenLedger
from inheritance.deployment import Deployment, derive_address
from inheritance.errors import InsufficientFunds, ReserveError, Unauthorized
from inheritance.journal import Journal
from inheritance.model import State
from inheritance.vault import InheritanceVault
from inheritance.tests.conftest import USDC


class _FlakyReserve(InMemoryReserve):
    """Applies its effects, then fails, so the vault must unwind everything."""

    fail_deposit = False
    fail_withdraw_all = False

    def deposit(self, amount):
        super().deposit(amount)
        if self.fail_deposit:
            raise ReserveError("reserve rejected deposit")

    def withdraw_all(self):
        out = super().withdraw_all()
        if self.fail_withdraw_all:
            raise ReserveError("reserve liquidation failed")
        return out


@pytest.fixture
def flaky_dep(acct, clock):
    asset = TokenLedger()
    custody = derive_address("flaky-custody")
    reserve = _FlakyReserve(asset, derive_address("flaky-pool"), custody)
    oracle = InMemoryDeathOracle()
    vault = InheritanceVault(
        acct.owner, acct.notary, custody=custody, asset=asset, reserve=reserve, oracle=oracle, clock=clock
    )
    asset.mint(acct.owner, 10_000 * USDC)
    return Deployment(asset=asset, reserve=reserve, oracle=oracle, vault=vault)


def _observable(dep, acct):
    v = dep.vault
    return (
        v.get_state(),
        v.get_balance(),
        v.payout_completed,
        len(v.events),
        dep.asset.snapshot(),
        dep.reserve.principal,
        v.get_beneficiaries(),
        v.get_last_check_in(),
    )


def test_failed_deposit_leaves_no_trace(flaky_dep, acct):
    dep = flaky_dep
    dep.reserve.fail_deposit = True
    before = _observable(dep, acct)
    with pytest.raises(ReserveError):
        dep.vault.deposit(acct.owner, 100 * USDC)
    assert _observable(dep, acct) == before


def test_failed_distribution_rolls_back_transitions_and_payouts(flaky_dep, acct, days):
    dep = flaky_dep
    v = dep.vault
    v.deposit(acct.owner, 1_000)
    v.add_beneficiary(acct.owner, acct.alice, 60)
    days(121)
    v.upload_attestation(acct.notary, True, b"p")
    dep.reserve.fail_withdraw_all = True
    before = _observable(dep, acct)

    with pytest.raises(ReserveError):
        v.evaluate()

    assert _observable(dep, acct) == before
    assert v.get_state() is State.ACTIVE
    assert v.check_if_owner_deceased()

    dep.reserve.fail_withdraw_all = False
    assert v.evaluate()[-1] == (State.VERIFICATION, State.DISTRIBUTION)
    assert dep.asset.balance_of(acct.alice) == 600


def test_outer_transaction_rolls_back_as_a_whole(vault, acct):
    with pytest.raises(RuntimeError):
        with vault.transaction():
            vault.deposit(acct.owner, 10)
            assert vault.get_balance() == 10
            raise RuntimeError("abort outer")
    assert vault.get_balance() == 0
    assert len(vault.events) == 0


def test_failed_call_inside_transaction_is_unwound(dep, acct):
    v = dep.vault
    v.deposit(acct.owner, 1_000 * USDC)
    # the pool loses half its value
    dep.asset.transfer(dep.reserve.address, acct.stranger, 500 * USDC)

    with v.transaction():
        with pytest.raises(InsufficientFunds):
            v.withdraw(acct.owner, 1_000 * USDC)
        assert (v.get_balance(), dep.reserve.principal) == (1_000 * USDC, 1_000 * USDC)
        assert dep.asset.balance_of(v.custody) == 0
        v.check_in(acct.owner)

    assert (v.get_balance(), dep.reserve.principal) == (1_000 * USDC, 1_000 * USDC)
    assert dep.reserve.position_value() == 500 * USDC
    assert [e.name for e in v.events.events()] == [ev.DEPOSITED, ev.CHECKED_IN]


def test_outer_failure_unwinds_committed_inner_calls(dep, acct):
    v = dep.vault
    with pytest.raises(RuntimeError):
        with v.transaction():
            v.deposit(acct.owner, 10)
            with pytest.raises(Unauthorized):
                v.deposit(acct.stranger, 10)
            v.add_beneficiary(acct.owner, acct.alice, 50)
            raise RuntimeError("abort outer")
    assert v.get_balance() == 0
    assert v.get_active_count() == 0
    assert dep.asset.balance_of(acct.owner) == 10_000 * USDC
    assert len(v.events) == 0
    assert v._journal.depth == 0


class _Box:
    def __init__(self):
        self.items = []

    def snapshot(self):
        return list(self.items)

    def restore(self, snap):
        self.items = list(snap)


def test_journal_scopes_nest_like_savepoints():
    box = _Box()
    j = Journal()
    assert j.enroll("box", box)
    assert not j.enroll("box", box)
    assert not j.enroll("plain", object())

    with j.atomic():
        box.items.append("a")
        with pytest.raises(ValueError):
            with j.atomic():
                box.items.append("b")
                assert j.depth == 2
                raise ValueError("inner")
        assert box.items == ["a"]
        with j.atomic():
            box.items.append("c")
    assert box.items == ["a", "c"]
    assert j.depth == 0
    assert j.participants == ["box"]
