import sqlite3

import pytest

from inheritance.clock import ManualClock
from inheritance.errors import StoreError
from inheritance.model import State
from inheritance.store import DeploymentStore


@pytest.fixture
def store(tmp_path):
    s = DeploymentStore(str(tmp_path / "vaults.db"))
    yield s
    s.close()


def test_round_trip_preserves_everything(store, dep, acct, days, clock):
    v = dep.vault
    v.deposit(acct.owner, 1_000)
    v.add_beneficiary(acct.owner, acct.alice, 30)
    dep.reserve.accrue(10)
    v.upload_attestation(acct.notary, True, b"\x01\x02")
    days(91)
    v.evaluate()
    store.save("estate", dep)

    again = store.load("estate", clock=ManualClock(clock.now()))
    assert again.dump() == dep.dump()
    w = again.vault
    assert w.get_state() is State.WARNING
    assert w.get_balance() == 1_000
    assert w.get_active_beneficiaries() == [(acct.alice, 30)]
    assert w.oracle.get_proof(acct.owner) == b"\x01\x02"
    assert w.custody_value() == 1_010


def test_loaded_vault_keeps_operating(store, dep, acct, days, clock):
    dep.vault.deposit(acct.owner, 500)
    dep.vault.add_beneficiary(acct.owner, acct.bob, 100)
    store.save("estate", dep)

    days(121)
    d2 = store.load("estate", clock=clock)
    d2.vault.upload_attestation(acct.notary, True, b"ok")
    d2.vault.evaluate()
    store.save("estate", d2)

    d3 = store.load("estate", clock=clock)
    assert d3.vault.payout_completed
    assert d3.asset.balance_of(acct.bob) == 500
    assert d3.vault.last_payout.total == 500


def test_events_are_appended_once(store, dep, acct):
    dep.vault.deposit(acct.owner, 1)
    store.save("estate", dep)
    store.save("estate", dep)
    dep.vault.withdraw(acct.owner, 1)
    store.save("estate", dep)
    rows = store.events("estate")
    assert [r["name"] for r in rows] == ["Deposited", "Withdrawn"]
    assert [r["seq"] for r in rows] == [0, 1]
    assert store.events("estate", event="Withdrawn", since=1)[0]["args"] == [{"k": "amount", "t": "i", "v": 1}]


def test_missing_deployment(store):
    assert not store.exists("ghost")
    with pytest.raises(StoreError):
        store.load("ghost")


def test_names_and_delete(store, dep):
    store.save("b", dep)
    store.save("a", dep)
    assert store.names() == ["a", "b"]
    assert store.delete("a")
    assert not store.delete("a")
    assert store.names() == ["b"]


def test_in_memory_database(dep):
    with DeploymentStore(":memory:") as s:
        s.save("x", dep)
        assert s.exists("x")


def test_reopening_keeps_deployments_and_schema(tmp_path, dep, acct):
    path = str(tmp_path / "reopen.db")
    with DeploymentStore(path) as s:
        dep.vault.deposit(acct.owner, 42)
        s.save("estate", dep)
    with DeploymentStore(path) as s:
        assert s.names() == ["estate"]
        assert s.load("estate").vault.get_balance() == 42
        assert [r["name"] for r in s.events("estate")] == ["Deposited"]


def test_newer_schema_is_refused(tmp_path):
    path = str(tmp_path / "future.db")
    DeploymentStore(path).close()
    raw = sqlite3.connect(path)
    with raw:
        raw.execute("UPDATE meta SET value='99' WHERE key='schema_version'")
    raw.close()
    with pytest.raises(StoreError):
        DeploymentStore(path)
