import json

import pytest
from typer.testing import CliRunner

from inheritance.cli.main import app
from inheritance.config import DAY_SECONDS

T = 1_000


@pytest.fixture
def cli(tmp_path):
    runner = CliRunner()
    db = str(tmp_path / "estate.db")

    def invoke(*args, now=T, json_out=False):
        base = ["--db", db, "--now", str(now)]
        if json_out:
            base.append("--json")
        return runner.invoke(app, [*base, *args])

    return invoke


@pytest.fixture
def ready(cli, acct):
    assert cli("init", "--owner", acct.owner, "--notary", acct.notary).exit_code == 0
    assert cli("mint", "--to", acct.owner, "--amount", "5000").exit_code == 0
    return cli


def test_full_flow(ready, acct):
    cli = ready
    r = cli("deposit", "--caller", acct.owner, "--amount", "1000")
    assert r.exit_code == 0, r.output
    assert "balance=1000" in r.output

    r = cli("add-beneficiary", "--caller", acct.owner, "--address", acct.alice, "--percentage", "60", json_out=True)
    assert r.exit_code == 0, r.output
    assert json.loads(r.output) == {"status": "applied", "reason": None, "slot": 0}

    r = cli("evaluate", now=T + 121 * DAY_SECONDS)
    assert r.exit_code == 0, r.output
    assert "WARNING -> VERIFICATION" in r.output

    r = cli("attest", "--caller", acct.notary, "--proof", "DEATH_CERTIFICATE_PROOF", now=T + 122 * DAY_SECONDS)
    assert r.exit_code == 0, r.output
    assert "owner_deceased=True" in r.output

    r = cli("evaluate", now=T + 122 * DAY_SECONDS, json_out=True)
    assert r.exit_code == 0, r.output
    out = json.loads(r.output)
    assert out["state"] == "DISTRIBUTION"
    assert [(l["address"], l["amount"]) for l in out["payout"]["lines"]] == [(acct.alice, 600), (acct.notary, 400)]

    r = cli("evaluate", now=T + 123 * DAY_SECONDS)
    assert r.exit_code == 1
    assert "PAYOUT_ALREADY_COMPLETED" in r.output

    r = cli("events", "--event", "PayoutMade", json_out=True)
    assert r.exit_code == 0, r.output
    assert len(json.loads(r.output)["events"]) == 2


def test_status_reports_preview(ready, acct):
    r = ready("status", now=T + 91 * DAY_SECONDS, json_out=True)
    assert r.exit_code == 0, r.output
    st = json.loads(r.output)
    assert st["state"] == "ACTIVE"
    assert st["preview_state"] == "WARNING"
    assert st["owner"] == acct.owner


def test_unauthorized_caller_fails(ready, acct):
    r = ready("deposit", "--caller", acct.stranger, "--amount", "10")
    assert r.exit_code == 1
    assert "UNAUTHORIZED" in r.output
    r = ready("status", json_out=True)
    assert json.loads(r.output)["balance"] == 0


def test_rejected_registry_change_exits_3(ready, acct):
    ready("add-beneficiary", "--caller", acct.owner, "--address", acct.alice, "--percentage", "90")
    r = ready("add-beneficiary", "--caller", acct.owner, "--address", acct.bob, "--percentage", "20")
    assert r.exit_code == 3
    assert "over_allocated" in r.output


def test_init_refuses_to_overwrite(ready, acct):
    r = ready("init", "--owner", acct.owner, "--notary", acct.notary)
    assert r.exit_code == 2
    assert ready("init", "--owner", acct.owner, "--notary", acct.notary, "--force").exit_code == 0


def test_custom_timing_and_accrue(cli, acct):
    assert cli("init", "--owner", acct.owner, "--notary", acct.notary, "--unit-seconds", "60").exit_code == 0
    cli("mint", "--to", acct.owner, "--amount", "100")
    cli("deposit", "--caller", acct.owner, "--amount", "100")
    r = cli("accrue", "--bps", "500", json_out=True)
    assert json.loads(r.output) == {"accrued": 5, "position_value": 105}
    r = cli("evaluate", now=T + 91 * 60)
    assert "ACTIVE -> WARNING" in r.output


def test_missing_deployment(cli):
    r = cli("status")
    assert r.exit_code == 1
    assert "STORE_ERROR" in r.output


def test_history_survives_across_invocations(ready, acct):
    cli = ready
    assert cli("deposit", "--caller", acct.owner, "--amount", "300").exit_code == 0
    assert cli("withdraw", "--caller", acct.owner, "--amount", "100").exit_code == 0
    r = cli("check-in", "--caller", acct.owner, now=T + 5, json_out=True)
    assert r.exit_code == 0, r.output
    assert json.loads(r.output) == {"last_check_in": T + 5, "state": "ACTIVE"}

    r = cli("events")
    assert r.exit_code == 0, r.output
    assert r.output.splitlines() == [
        f"#0 {T} Deposited amount=300",
        f"#1 {T} Withdrawn amount=100",
        f"#2 {T + 5} CheckedIn",
    ]
    r = cli("status", json_out=True)
    assert json.loads(r.output)["balance"] == 200
