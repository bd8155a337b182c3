from __future__ import annotations

"""
inheritance.cli.main
--------------------

Operate a persisted vault deployment from the shell. State lives in a SQLite
file (see inheritance.store); every command loads the named deployment, runs
one vault operation and saves it back.

Time is explicit: `--now` pins the clock for a command, which makes it easy to
walk a vault through its lifecycle without waiting 90 days.

Examples
--------
# Create a deployment with an owner and a notary, fund the owner
inheritance --db estate.db --now 0 init --owner 0xA... --notary 0xB...
inheritance --db estate.db mint --to 0xA... --amount 1000000000

# Owner actions
inheritance --db estate.db deposit --caller 0xA... --amount 500000000
inheritance --db estate.db add-beneficiary --caller 0xA... --address 0xC... --percentage 50

# Skip ahead, attest, settle
inheritance --db estate.db --now 10454400 evaluate
inheritance --db estate.db attest --caller 0xB... --proof DEATH_CERTIFICATE_PROOF
inheritance --db estate.db --now 10454401 --json evaluate
"""

import contextlib
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import typer

from ..clock import ManualClock
from ..config import DAY_SECONDS, TimingConfig, load_config
from ..deployment import Deployment
from ..errors import InheritanceError
from ..store import DeploymentStore

app = typer.Typer(
    name="inheritance",
    add_completion=False,
    no_args_is_help=True,
    help="Inheritance custody vault: deposits, check-ins, beneficiaries and distribution.",
)


@dataclass
class _Ctx:
    db: str
    name: str
    now: Optional[int]
    json_out: bool


# -------------------- utils --------------------

def _ctx(ctx: typer.Context) -> _Ctx:
    return ctx.obj


def _clock(c: _Ctx) -> ManualClock:
    return ManualClock(c.now if c.now is not None else int(time.time()))


def _emit(c: _Ctx, payload: Dict[str, Any], human: Optional[str] = None) -> None:
    if c.json_out or human is None:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        typer.echo(human)


def _fail(e: InheritanceError) -> None:
    typer.echo(f"{e.code}: {e.message}", err=True)
    raise typer.Exit(1)


@contextlib.contextmanager
def _deployment(c: _Ctx, *, save: bool = True) -> Iterator[Deployment]:
    """Load, yield and (on success) persist the named deployment."""
    store = DeploymentStore(c.db)
    try:
        dep = store.load(c.name, clock=_clock(c))
        yield dep
        if save:
            store.save(c.name, dep)
    except InheritanceError as e:
        _fail(e)
    finally:
        store.close()


# -------------------- root --------------------

@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(None, "--db", help="SQLite file (default: $INHERITANCE_DB or inheritance.db)."),
    name: str = typer.Option("default", "--name", help="Deployment name inside the database."),
    now: Optional[int] = typer.Option(None, "--now", help="Pin the clock to this unix timestamp (seconds)."),
    json_out: bool = typer.Option(False, "--json", help="Output results as JSON."),
    log_level: str = typer.Option(
        os.getenv("INHERITANCE_LOG_LEVEL", "WARNING"), "--log-level", help="Python logging level."
    ),
) -> None:
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctx.obj = _Ctx(db=db or load_config().db_path, name=name, now=now, json_out=json_out)


# -------------------- setup --------------------

@app.command("init")
def init_cmd(
    ctx: typer.Context,
    owner: str = typer.Option(..., "--owner", help="Owner address."),
    notary: str = typer.Option(..., "--notary", help="Notary address."),
    check_in_period: Optional[int] = typer.Option(None, "--check-in-period", help="Check-in period in time units."),
    grace_period: Optional[int] = typer.Option(None, "--grace-period", help="Grace period in time units."),
    unit_seconds: Optional[int] = typer.Option(None, "--unit-seconds", help=f"Seconds per time unit (default {DAY_SECONDS})."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing deployment of the same name."),
) -> None:
    """Create a new deployment (asset ledger, reserve, oracle, vault)."""
    c = _ctx(ctx)
    cfg = load_config()
    timing = TimingConfig(
        check_in_period_units=check_in_period if check_in_period is not None else cfg.timing.check_in_period_units,
        grace_period_units=grace_period if grace_period is not None else cfg.timing.grace_period_units,
        time_unit_seconds=unit_seconds if unit_seconds is not None else cfg.timing.time_unit_seconds,
    )
    try:
        timing.validate()
    except ValueError as e:
        typer.echo(f"invalid timing: {e}", err=True)
        raise typer.Exit(2)

    store = DeploymentStore(c.db)
    try:
        if store.exists(c.name) and not force:
            typer.echo(f"deployment {c.name!r} already exists (use --force)", err=True)
            raise typer.Exit(2)
        if force:
            store.delete(c.name)
        dep = Deployment.create(owner, notary, clock=_clock(c), timing=timing, config=cfg)
        store.save(c.name, dep)
    except InheritanceError as e:
        _fail(e)
    finally:
        store.close()
    _emit(c, dep.vault.status(), f"created {c.name!r}: owner={dep.vault.owner} notary={dep.vault.notary}")


@app.command("mint")
def mint_cmd(
    ctx: typer.Context,
    to: str = typer.Option(..., "--to", help="Recipient address."),
    amount: int = typer.Option(..., "--amount", help="Amount in base units."),
) -> None:
    """Faucet: credit simulated asset to an account."""
    c = _ctx(ctx)
    with _deployment(c) as dep:
        dep.asset.mint(to, amount)
        bal = dep.asset.balance_of(to)
    _emit(c, {"address": to.lower(), "balance": bal}, f"{to.lower()} balance={bal}")


@app.command("accrue")
def accrue_cmd(
    ctx: typer.Context,
    amount: Optional[int] = typer.Option(None, "--amount", help="Absolute yield to accrue."),
    bps: Optional[int] = typer.Option(None, "--bps", help="Yield as basis points of the position."),
) -> None:
    """Simulate reserve yield."""
    c = _ctx(ctx)
    if (amount is None) == (bps is None):
        typer.echo("pass exactly one of --amount or --bps", err=True)
        raise typer.Exit(2)
    with _deployment(c) as dep:
        if amount is not None:
            dep.reserve.accrue(amount)
            accrued = amount
        else:
            accrued = dep.reserve.accrue_bps(bps)
        value = dep.reserve.position_value()
    _emit(c, {"accrued": accrued, "position_value": value}, f"accrued {accrued} (position={value})")


# -------------------- owner --------------------

@app.command("deposit")
def deposit_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    amount: int = typer.Option(..., "--amount"),
) -> None:
    c = _ctx(ctx)
    with _deployment(c) as dep:
        dep.vault.deposit(caller, amount)
        bal = dep.vault.get_balance()
    _emit(c, {"balance": bal}, f"deposited {amount}; balance={bal}")


@app.command("withdraw")
def withdraw_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    amount: int = typer.Option(..., "--amount"),
) -> None:
    c = _ctx(ctx)
    with _deployment(c) as dep:
        dep.vault.withdraw(caller, amount)
        bal = dep.vault.get_balance()
    _emit(c, {"balance": bal}, f"withdrew {amount}; balance={bal}")


@app.command("check-in")
def check_in_cmd(ctx: typer.Context, caller: str = typer.Option(..., "--caller")) -> None:
    c = _ctx(ctx)
    with _deployment(c) as dep:
        dep.vault.check_in(caller)
        ts = dep.vault.get_last_check_in()
    _emit(c, {"last_check_in": ts, "state": dep.vault.state.name}, f"checked in at {ts}")


@app.command("add-beneficiary")
def add_beneficiary_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    address: str = typer.Option(..., "--address"),
    percentage: int = typer.Option(..., "--percentage"),
) -> None:
    c = _ctx(ctx)
    with _deployment(c) as dep:
        outcome = dep.vault.add_beneficiary(caller, address, percentage)
    _emit(c, outcome.to_dict(), f"{outcome.status.value}" + (f" ({outcome.reason.value})" if outcome.reason else f" slot={outcome.slot}"))
    if not outcome.applied:
        raise typer.Exit(3)


@app.command("remove-beneficiary")
def remove_beneficiary_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    address: str = typer.Option(..., "--address"),
) -> None:
    c = _ctx(ctx)
    with _deployment(c) as dep:
        outcome = dep.vault.remove_beneficiary(caller, address)
    _emit(c, outcome.to_dict(), f"{outcome.status.value}" + (f" ({outcome.reason.value})" if outcome.reason else f" slot={outcome.slot}"))
    if not outcome.applied:
        raise typer.Exit(3)


# -------------------- notary / anyone --------------------

@app.command("attest")
def attest_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    deceased: bool = typer.Option(True, "--deceased/--alive"),
    proof: str = typer.Option("", "--proof", help="Opaque proof; 0x-hex is decoded, anything else is taken as UTF-8."),
) -> None:
    """Upload a death attestation (notary only)."""
    c = _ctx(ctx)
    raw = bytes.fromhex(proof[2:]) if proof.startswith("0x") else proof.encode("utf-8")
    with _deployment(c) as dep:
        dep.vault.upload_attestation(caller, deceased, raw)
        recorded = dep.vault.check_if_owner_deceased()
    _emit(c, {"owner_deceased": recorded}, f"owner_deceased={recorded}")


@app.command("evaluate")
def evaluate_cmd(ctx: typer.Context, caller: Optional[str] = typer.Option(None, "--caller")) -> None:
    """Advance the lifecycle; runs the payout on entry to DISTRIBUTION."""
    c = _ctx(ctx)
    with _deployment(c) as dep:
        steps = dep.vault.evaluate(caller)
        plan = dep.vault.last_payout
    payload: Dict[str, Any] = {
        "transitions": [[a.name, b.name] for a, b in steps],
        "state": dep.vault.state.name,
        "payout": plan.to_dict() if plan else None,
    }
    human = ", ".join(f"{a.name} -> {b.name}" for a, b in steps) or f"no change ({dep.vault.state.name})"
    _emit(c, payload, human)


# -------------------- queries --------------------

@app.command("status")
def status_cmd(ctx: typer.Context) -> None:
    c = _ctx(ctx)
    with _deployment(c, save=False) as dep:
        st = dep.vault.status()
        st["preview_state"] = dep.vault.preview_state().name
    _emit(c, st, "\n".join(f"- {k}: {v}" for k, v in sorted(st.items())))


@app.command("beneficiaries")
def beneficiaries_cmd(ctx: typer.Context, all_slots: bool = typer.Option(False, "--all", help="Include empty slots.")) -> None:
    c = _ctx(ctx)
    with _deployment(c, save=False) as dep:
        rows = dep.vault.get_beneficiaries() if all_slots else dep.vault.get_active_beneficiaries()
        determined = dep.vault.get_determined_payout_percentage()
    payload = {"beneficiaries": [{"address": a, "percentage": p} for a, p in rows], "determined": determined}
    human = "\n".join(f"{a} {p}%" for a, p in rows) + f"\ndetermined={determined}%"
    _emit(c, payload, human.lstrip("\n"))


@app.command("preview")
def preview_cmd(ctx: typer.Context) -> None:
    """Show the payout plan distribution would execute now."""
    c = _ctx(ctx)
    with _deployment(c, save=False) as dep:
        plan = dep.vault.payout_preview()
    _emit(c, plan.to_dict())


@app.command("events")
def events_cmd(
    ctx: typer.Context,
    event: Optional[str] = typer.Option(None, "--event", help="Filter by event name, e.g. PayoutMade."),
    since: int = typer.Option(0, "--since", help="First sequence number to include."),
) -> None:
    c = _ctx(ctx)
    store = DeploymentStore(c.db)
    try:
        if not store.exists(c.name):
            typer.echo(f"deployment {c.name!r} not found", err=True)
            raise typer.Exit(1)
        rows = store.events(c.name, event=event, since=since)
    finally:
        store.close()
    if c.json_out:
        _emit(c, {"events": rows})
        return
    for r in rows:
        args = " ".join(f"{a['k']}={a['v']}" for a in r["args"])
        typer.echo(f"#{r['seq']} {r['ts']} {r['name']} {args}".rstrip())


def run() -> None:
    app()


if __name__ == "__main__":
    run()
