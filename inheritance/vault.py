from __future__ import annotations

"""
InheritanceVault - the public operation surface of one owner's estate.

A vault owns its role guards, check-in timer, beneficiary registry, funds
ledger and lifecycle state, and talks to three collaborators: the asset
ledger, the yield reserve and the death oracle. There are no module-level
singletons; build as many vaults as you like.

Lifecycle
---------
    ACTIVE ──(no check-in for > check_in_period)──▶ WARNING
    WARNING ──(owner check-in)──▶ ACTIVE
    WARNING ──(no check-in for > check_in_period + grace_period)──▶ VERIFICATION
    VERIFICATION ──(oracle reports owner deceased)──▶ DISTRIBUTION  (payout runs once)

Time-driven transitions happen only inside `evaluate()`, which anyone may
call. Every mutating call reads the clock once, runs under the vault lock and
is all-or-nothing across the vault, the asset ledger, the reserve, the oracle
and the event log.

Operation guards
----------------
| operation            | role   | allowed states             |
|----------------------|--------|----------------------------|
| check_in             | owner  | ACTIVE, WARNING            |
| deposit              | owner  | ACTIVE                     |
| withdraw             | owner  | all but DISTRIBUTION       |
| add/remove_beneficiary | owner | ACTIVE, WARNING           |
| upload_attestation   | notary | any                        |
| evaluate             | anyone | all but DISTRIBUTION       |
"""

import contextlib
import logging
import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from . import events as ev
from .access import AccessControl
from .adapters.attestation import DeathAttestationAdapter
from .adapters.reserve import ReserveAdapter
from .asset import TokenLedger
from .clock import Clock, SystemClock
from .config import TimingConfig
from .distribution import DistributionEngine, PayoutLine, PayoutPlan, plan_distribution
from .errors import (
    AdministrativeChangeBlocked,
    InvalidAddress,
    InvalidProof,
    PayoutAlreadyCompleted,
    PostDistributionLock,
    StateLocked,
)
from .events import EventLog
from .journal import Journal
from .ledger import FundsLedger
from .machine import Facts, Transition, cascade
from .model import State, is_zero_address, normalize_address
from .registry import BeneficiaryRegistry, RegistryOutcome
from .timer import CheckInTimer

log = logging.getLogger(__name__)

_EDITABLE = (State.ACTIVE, State.WARNING)


class InheritanceVault:
    def __init__(
        self,
        owner: str,
        notary: str,
        *,
        custody: str,
        asset: TokenLedger,
        reserve: ReserveAdapter,
        oracle: DeathAttestationAdapter,
        clock: Optional[Clock] = None,
        timing: Optional[TimingConfig] = None,
        events: Optional[EventLog] = None,
        created_at: Optional[int] = None,
    ) -> None:
        self.access = AccessControl(owner=owner, notary=notary)
        self.custody = normalize_address(custody)
        if is_zero_address(self.custody):
            raise InvalidAddress(self.custody, "custody must not be the zero address")
        self.asset = asset
        self.reserve = reserve
        self.oracle = oracle
        self.clock: Clock = clock or SystemClock()
        self.events = events if events is not None else EventLog()

        timing = timing or TimingConfig()
        timing.validate()
        start = self.clock.now() if created_at is None else int(created_at)
        self.timer = CheckInTimer(timing=timing, last_check_in=start)
        self.registry = BeneficiaryRegistry()
        self.funds = FundsLedger(asset, reserve, self.custody, self.access.owner)
        self.engine = DistributionEngine(asset, self.funds)

        self.state = State.ACTIVE
        self.payout_completed = False
        self.last_payout: Optional[PayoutPlan] = None

        self._lock = threading.RLock()
        self._journal = Journal()
        self._journal.enroll("vault", self)
        self._journal.enroll("asset", asset)
        self._journal.enroll("reserve", reserve)
        self._journal.enroll("oracle", oracle)
        self._journal.enroll("events", self.events)

    # ------------------------------------------------------------------ helpers

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def notary(self) -> str:
        return self.access.notary

    @property
    def timing(self) -> TimingConfig:
        return self.timer.timing

    @contextlib.contextmanager
    def _call(self) -> Iterator[int]:
        with self._lock, self._journal.atomic():
            yield self.clock.now()

    @contextlib.contextmanager
    def transaction(self) -> Iterator["InheritanceVault"]:
        """
        Group several operations into one all-or-nothing unit.

        Each operation inside still commits or rolls back on its own, so a
        caller may catch a failed call and carry on with the rest.
        """
        with self._lock, self._journal.atomic():
            yield self

    def _emit(self, name: str, now: int, **args: Any) -> None:
        self.events.emit(name, now, args)

    def _set_state(self, new: State, now: int) -> None:
        old = self.state
        self.state = new
        self._emit(ev.STATE_CHANGED, now, old_state=int(old), new_state=int(new))
        log.info("state %s -> %s", old.name, new.name)

    # ----------------------------------------------------------------- check-in

    def check_in(self, caller: str) -> None:
        """Record owner proof-of-life; WARNING returns to ACTIVE."""
        with self._call() as now:
            self.access.require_owner(caller)
            if self.state not in _EDITABLE:
                raise StateLocked(state=self.state, operation="check_in")
            self.timer.record(now)
            if self.state == State.WARNING:
                self._set_state(State.ACTIVE, now)
            self._emit(ev.CHECKED_IN, now)
            log.info("owner checked in at %d", now)

    # -------------------------------------------------------------------- funds

    def deposit(self, caller: str, amount: int) -> None:
        with self._call() as now:
            self.access.require_owner(caller)
            if self.state == State.DISTRIBUTION:
                raise PostDistributionLock(state=self.state, operation="deposit")
            if self.state != State.ACTIVE:
                raise StateLocked(state=self.state, operation="deposit")
            self.funds.deposit(amount)
            self._emit(ev.DEPOSITED, now, amount=amount)

    def withdraw(self, caller: str, amount: int) -> None:
        with self._call() as now:
            self.access.require_owner(caller)
            if self.state == State.DISTRIBUTION:
                raise PostDistributionLock(state=self.state, operation="withdraw")
            self.funds.withdraw(amount)
            self._emit(ev.WITHDRAWN, now, amount=amount)

    # ------------------------------------------------------------ beneficiaries

    def add_beneficiary(self, caller: str, address: str, percentage: int) -> RegistryOutcome:
        with self._call() as now:
            self.access.require_owner(caller)
            if self.state not in _EDITABLE:
                raise AdministrativeChangeBlocked(state=self.state, operation="add_beneficiary")
            outcome = self.registry.add(address, percentage)
            if outcome.applied:
                self._emit(ev.BENEFICIARY_ADDED, now, beneficiary=normalize_address(address), percentage=percentage)
            return outcome

    def remove_beneficiary(self, caller: str, address: str) -> RegistryOutcome:
        with self._call() as now:
            self.access.require_owner(caller)
            if self.state not in _EDITABLE:
                raise AdministrativeChangeBlocked(state=self.state, operation="remove_beneficiary")
            outcome = self.registry.remove(address)
            if outcome.applied:
                self._emit(ev.BENEFICIARY_REMOVED, now, beneficiary=normalize_address(address))
            return outcome

    # -------------------------------------------------------------- attestation

    def upload_attestation(self, caller: str, deceased: bool, proof: Union[bytes, bytearray, str] = b"") -> None:
        """Forward the notary's death attestation to the oracle. Proof contents are not inspected."""
        with self._call():
            self.access.require_notary(caller)
            if isinstance(proof, str):
                raw = proof.encode("utf-8")
            elif isinstance(proof, (bytes, bytearray)):
                raw = bytes(proof)
            else:
                raise InvalidProof(proof)
            self.oracle.record(self.owner, bool(deceased), raw)

    def check_if_owner_deceased(self) -> bool:
        return bool(self.oracle.is_deceased(self.owner))

    # ---------------------------------------------------------------- lifecycle

    def _facts(self, now: int) -> Facts:
        return Facts(
            now=now,
            last_check_in=self.timer.last_check_in,
            owner_deceased=self.check_if_owner_deceased(),
        )

    def evaluate(self, caller: Optional[str] = None) -> List[Transition]:
        """
        Advance the lifecycle as far as the current facts allow.

        Returns the transitions applied, in order (empty when nothing changed).
        Entering DISTRIBUTION liquidates the reserve and pays everyone out
        within the same call. Raises PayoutAlreadyCompleted once distributed.
        """
        with self._call() as now:
            if self.state == State.DISTRIBUTION or self.payout_completed:
                raise PayoutAlreadyCompleted(details={"state": self.state.name})
            steps = cascade(self.state, self._facts(now), self.timing)
            for _, new in steps:
                self._set_state(new, now)
                if new == State.DISTRIBUTION:
                    self._distribute(now)
            if not steps:
                log.debug("evaluate by %s: no transition (state=%s)", caller or "anyone", self.state.name)
            return steps

    def _distribute(self, now: int) -> None:
        def on_payout(line: PayoutLine) -> None:
            self._emit(ev.PAYOUT_MADE, now, amount=line.amount, beneficiary=line.address)

        self.last_payout = self.engine.run(self.registry.active_snapshot(), self.notary, on_payout)
        self.payout_completed = True

    # ------------------------------------------------------------------ queries

    def get_state(self) -> State:
        return self.state

    def get_balance(self) -> int:
        return self.funds.balance()

    def get_last_check_in(self) -> int:
        return self.timer.last_check_in

    def get_beneficiaries(self) -> List[Tuple[str, int]]:
        return self.registry.snapshot()

    def get_active_beneficiaries(self) -> List[Tuple[str, int]]:
        return self.registry.active_snapshot()

    def get_active_count(self) -> int:
        return self.registry.active_count()

    def get_determined_payout_percentage(self) -> int:
        return self.registry.determined_percentage()

    def is_payout_fully_determined(self) -> bool:
        return self.registry.is_fully_determined()

    # ------------------------------------------------------------------ previews

    def time_remaining(self) -> int:
        """Seconds until the next inactivity threshold (0 when past or not applicable)."""
        return self.timer.time_remaining(self.state, self.clock.now())

    def preview_state(self) -> State:
        """The state `evaluate()` would reach right now, without changing anything."""
        if self.state == State.DISTRIBUTION:
            return self.state
        steps = cascade(self.state, self._facts(self.clock.now()), self.timing)
        return steps[-1][1] if steps else self.state

    def custody_value(self) -> int:
        """Reserve position plus idle custody balance."""
        return self.funds.custody_value()

    def payout_preview(self) -> PayoutPlan:
        """The plan distribution would execute if it ran now."""
        if self.last_payout is not None:
            return self.last_payout
        return plan_distribution(self.custody_value(), self.registry.active_snapshot(), self.notary)

    def status(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "notary": self.notary,
            "custody": self.custody,
            "state": self.state.name,
            "payout_completed": self.payout_completed,
            "balance": self.get_balance(),
            "custody_value": self.custody_value(),
            "last_check_in": self.get_last_check_in(),
            "time_remaining": self.time_remaining(),
            "owner_deceased": self.check_if_owner_deceased(),
            "determined_percentage": self.get_determined_payout_percentage(),
            "active_beneficiaries": self.get_active_count(),
        }

    # ---------------------------------------------------- journal participant

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "payout_completed": self.payout_completed,
            "last_payout": self.last_payout,
            "last_check_in": self.timer.last_check_in,
            "principal": self.funds.principal,
            "slots": self.registry.copy_slots(),
        }

    def restore(self, snap: Mapping[str, Any]) -> None:
        self.state = snap["state"]
        self.payout_completed = snap["payout_completed"]
        self.last_payout = snap["last_payout"]
        self.timer.last_check_in = snap["last_check_in"]
        self.funds.principal = snap["principal"]
        self.registry.restore_slots(snap["slots"])

    # ---------------------------------------------------------------- persistence

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "access": self.access.to_dict(),
                "custody": self.custody,
                "timer": self.timer.to_dict(),
                "state": int(self.state),
                "payout_completed": self.payout_completed,
                "principal": self.funds.principal,
                "beneficiaries": self.registry.dump(),
                "last_payout": self.last_payout.to_dict() if self.last_payout else None,
                "events": self.events.dump(),
            }

    @classmethod
    def load(
        cls,
        d: Mapping[str, Any],
        *,
        asset: TokenLedger,
        reserve: ReserveAdapter,
        oracle: DeathAttestationAdapter,
        clock: Optional[Clock] = None,
    ) -> "InheritanceVault":
        timer = CheckInTimer.from_dict(d["timer"])
        v = cls(
            d["access"]["owner"],
            d["access"]["notary"],
            custody=d["custody"],
            asset=asset,
            reserve=reserve,
            oracle=oracle,
            clock=clock,
            timing=timer.timing,
            events=EventLog.load(d.get("events") or ()),
            created_at=timer.last_check_in,
        )
        v.state = State(int(d["state"]))
        v.payout_completed = bool(d["payout_completed"])
        v.funds.principal = int(d["principal"])
        v.registry = BeneficiaryRegistry.load(d["beneficiaries"])
        lp = d.get("last_payout")
        if lp:
            v.last_payout = PayoutPlan(
                total=int(lp["total"]),
                lines=tuple(PayoutLine(l["address"], int(l["amount"]), l["role"]) for l in lp["lines"]),
            )
        return v


__all__ = ["InheritanceVault"]
