import pytest

import inheritance
from inheritance.access import AccessControl
from inheritance.errors import (
    AdministrativeChangeBlocked,
    InheritanceError,
    InsufficientBalance,
    InvalidAddress,
    PostDistributionLock,
    StateLocked,
    Unauthorized,
)
from inheritance.model import ZERO_ADDRESS, State, normalize_address
from inheritance.tests.conftest import mkaddr


def test_error_codes_and_payloads():
    e = InsufficientBalance(requested=5, available=3)
    assert e.to_dict() == {
        "code": "INSUFFICIENT_BALANCE",
        "message": "insufficient balance",
        "details": {"requested": 5, "available": 3},
    }
    assert str(e).startswith("INSUFFICIENT_BALANCE: insufficient balance [")


def test_state_lock_hierarchy():
    e = PostDistributionLock(state=State.DISTRIBUTION, operation="withdraw")
    assert isinstance(e, StateLocked) and isinstance(e, InheritanceError)
    assert e.details == {"state": "DISTRIBUTION", "operation": "withdraw"}
    assert issubclass(AdministrativeChangeBlocked, StateLocked)
    assert AdministrativeChangeBlocked.code != StateLocked.code


def test_access_control_normalises_roles():
    owner = mkaddr("o")
    ac = AccessControl(owner=owner.upper().replace("0X", "0x"), notary=mkaddr("n"))
    assert ac.owner == owner
    assert ac.is_owner(owner)
    ac.require_owner(owner.upper().replace("0X", "0x"))
    with pytest.raises(Unauthorized) as ei:
        ac.require_notary(owner)
    assert ei.value.details["role"] == "notary"


@pytest.mark.parametrize("bad", [ZERO_ADDRESS, "0xabc", ""])
def test_access_control_rejects_bad_roles(bad):
    with pytest.raises(InvalidAddress):
        AccessControl(owner=bad, notary=mkaddr("n"))


def test_normalize_address():
    assert normalize_address("0x" + "AB" * 20) == "0x" + "ab" * 20
    with pytest.raises(InvalidAddress):
        normalize_address("ab" * 20)


def test_package_exposes_version_and_lazy_modules():
    assert inheritance.get_version() == inheritance.__version__
    assert inheritance.registry.MAX_BENEFICIARIES == 10
    with pytest.raises(AttributeError):
        inheritance.nope
