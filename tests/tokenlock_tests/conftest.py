import pytest

from tokenlock.core.contracts import DelegateRegistry, ERC20Token, VestingLedger
from tokenlock_tests.support import BENEFICIARY, DEPOSITOR, OWNER, T0, ManualClock


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def token():
    token = ERC20Token(name="Vesting Token", symbol="VEST", owner=OWNER)
    token.mint(OWNER, DEPOSITOR, 1_000_000)
    return token


@pytest.fixture
def registry():
    return DelegateRegistry()


@pytest.fixture
def ledger(token, registry, clock):
    """Ledger paying BENEFICIARY, funded by DEPOSITOR, with a full allowance."""
    ledger = VestingLedger(
        token,
        registry,
        BENEFICIARY,
        DEPOSITOR,
        time_provider=clock.now,
    )
    token.approve(DEPOSITOR, ledger.address, 1_000_000)
    return ledger
