"""
Unit tests for the ERC20 value store.
"""

import pytest

from tokenlock.core.contracts import UINT256_MAX, ZERO_ADDRESS, BoundValueStore, ERC20Token
from tokenlock.core.exceptions import ContractExecutionError
from tokenlock_tests.support import BENEFICIARY, DEPOSITOR, OWNER, STRANGER


def test_address_is_deterministic():
    a = ERC20Token(name="Vesting Token", symbol="VEST", owner=OWNER)
    b = ERC20Token(name="Vesting Token", symbol="VEST", owner=OWNER.upper())
    assert a.address == b.address
    assert a.address.startswith("0x") and len(a.address) == 42


def test_transfer_moves_balance(token):
    assert token.transfer(DEPOSITOR, BENEFICIARY, 250) is True
    assert token.balance_of(DEPOSITOR) == 1_000_000 - 250
    assert token.balance_of(BENEFICIARY) == 250
    assert token.events[-1].event_type == "Transfer"


def test_transfer_rejections_leave_balances(token):
    with pytest.raises(ContractExecutionError, match="exceeds balance"):
        token.transfer(STRANGER, BENEFICIARY, 1)
    with pytest.raises(ContractExecutionError, match="zero address"):
        token.transfer(DEPOSITOR, ZERO_ADDRESS, 1)
    with pytest.raises(ContractExecutionError, match="negative"):
        token.transfer(DEPOSITOR, BENEFICIARY, -1)
    with pytest.raises(ContractExecutionError, match="integer"):
        token.transfer(DEPOSITOR, BENEFICIARY, 1.5)
    assert token.balance_of(DEPOSITOR) == 1_000_000
    assert token.balance_of(BENEFICIARY) == 0


def test_zero_transfer_succeeds(token):
    assert token.transfer(STRANGER, BENEFICIARY, 0) is True
    assert token.balance_of(BENEFICIARY) == 0


def test_transfer_from_spends_allowance(token):
    token.approve(DEPOSITOR, STRANGER, 300)
    token.transfer_from(STRANGER, DEPOSITOR, BENEFICIARY, 200)
    assert token.allowance(DEPOSITOR, STRANGER) == 100
    assert token.balance_of(BENEFICIARY) == 200

    with pytest.raises(ContractExecutionError, match="insufficient allowance"):
        token.transfer_from(STRANGER, DEPOSITOR, BENEFICIARY, 101)
    assert token.allowance(DEPOSITOR, STRANGER) == 100


def test_unlimited_allowance_not_decremented(token):
    token.approve(DEPOSITOR, STRANGER, UINT256_MAX)
    token.transfer_from(STRANGER, DEPOSITOR, BENEFICIARY, 10)
    assert token.allowance(DEPOSITOR, STRANGER) == UINT256_MAX


def test_allowance_adjustments(token):
    token.increase_allowance(DEPOSITOR, STRANGER, 50)
    token.increase_allowance(DEPOSITOR, STRANGER, 25)
    assert token.allowance(DEPOSITOR, STRANGER) == 75
    token.decrease_allowance(DEPOSITOR, STRANGER, 70)
    assert token.allowance(DEPOSITOR, STRANGER) == 5
    with pytest.raises(ContractExecutionError):
        token.decrease_allowance(DEPOSITOR, STRANGER, 6)


def test_mint_owner_only_and_capped():
    token = ERC20Token(name="Capped", symbol="CAP", owner=OWNER, max_supply=1_000)
    token.mint(OWNER, DEPOSITOR, 900)
    with pytest.raises(ContractExecutionError, match="not owner"):
        token.mint(STRANGER, DEPOSITOR, 1)
    with pytest.raises(ContractExecutionError, match="max supply"):
        token.mint(OWNER, DEPOSITOR, 101)
    assert token.total_supply == 900


def test_burn_reduces_supply(token):
    token.burn(DEPOSITOR, 400)
    assert token.total_supply == 1_000_000 - 400
    with pytest.raises(ContractExecutionError):
        token.burn(BENEFICIARY, 1)


def test_transfer_ownership(token):
    token.transfer_ownership(OWNER, STRANGER)
    token.mint(STRANGER, BENEFICIARY, 5)
    with pytest.raises(ContractExecutionError):
        token.mint(OWNER, BENEFICIARY, 5)


def test_serialization_preserves_state(token):
    token.approve(DEPOSITOR, STRANGER, 42)
    restored = ERC20Token.from_dict(token.to_dict())
    assert restored.address == token.address
    assert restored.balance_of(DEPOSITOR) == 1_000_000
    assert restored.allowance(DEPOSITOR, STRANGER) == 42


def test_bound_value_store_acts_as_account(token):
    store = BoundValueStore(token, STRANGER)
    token.approve(DEPOSITOR, STRANGER, 100)
    assert store.transfer_from(DEPOSITOR, STRANGER, 100) is True
    assert store.balance_of(STRANGER) == 100
    assert store.transfer(BENEFICIARY, 60) is True
    assert token.balance_of(BENEFICIARY) == 60
