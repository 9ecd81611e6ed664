"""
Vesting invariants checked with property-based testing.

Each example builds its own token, registry and ledger so that hypothesis
never shares state between generated cases.
"""

import pytest
from hypothesis import given, settings, strategies as st

from tokenlock.core.contracts import DelegateRegistry, ERC20Token, VestingLedger
from tokenlock.core.exceptions import VestingPeriodDecrease
from tokenlock_tests.support import BENEFICIARY, DEPOSITOR, OWNER, T0, ManualClock

amounts = st.integers(min_value=0, max_value=10**24)
durations = st.integers(min_value=1, max_value=10 * 365 * 86_400)


def _funded_ledger(amount, duration):
    clock = ManualClock(T0)
    token = ERC20Token(name="Vesting Token", symbol="VEST", owner=OWNER)
    token.mint(OWNER, DEPOSITOR, amount)
    ledger = VestingLedger(token, DelegateRegistry(), BENEFICIARY, DEPOSITOR, time_provider=clock.now)
    token.approve(DEPOSITOR, ledger.address, amount)
    ledger.deposit(DEPOSITOR, amount, T0 + duration, BENEFICIARY)
    return clock, token, ledger


class TestClaimableInvariants:
    """Invariants of the read-only claimable view."""

    @given(amounts, durations, st.integers(min_value=-10**6, max_value=20 * 365 * 86_400))
    @settings(max_examples=200, deadline=None)
    def test_claimable_matches_linear_formula(self, amount, duration, offset):
        clock, _, ledger = _funded_ledger(amount, duration)
        clock.set(T0 + offset)

        claimable = ledger.currently_claimable()

        assert 0 <= claimable <= amount
        if offset <= 0:
            assert claimable == 0
        elif offset >= duration:
            assert claimable == amount
        else:
            assert claimable == amount * offset // duration

    @given(amounts, durations, st.lists(st.integers(min_value=0, max_value=20 * 365 * 86_400), min_size=2))
    @settings(max_examples=100, deadline=None)
    def test_claimable_never_decreases_over_time(self, amount, duration, offsets):
        clock, _, ledger = _funded_ledger(amount, duration)

        observed = []
        for offset in sorted(offsets):
            clock.set(T0 + offset)
            observed.append(ledger.currently_claimable())

        assert observed == sorted(observed)


class TestClaimInvariants:
    """Invariants of restart-on-claim accounting."""

    @given(amounts, durations, st.lists(st.integers(min_value=0, max_value=86_400 * 30), max_size=12))
    @settings(max_examples=150, deadline=None)
    def test_claims_conserve_deposit(self, amount, duration, gaps):
        clock, token, ledger = _funded_ledger(amount, duration)

        claimed = 0
        for gap in gaps:
            clock.advance(gap)
            before = ledger.held_balance
            paid = ledger.claim()
            assert 0 <= paid <= before
            assert ledger.currently_claimable() == (ledger.held_balance if clock.now() >= T0 + duration else 0)
            claimed += paid
            assert claimed + ledger.held_balance == amount

        clock.set(T0 + duration)
        claimed += ledger.claim()

        assert claimed == amount
        assert ledger.held_balance == 0
        assert token.balance_of(BENEFICIARY) == amount

    @given(amounts, durations, st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100, deadline=None)
    def test_vesting_end_never_moves_earlier(self, amount, duration, shortfall):
        clock, _, ledger = _funded_ledger(amount, duration)

        with pytest.raises(VestingPeriodDecrease):
            ledger.deposit(DEPOSITOR, 0, T0 + duration - shortfall, BENEFICIARY)

        assert ledger.vesting_end == T0 + duration
        assert ledger.vesting_start == T0
        assert ledger.held_balance == amount
