"""Tests for fee deposits and treasury withdrawals."""

import pytest

from crr_amm.accounting import FeeTotals
from crr_amm.assets import InsufficientAllowance
from crr_amm.errors import AuthorizationError, BoundsError, ValidationError
from crr_amm.lifecycle import CallContext, Role
from crr_amm.models.records import FeesDeposited, TreasuryWithdrawn
from tests.helpers import ALICE, BOB, DEPOSITOR, INITIAL_RESERVE, INITIAL_SUPPLY, ONE, TREASURY


class TestDepositFees:
    def test_raises_reserve_without_minting(self, pool, governor):
        pool.fund(pool.governor.caller, 500 * ONE)
        price_before = pool.engine.spot_price()

        event = pool.engine.deposit_fees(governor, 500 * ONE)

        assert isinstance(event, FeesDeposited)
        assert event.reserve_after == INITIAL_RESERVE + 500 * ONE
        assert pool.engine.reserve_balance == INITIAL_RESERVE + 500 * ONE
        assert pool.engine.token_supply == INITIAL_SUPPLY
        assert pool.engine.spot_price() > price_before
        assert pool.engine.treasury_surplus() == 0

    def test_fee_depositor(self, pool, governor):
        pool.engine.grant_role(governor, Role.FEE_DEPOSITOR, DEPOSITOR)
        pool.fund(DEPOSITOR, 10 * ONE)
        pool.engine.deposit_fees(CallContext(DEPOSITOR), 10 * ONE)
        assert pool.engine.reserve_balance == INITIAL_RESERVE + 10 * ONE

    def test_unauthorized(self, pool):
        with pytest.raises(AuthorizationError):
            pool.engine.deposit_fees(CallContext(ALICE), ONE)
        assert pool.engine.reserve_balance == INITIAL_RESERVE
        assert pool.ledger.balance_of(ALICE) == 1_000_000 * ONE

    def test_zero_amount(self, pool, governor):
        with pytest.raises(ValidationError):
            pool.engine.deposit_fees(governor, 0)

    def test_unfunded_depositor_rolls_back(self, pool, governor):
        with pytest.raises(InsufficientAllowance):
            pool.engine.deposit_fees(governor, ONE)
        assert pool.engine.reserve_balance == INITIAL_RESERVE
        assert pool.engine.fee_totals().deposits == INITIAL_RESERVE

    def test_allowed_while_paused(self, pool, governor):
        pool.engine.pause(governor)
        pool.fund(pool.governor.caller, ONE)
        pool.engine.deposit_fees(governor, ONE)
        assert pool.engine.reserve_balance == INITIAL_RESERVE + ONE


class TestWithdrawTreasury:
    def test_withdraw_protocol_fees(self, pool, governor):
        trade = pool.buy(ALICE, 1_000 * ONE)
        assert pool.engine.treasury_surplus() == trade.protocol_fee

        event = pool.engine.withdraw_treasury(governor, trade.protocol_fee)

        assert isinstance(event, TreasuryWithdrawn)
        assert event.treasury == TREASURY
        assert event.surplus_after == 0
        assert pool.ledger.balance_of(TREASURY) == trade.protocol_fee
        assert pool.engine.treasury_surplus() == 0
        assert pool.engine.reserve_balance == trade.reserve_after

    def test_above_surplus(self, pool, governor):
        trade = pool.buy(ALICE, 1_000 * ONE)
        with pytest.raises(BoundsError) as exc_info:
            pool.engine.withdraw_treasury(governor, trade.protocol_fee + 1)
        assert exc_info.value.details["excess"] == 1
        assert pool.ledger.balance_of(TREASURY) == 0

    def test_pays_current_treasury(self, pool, governor):
        trade = pool.buy(ALICE, 1_000 * ONE)
        pool.engine.set_treasury(governor, BOB)
        pool.engine.withdraw_treasury(governor, trade.protocol_fee)
        assert pool.ledger.balance_of(BOB) == 1_000_000 * ONE + trade.protocol_fee

    def test_governor_only(self, pool, governor):
        pool.buy(ALICE, 1_000 * ONE)
        pool.engine.grant_role(governor, Role.FEE_DEPOSITOR, DEPOSITOR)
        with pytest.raises(AuthorizationError):
            pool.engine.withdraw_treasury(CallContext(DEPOSITOR), 1)

    def test_allowed_while_paused(self, pool, governor):
        trade = pool.buy(ALICE, 1_000 * ONE)
        pool.engine.pause(governor)
        pool.engine.withdraw_treasury(governor, trade.protocol_fee)

    def test_fee_totals(self, pool, governor):
        trade = pool.buy(ALICE, 1_000 * ONE)
        pool.engine.withdraw_treasury(governor, trade.protocol_fee)
        assert pool.engine.fee_totals() == FeeTotals(
            treasury_fees=trade.protocol_fee,
            reserve_fees=trade.fee - trade.protocol_fee,
            deposits=INITIAL_RESERVE,
            withdrawals=trade.protocol_fee,
        )
