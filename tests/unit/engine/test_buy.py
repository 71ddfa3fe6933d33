"""Tests for BondingCurveEngine.buy."""

import pytest

from crr_amm.assets import InsufficientAllowance
from crr_amm.constants import UINT256_MAX
from crr_amm.errors import BoundsError, ExpiredError, SlippageError, StateError, ValidationError
from crr_amm.fees import calculate_trade_fee
from crr_amm.lifecycle import CallContext
from crr_amm.math.curve import calc_purchase_return
from crr_amm.models.records import Direction, TradeExecuted
from tests.helpers import (
    ALICE,
    BOB,
    CRR_PPM,
    INITIAL_RESERVE,
    INITIAL_SUPPLY,
    MALLORY,
    ONE,
    POOL,
    PROTOCOL_FEE_BPS,
    TRADE_FEE_BPS,
    TRADER_FUNDING,
    make_pool,
)


def _state(pool):
    """Everything a rejected buy must leave untouched."""
    return (
        pool.engine.snapshot,
        pool.engine.fee_totals(),
        len(pool.engine.events),
        pool.ledger.balance_of(ALICE),
        pool.ledger.balance_of(POOL),
        pool.ledger.allowance(ALICE, POOL),
        pool.token.total_supply(),
    )


class TestBuy:
    """Successful buys."""

    def test_mints_curve_amount(self, pool):
        reserve_in = 1_000 * ONE
        fee = calculate_trade_fee(reserve_in, TRADE_FEE_BPS, PROTOCOL_FEE_BPS)
        expected = calc_purchase_return(INITIAL_SUPPLY, INITIAL_RESERVE, CRR_PPM, fee.net)

        trade = pool.buy(ALICE, reserve_in)

        assert isinstance(trade, TradeExecuted)
        assert trade.direction is Direction.BUY
        assert trade.amount_in == reserve_in
        assert trade.amount_out == expected
        assert trade.fee == fee.total
        assert trade.protocol_fee == fee.protocol_share
        assert pool.token.balance_of(ALICE) == expected

    def test_reserve_grows_by_gross_minus_treasury_share(self, pool):
        reserve_in = 1_000 * ONE
        trade = pool.buy(ALICE, reserve_in)

        protocol_fee = reserve_in * TRADE_FEE_BPS // 10_000 * PROTOCOL_FEE_BPS // 10_000
        assert trade.reserve_delta == reserve_in - protocol_fee
        assert pool.engine.reserve_balance == INITIAL_RESERVE + reserve_in - protocol_fee
        assert trade.reserve_after == pool.engine.reserve_balance
        assert pool.held_balance() == INITIAL_RESERVE + reserve_in
        assert pool.engine.treasury_surplus() == protocol_fee

    def test_moves_reserve_from_trader(self, pool):
        pool.buy(ALICE, 500 * ONE)
        assert pool.ledger.balance_of(ALICE) == TRADER_FUNDING - 500 * ONE

    def test_supply_and_snapshot_updated(self, pool):
        version = pool.engine.snapshot.version
        trade = pool.buy(ALICE, 100 * ONE)
        assert trade.supply_delta == trade.amount_out
        assert trade.supply_after == INITIAL_SUPPLY + trade.amount_out
        assert pool.engine.token_supply == trade.supply_after
        assert pool.engine.snapshot.version == version + 1

    def test_records_trade(self, pool):
        trade = pool.buy(ALICE, 100 * ONE)
        # Sequence 1 is the seeding deposit
        assert trade.sequence == 2
        assert trade.pool_id == "test-pool"
        assert trade.timestamp == pool.clock.now
        assert pool.engine.trades() == [trade]

    def test_recipient_receives_tokens(self, pool):
        trade = pool.buy(ALICE, 100 * ONE, recipient=BOB)
        assert trade.trader == ALICE
        assert trade.recipient == BOB
        assert pool.token.balance_of(BOB) == trade.amount_out
        assert pool.token.balance_of(ALICE) == 0

    def test_spot_price_rises(self, pool):
        trade = pool.buy(ALICE, 100 * ONE)
        assert trade.spot_price_after > trade.spot_price_before
        assert pool.engine.spot_price() == trade.spot_price_after

    def test_minimum_output_met_exactly(self, pool):
        quoted = pool.engine.quote_buy(100 * ONE)
        trade = pool.buy(ALICE, 100 * ONE, min_tokens_out=quoted)
        assert trade.amount_out == quoted

    def test_deadline_equal_to_now_passes(self, pool):
        pool.engine.buy(CallContext(ALICE), ONE, 0, ALICE, pool.clock.now)

    def test_allowed_during_initial_bonding_round(self, pool):
        assert not pool.engine.trade_info().sells_enabled
        pool.buy(ALICE, ONE)


class TestBuyRejections:
    """Rejected buys leave no trace."""

    def test_slippage(self, pool):
        quoted = pool.engine.quote_buy(100 * ONE)
        before = _state(pool)
        with pytest.raises(SlippageError) as exc_info:
            pool.buy(ALICE, 100 * ONE, min_tokens_out=quoted + 1)
        assert exc_info.value.details["shortfall"] == 1
        assert _state(pool) == before

    def test_expired(self, pool):
        before = _state(pool)
        with pytest.raises(ExpiredError) as exc_info:
            pool.engine.buy(CallContext(ALICE), ONE, 0, ALICE, pool.clock.now - 1)
        assert exc_info.value.details["late_by"] == 1
        assert _state(pool) == before

    def test_paused(self, pool):
        pool.engine.pause(pool.governor)
        before = _state(pool)
        with pytest.raises(StateError, match="paused"):
            pool.buy(ALICE, ONE)
        assert _state(pool) == before

    def test_above_trade_limit(self, pool):
        before = _state(pool)
        with pytest.raises(BoundsError):
            pool.buy(ALICE, 2_000 * ONE + 1)
        assert _state(pool) == before

    def test_zero_output(self, pool):
        with pytest.raises(ValidationError, match="output is zero"):
            pool.buy(ALICE, 1)

    @pytest.mark.parametrize("amount", [0, -1, True, "100"])
    def test_bad_amount(self, pool, amount):
        with pytest.raises(ValidationError):
            pool.buy(ALICE, amount)

    def test_amount_above_uint256(self, pool):
        with pytest.raises(BoundsError):
            pool.buy(ALICE, UINT256_MAX + 1)

    def test_negative_minimum(self, pool):
        with pytest.raises(ValidationError):
            pool.buy(ALICE, ONE, min_tokens_out=-1)

    def test_zero_recipient(self, pool):
        with pytest.raises(ValidationError, match="zero address"):
            pool.buy(ALICE, ONE, recipient="0x" + "0" * 40)

    def test_unseeded_pool(self):
        pool = make_pool(seed_reserve=0)
        with pytest.raises(StateError, match="not seeded"):
            pool.buy(ALICE, ONE)

    def test_missing_allowance_rolls_back(self, pool):
        before = _state(pool)
        with pytest.raises(InsufficientAllowance):
            pool.buy(MALLORY, ONE)
        assert _state(pool) == before
        assert pool.token.balance_of(MALLORY) == 0
