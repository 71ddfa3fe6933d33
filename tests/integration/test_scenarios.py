"""End-to-end pool scenarios on the reference pool.

Reference pool: reserve 10,000, supply 100,000, CRR 10%, trade fee 25 bps.
"""

from decimal import Decimal, localcontext

import pytest

from crr_amm.errors import BoundsError, StateError
from crr_amm.lifecycle import CallContext
from tests.helpers import ALICE, BOB, GOVERNOR, INITIAL_RESERVE, INITIAL_SUPPLY, ONE


def reference_purchase(deposit: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 60
        return Decimal(INITIAL_SUPPLY) * (
            (1 + Decimal(deposit) / Decimal(INITIAL_RESERVE)) ** Decimal("0.1") - 1
        )


class TestReferencePool:
    def test_quote_buy_within_ten_bps(self, pool):
        """quote_buy(1,000) agrees with an arbitrary-precision computation."""
        quoted = pool.engine.quote_buy(1_000 * ONE)
        net_deposit = 1_000 * ONE - 1_000 * ONE * 25 // 10_000
        expected = reference_purchase(net_deposit)

        relative_error = abs(Decimal(quoted) - expected) / expected
        assert relative_error < Decimal("0.001")
        # Rounded in the pool's favor
        assert quoted <= expected

    def test_sell_opens_after_initial_bonding_round(self, pool):
        """Sells fail before ibr_end and succeed after it."""
        bought = pool.buy(ALICE, 1_000 * ONE)

        with pytest.raises(StateError):
            pool.sell(ALICE, bought.amount_out)

        pool.end_ibr()
        sold = pool.sell(ALICE, bought.amount_out)
        assert sold.amount_out > 0
        assert pool.token.balance_of(ALICE) == 0

    def test_pause_blocks_buy_but_not_deposit(self, pool, governor):
        """While paused a buy fails and a fee deposit raises the reserve by exactly its amount."""
        pool.engine.pause(governor)

        with pytest.raises(StateError):
            pool.buy(ALICE, ONE)

        pool.fund(GOVERNOR, 500 * ONE)
        reserve_before = pool.engine.reserve_balance
        pool.engine.deposit_fees(governor, 500 * ONE)
        assert pool.engine.reserve_balance == reserve_before + 500 * ONE

    def test_trade_limit_boundary(self, pool, governor):
        """With max_trade_bps 2000 and reserve 10,000, 2,000 passes and 2,001 fails."""
        pool.engine.set_max_trade_bps(governor, 2_000)

        with pytest.raises(BoundsError):
            pool.buy(BOB, 2_001 * ONE)

        pool.buy(ALICE, 2_000 * ONE)

    def test_trade_limit_is_exact_to_one_unit(self, pool):
        with pytest.raises(BoundsError):
            pool.buy(BOB, 2_000 * ONE + 1)
        pool.buy(BOB, 2_000 * ONE)


class TestPoolLifetime:
    def test_full_lifecycle(self, pool, governor):
        """Buy in the IBR, open sells, trade, collect fees, hand over governance."""
        first = pool.buy(ALICE, 500 * ONE)
        second = pool.buy(BOB, 700 * ONE)

        pool.end_ibr()
        pool.sell(ALICE, first.amount_out // 2)
        pool.sell(BOB, second.amount_out)

        surplus = pool.engine.treasury_surplus()
        assert surplus == sum(t.protocol_fee for t in pool.engine.trades())
        pool.engine.withdraw_treasury(governor, surplus)
        assert pool.held_balance() == pool.engine.reserve_balance

        pool.engine.transfer_governance(governor, ALICE)
        pool.engine.pause(CallContext(ALICE))
        assert pool.engine.snapshot.paused

        names = [record.name for record in pool.engine.events]
        assert names == [
            "FeesDeposited",
            "TradeExecuted",
            "TradeExecuted",
            "TradeExecuted",
            "TradeExecuted",
            "TreasuryWithdrawn",
            "GovernorTransferred",
            "Paused",
        ]
