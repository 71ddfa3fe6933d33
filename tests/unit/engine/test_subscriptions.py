"""Tests for event delivery from a pool to its subscribers."""

import pytest

from crr_amm.errors import StateError
from crr_amm.models.records import Paused, TradeExecuted
from tests.helpers import ALICE, BOB, ONE


class TestSubscriptions:
    def test_receives_committed_records(self, pool, governor):
        received = []
        pool.engine.subscribe(received.append)

        trade = pool.buy(ALICE, ONE)
        pool.engine.pause(governor)

        assert received == [trade, pool.engine.events.records(Paused)[0]]

    def test_sees_post_trade_state(self, pool):
        seen = []

        def on_event(event):
            seen.append((event.sequence, pool.engine.snapshot.reserve_balance))

        pool.engine.subscribe(on_event)
        trade = pool.buy(ALICE, ONE)
        assert seen == [(trade.sequence, trade.reserve_after)]

    def test_rejected_operation_publishes_nothing(self, pool):
        received = []
        pool.engine.subscribe(received.append)
        with pytest.raises(StateError):
            pool.sell(ALICE, ONE)
        assert received == []

    def test_subscriber_may_trade(self, pool):
        """Delivery happens after the pool lock is released."""
        follow_ups = []

        def copy_trader(event):
            if isinstance(event, TradeExecuted) and event.trader == ALICE:
                follow_ups.append(pool.buy(BOB, ONE))

        pool.engine.subscribe(copy_trader)
        pool.buy(ALICE, ONE)
        assert len(follow_ups) == 1

    def test_failing_subscriber_does_not_fail_trade(self, pool):
        def broken(event):
            raise RuntimeError("boom")

        pool.engine.subscribe(broken)
        trade = pool.buy(ALICE, ONE)
        assert pool.engine.trades() == [trade]

    def test_unsubscribe(self, pool):
        received = []
        unsubscribe = pool.engine.subscribe(received.append)
        unsubscribe()
        pool.buy(ALICE, ONE)
        assert received == []
