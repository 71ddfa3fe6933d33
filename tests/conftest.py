"""Pytest configuration and fixtures."""

import pytest

from crr_amm.lifecycle import CallContext
from tests.helpers import GOVERNOR, FakeClock, PoolHarness, make_pool


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at START_TIME."""
    return FakeClock()


@pytest.fixture
def pool(clock: FakeClock) -> PoolHarness:
    """Seeded pool: reserve 10,000, supply 100,000, CRR 10%, fee 25 bps."""
    return make_pool(clock=clock)


@pytest.fixture
def open_pool(pool: PoolHarness) -> PoolHarness:
    """Seeded pool with the initial bonding round over (sells enabled)."""
    pool.end_ibr()
    return pool


@pytest.fixture
def fee_free_pool(clock: FakeClock) -> PoolHarness:
    """Seeded pool with no trade fee and sells enabled."""
    harness = make_pool(clock=clock, trade_fee_bps=0, protocol_fee_bps=0)
    harness.end_ibr()
    return harness


@pytest.fixture
def governor() -> CallContext:
    return CallContext(GOVERNOR)
