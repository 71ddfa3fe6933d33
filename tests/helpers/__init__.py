"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Account addresses, amounts and default pool parameters
- factories: Pool config and seeded pool factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    CRR_PPM,
    DEPOSITOR,
    GOVERNOR,
    IBR_DURATION,
    INITIAL_RESERVE,
    INITIAL_SUPPLY,
    MALLORY,
    MAX_TRADE_BPS,
    ONE,
    POOL,
    PROTOCOL_FEE_BPS,
    RESERVE_ASSET,
    START_TIME,
    TOKEN,
    TRADE_FEE_BPS,
    TRADER_FUNDING,
    TREASURY,
)
from tests.helpers.factories import FakeClock, PoolHarness, make_config, make_pool

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "CAROL",
    "MALLORY",
    "POOL",
    "RESERVE_ASSET",
    "TOKEN",
    "TREASURY",
    "GOVERNOR",
    "DEPOSITOR",
    "ONE",
    "INITIAL_RESERVE",
    "INITIAL_SUPPLY",
    "TRADER_FUNDING",
    "CRR_PPM",
    "TRADE_FEE_BPS",
    "PROTOCOL_FEE_BPS",
    "MAX_TRADE_BPS",
    "START_TIME",
    "IBR_DURATION",
    # Factories
    "FakeClock",
    "PoolHarness",
    "make_config",
    "make_pool",
]
