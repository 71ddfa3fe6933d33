"""Immutable records emitted by a pool.

Every committed state change produces exactly one record. Records carry the
post-state values needed to reconstruct reserve and supply deltas without
re-reading the pool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Direction(str, Enum):
    """Trade direction relative to the issued token."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Quote:
    """Result of pricing a trade against a pool snapshot.

    Attributes:
        direction: Buy or sell
        amount_in: Gross input (reserve for buys, tokens for sells)
        amount_out: Output after fees (tokens for buys, reserve for sells)
        fee: Trade fee in reserve units
        spot_price_before: Spot price before the trade
        spot_price_after: Spot price the trade would leave behind
        price_impact_bps: Relative spot price move in basis points
    """

    direction: Direction
    amount_in: int
    amount_out: int
    fee: int
    spot_price_before: int
    spot_price_after: int
    price_impact_bps: int


@dataclass(frozen=True)
class PoolEvent:
    """Base for all pool records.

    pool_id, sequence and timestamp are stamped by the engine at commit.
    """

    pool_id: str = field(default="", kw_only=True)
    sequence: int = field(default=0, kw_only=True)
    timestamp: int = field(default=0, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class TradeExecuted(PoolEvent):
    """A committed buy or sell.

    reserve_delta is the signed change of reserve_balance, supply_delta the
    signed change of token supply. fee is the full trade fee; protocol_fee is
    the part routed to the treasury surplus.
    """

    trader: str
    recipient: str
    direction: Direction
    amount_in: int
    amount_out: int
    fee: int
    protocol_fee: int
    reserve_delta: int
    supply_delta: int
    spot_price_before: int
    spot_price_after: int
    reserve_after: int
    supply_after: int


# The append-only trade history holds TradeExecuted records
Trade = TradeExecuted


@dataclass(frozen=True)
class ParametersUpdated(PoolEvent):
    crr_ppm: int
    trade_fee_bps: int
    protocol_fee_bps: int
    updated_by: str


@dataclass(frozen=True)
class MaxTradeBpsUpdated(PoolEvent):
    previous_bps: int
    max_trade_bps: int
    updated_by: str


@dataclass(frozen=True)
class Paused(PoolEvent):
    account: str


@dataclass(frozen=True)
class Unpaused(PoolEvent):
    account: str


@dataclass(frozen=True)
class FeesDeposited(PoolEvent):
    depositor: str
    amount: int
    reserve_after: int


@dataclass(frozen=True)
class TreasuryWithdrawn(PoolEvent):
    treasury: str
    amount: int
    surplus_after: int


@dataclass(frozen=True)
class TreasuryUpdated(PoolEvent):
    previous_treasury: str
    treasury: str


@dataclass(frozen=True)
class GovernorTransferred(PoolEvent):
    previous_governor: str
    governor: str


@dataclass(frozen=True)
class RoleGranted(PoolEvent):
    role: str
    account: str
    granted_by: str


@dataclass(frozen=True)
class RoleRevoked(PoolEvent):
    role: str
    account: str
    revoked_by: str
