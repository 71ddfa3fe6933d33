"""Pool state snapshots and read-only views."""

from __future__ import annotations

from dataclasses import dataclass

from crr_amm.constants import BPS_DENOMINATOR
from crr_amm.math.curve import calc_spot_price


@dataclass(frozen=True)
class PoolSnapshot:
    """Immutable copy of the pricing-relevant pool state.

    Published by the engine after every commit. Quotes price against a
    snapshot so they never observe a half-applied trade.
    """

    reserve_balance: int
    token_supply: int
    crr_ppm: int
    trade_fee_bps: int
    protocol_fee_bps: int
    max_trade_bps: int
    paused: bool
    ibr_end: int
    version: int = 0

    @property
    def spot_price(self) -> int:
        return calc_spot_price(self.token_supply, self.reserve_balance, self.crr_ppm)

    @property
    def max_trade_amount(self) -> int:
        return self.reserve_balance * self.max_trade_bps // BPS_DENOMINATOR


@dataclass(frozen=True)
class PoolStateView:
    """Aggregate pool state for display."""

    reserve_balance: int
    token_supply: int
    spot_price: int
    crr_ppm: int
    trade_fee_bps: int
    protocol_fee_bps: int
    max_trade_bps: int

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot) -> PoolStateView:
        return cls(
            reserve_balance=snapshot.reserve_balance,
            token_supply=snapshot.token_supply,
            spot_price=snapshot.spot_price,
            crr_ppm=snapshot.crr_ppm,
            trade_fee_bps=snapshot.trade_fee_bps,
            protocol_fee_bps=snapshot.protocol_fee_bps,
            max_trade_bps=snapshot.max_trade_bps,
        )


@dataclass(frozen=True)
class TradeInfo:
    """Trading availability: whether sells are open, IBR end, pause flag."""

    sells_enabled: bool
    ibr_end: int
    paused: bool
