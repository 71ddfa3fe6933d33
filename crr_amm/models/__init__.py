"""Data models for the CRR AMM."""

from crr_amm.models.pool import PoolSnapshot, PoolStateView, TradeInfo
from crr_amm.models.records import (
    Direction,
    FeesDeposited,
    GovernorTransferred,
    MaxTradeBpsUpdated,
    ParametersUpdated,
    Paused,
    PoolEvent,
    Quote,
    RoleGranted,
    RoleRevoked,
    Trade,
    TradeExecuted,
    TreasuryUpdated,
    TreasuryWithdrawn,
    Unpaused,
)
from crr_amm.models.types import Address, is_valid_address, normalize_address, require_address

__all__ = [
    "Address",
    "Direction",
    "FeesDeposited",
    "GovernorTransferred",
    "MaxTradeBpsUpdated",
    "ParametersUpdated",
    "Paused",
    "PoolEvent",
    "PoolSnapshot",
    "PoolStateView",
    "Quote",
    "RoleGranted",
    "RoleRevoked",
    "Trade",
    "TradeExecuted",
    "TradeInfo",
    "TreasuryUpdated",
    "TreasuryWithdrawn",
    "Unpaused",
    "is_valid_address",
    "normalize_address",
    "require_address",
]
