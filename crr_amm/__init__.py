"""Constant-reserve-ratio bonding-curve AMM."""

from crr_amm.config import PoolConfig, Settings
from crr_amm.engine import BondingCurveEngine
from crr_amm.errors import (
    AMMError,
    AuthorizationError,
    BoundsError,
    DomainError,
    ExpiredError,
    SlippageError,
    StateError,
    ValidationError,
)
from crr_amm.lifecycle import CallContext, Phase, PoolState, Role
from crr_amm.registry import PoolRegistry

__version__ = "0.1.0"

__all__ = [
    "AMMError",
    "AuthorizationError",
    "BondingCurveEngine",
    "BoundsError",
    "CallContext",
    "DomainError",
    "ExpiredError",
    "Phase",
    "PoolConfig",
    "PoolRegistry",
    "PoolState",
    "Role",
    "Settings",
    "SlippageError",
    "StateError",
    "ValidationError",
    "__version__",
]
