"""Reserve asset and issued token interfaces, with in-memory ledgers."""

from crr_amm.assets.base import FungibleAsset, TokenMinter
from crr_amm.assets.memory import (
    InMemoryLedger,
    InMemoryToken,
    InsufficientAllowance,
    InsufficientBalance,
    LedgerError,
    LedgerHandle,
    TokenHandle,
)

__all__ = [
    "FungibleAsset",
    "TokenMinter",
    "InMemoryLedger",
    "InMemoryToken",
    "LedgerHandle",
    "TokenHandle",
    "LedgerError",
    "InsufficientBalance",
    "InsufficientAllowance",
]
