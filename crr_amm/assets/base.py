"""Interfaces of the ledgers a pool trades against.

The engine never owns balances directly. It holds a FungibleAsset handle for
the reserve asset (bound to the pool's own account, so transfer() moves
funds out of the pool) and a TokenMinter for the issued token.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class FungibleAsset(Protocol):
    """Reserve asset as seen from the pool's account.

    Implementations must be non-rebasing and must not charge a fee on
    transfer: an amount pulled with transfer_from arrives in full.
    """

    def transfer_from(self, owner: str, to: str, amount: int) -> None:
        """Move amount from owner to to, spending the pool's allowance."""
        ...

    def transfer(self, to: str, amount: int) -> None:
        """Move amount from the pool's account to to."""
        ...

    def balance_of(self, account: str) -> int:
        """Current balance of account."""
        ...


@runtime_checkable
class TokenMinter(Protocol):
    """Issued token with mint and burn rights granted to the pool."""

    def mint(self, to: str, amount: int) -> None:
        """Create amount new tokens for to."""
        ...

    def burn(self, owner: str, amount: int) -> None:
        """Destroy amount tokens held by owner."""
        ...

    def total_supply(self) -> int:
        """Total tokens in circulation."""
        ...
