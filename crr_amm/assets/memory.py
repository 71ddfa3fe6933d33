"""In-memory ledgers implementing the asset interfaces.

InMemoryLedger models a fungible reserve asset with balances and allowances.
InMemoryToken models the issued token; only authorized minters may create or
destroy supply. Both are thread-safe so several pools can share one ledger.
"""

from __future__ import annotations

import threading

import structlog

from crr_amm.errors import AMMError, AuthorizationError, ValidationError
from crr_amm.models.types import normalize_address

logger = structlog.get_logger()


class LedgerError(AMMError):
    """Base error for ledger operations."""

    pass


class InsufficientBalance(LedgerError):
    """Account balance is lower than the amount moved."""

    pass


class InsufficientAllowance(LedgerError):
    """Spender allowance is lower than the amount moved."""

    pass


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValidationError("Amount must be a non-negative integer", amount=amount)


class _Balances:
    """Balance book shared by both ledger kinds.

    _credit and _debit expect the caller to hold _lock.
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = {}
        self._total_supply = 0
        self._lock = threading.RLock()

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._balances.get(normalize_address(account), 0)

    def total_supply(self) -> int:
        with self._lock:
            return self._total_supply

    def _credit(self, account: str, amount: int) -> None:
        account = normalize_address(account)
        self._balances[account] = self._balances.get(account, 0) + amount

    def _debit(self, account: str, amount: int) -> None:
        account = normalize_address(account)
        balance = self._balances.get(account, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"Insufficient {self.symbol} balance",
                account=account,
                balance=balance,
                amount=amount,
                shortfall=amount - balance,
            )
        self._balances[account] = balance - amount

    def _issue(self, to: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._credit(to, amount)
            self._total_supply += amount

    def _destroy(self, owner: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._debit(owner, amount)
            self._total_supply -= amount

    def move(self, source: str, target: str, amount: int) -> None:
        """Transfer amount from source to target."""
        _check_amount(amount)
        with self._lock:
            self._debit(source, amount)
            self._credit(target, amount)


class InMemoryLedger(_Balances):
    """Reserve asset ledger with ERC-20 style allowances."""

    def __init__(self, symbol: str = "RESERVE") -> None:
        super().__init__(symbol)
        self._allowances: dict[tuple[str, str], int] = {}

    def mint(self, to: str, amount: int) -> None:
        """Credit new units to an account (faucet for setting up balances)."""
        self._issue(to, amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._allowances[(normalize_address(owner), normalize_address(spender))] = amount

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """Move amount from owner to to on behalf of spender."""
        _check_amount(amount)
        key = (normalize_address(owner), normalize_address(spender))
        with self._lock:
            allowed = self._allowances.get(key, 0)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"Insufficient {self.symbol} allowance",
                    owner=key[0],
                    spender=key[1],
                    allowance=allowed,
                    amount=amount,
                )
            self.move(owner, to, amount)
            self._allowances[key] = allowed - amount

    def handle(self, account: str) -> LedgerHandle:
        """FungibleAsset view of this ledger bound to account."""
        return LedgerHandle(self, account)


class LedgerHandle:
    """FungibleAsset bound to one account of an InMemoryLedger."""

    def __init__(self, ledger: InMemoryLedger, account: str) -> None:
        self.ledger = ledger
        self.account = normalize_address(account)

    def transfer_from(self, owner: str, to: str, amount: int) -> None:
        self.ledger.transfer_from(self.account, owner, to, amount)

    def transfer(self, to: str, amount: int) -> None:
        self.ledger.move(self.account, to, amount)

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(account)


class InMemoryToken(_Balances):
    """Issued token; supply changes only through authorized minters."""

    def __init__(self, symbol: str = "TOKEN") -> None:
        super().__init__(symbol)
        self._minters: set[str] = set()

    def authorize_minter(self, minter: str) -> None:
        with self._lock:
            self._minters.add(normalize_address(minter))
        logger.debug("minter_authorized", token=self.symbol, minter=minter)

    def revoke_minter(self, minter: str) -> None:
        with self._lock:
            self._minters.discard(normalize_address(minter))

    def is_minter(self, account: str) -> bool:
        with self._lock:
            return normalize_address(account) in self._minters

    def issue(self, to: str, amount: int) -> None:
        """Create the initial supply outside any pool."""
        self._issue(to, amount)

    def transfer(self, source: str, target: str, amount: int) -> None:
        self.move(source, target, amount)

    def minter(self, account: str) -> TokenHandle:
        """TokenMinter view of this token acting as account."""
        return TokenHandle(self, account)

    def _require_minter(self, account: str) -> None:
        if not self.is_minter(account):
            raise AuthorizationError(
                f"Account is not a {self.symbol} minter", account=normalize_address(account)
            )


class TokenHandle:
    """TokenMinter bound to one account of an InMemoryToken."""

    def __init__(self, token: InMemoryToken, account: str) -> None:
        self.token = token
        self.account = normalize_address(account)

    def mint(self, to: str, amount: int) -> None:
        self.token._require_minter(self.account)
        self.token._issue(to, amount)

    def burn(self, owner: str, amount: int) -> None:
        self.token._require_minter(self.account)
        self.token._destroy(owner, amount)

    def total_supply(self) -> int:
        return self.token.total_supply()

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)
