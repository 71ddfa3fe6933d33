"""Reserve accounting.

The pool tracks reserve_balance, the part of its held reserve-asset balance
that backs the curve. The held balance may be larger: the difference is the
treasury surplus (the protocol share of trade fees) plus any value sent to
the pool outside of a tracked operation. reserve_balance must never exceed
the held balance.

Fee flows:
    buy:  reserve_balance += gross_in - protocol_share
    sell: reserve_balance -= gross_out - reserve_share
    deposit_fees: reserve_balance += amount (no tokens minted)
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from crr_amm.errors import BoundsError, StateError, ValidationError
from crr_amm.fees import FeeBreakdown
from crr_amm.lifecycle import CallContext, LifecycleStateMachine, Role
from crr_amm.safe_int import S, Underflow


@dataclass(frozen=True)
class FeeTotals:
    """Cumulative fee bookkeeping for a pool.

    Attributes:
        treasury_fees: Trade fees routed to the treasury surplus
        reserve_fees: Trade fees retained in the reserve
        deposits: Amounts credited through deposit_fees
        withdrawals: Amounts paid out of the treasury surplus
    """

    treasury_fees: int = 0
    reserve_fees: int = 0
    deposits: int = 0
    withdrawals: int = 0


@dataclass(frozen=True)
class _AccountantState:
    reserve_balance: int
    totals: FeeTotals


class ReserveAccountant:
    """Owns reserve_balance and the fee ledger of one pool."""

    def __init__(self, authority: LifecycleStateMachine, reserve_balance: int = 0) -> None:
        self._authority = authority
        self._reserve_balance = reserve_balance
        self._totals = FeeTotals()

    @property
    def reserve_balance(self) -> int:
        return self._reserve_balance

    @property
    def totals(self) -> FeeTotals:
        return self._totals

    def credit_buy(self, amount_in: int, fee: FeeBreakdown) -> int:
        """Credit a buy's gross input minus the treasury share.

        Returns:
            The signed change of reserve_balance
        """
        delta = (S(amount_in) - fee.protocol_share).value
        self._reserve_balance += delta
        self._record_fee(fee)
        return delta

    def debit_sell(self, gross_out: int, fee: FeeBreakdown) -> int:
        """Debit a sell's gross output, keeping the reserve share of the fee.

        Returns:
            The signed change of reserve_balance (negative)

        Raises:
            StateError: If the debit would take reserve_balance below zero
        """
        debit = S(gross_out) - fee.reserve_share
        try:
            self._reserve_balance = (S(self._reserve_balance) - debit).value
        except Underflow as e:
            raise StateError(
                "Sell would overdraw the reserve",
                reserve_balance=self._reserve_balance,
                debit=debit.value,
            ) from e
        self._record_fee(fee)
        return -debit.value

    def deposit_fees(self, ctx: CallContext, amount: int) -> int:
        """Credit amount to the reserve without minting.

        Raises the spot price for every holder. Also used to seed a new
        pool's initial reserve. Requires GOVERNOR or FEE_DEPOSITOR.

        Returns:
            reserve_balance after the deposit
        """
        self._authority.require_role(ctx, Role.GOVERNOR, Role.FEE_DEPOSITOR)
        if amount <= 0:
            raise ValidationError("Amount must be > 0", amount=amount)
        self._reserve_balance += amount
        self._totals = replace(self._totals, deposits=self._totals.deposits + amount)
        return self._reserve_balance

    def withdraw_treasury(self, ctx: CallContext, amount: int, held_balance: int) -> int:
        """Book a treasury withdrawal against the current surplus.

        Requires GOVERNOR. The caller pays amount to the treasury address.

        Returns:
            Surplus remaining after the withdrawal

        Raises:
            BoundsError: If amount exceeds held_balance - reserve_balance
        """
        self._authority.require_role(ctx, Role.GOVERNOR)
        if amount <= 0:
            raise ValidationError("Amount must be > 0", amount=amount)
        available = self.surplus(held_balance)
        if amount > available:
            raise BoundsError.above("amount", amount, available)
        self._totals = replace(self._totals, withdrawals=self._totals.withdrawals + amount)
        return available - amount

    def surplus(self, held_balance: int) -> int:
        """Held balance not backing the curve."""
        self.require_backed(held_balance)
        return held_balance - self._reserve_balance

    def require_backed(self, held_balance: int) -> None:
        """Raise StateError if reserve_balance exceeds held_balance."""
        if self._reserve_balance > held_balance:
            raise StateError(
                "Reserve exceeds held balance",
                reserve_balance=self._reserve_balance,
                held_balance=held_balance,
                shortfall=self._reserve_balance - held_balance,
            )

    def _record_fee(self, fee: FeeBreakdown) -> None:
        if fee.total == 0:
            return
        self._totals = replace(
            self._totals,
            treasury_fees=self._totals.treasury_fees + fee.protocol_share,
            reserve_fees=self._totals.reserve_fees + fee.reserve_share,
        )

    def snapshot(self) -> _AccountantState:
        return _AccountantState(reserve_balance=self._reserve_balance, totals=self._totals)

    def restore(self, saved: _AccountantState) -> None:
        self._reserve_balance = saved.reserve_balance
        self._totals = saved.totals
