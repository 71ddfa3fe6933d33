"""Checked integer arithmetic for reserve and fee bookkeeping.

A reserve or fee amount must never go negative. SafeInt subtraction raises
Underflow instead of producing a negative balance.

Usage pattern:
    from crr_amm.safe_int import S

    def debit(reserve: int, amount: int) -> int:
        return (S(reserve) - S(amount)).value  # Raises if amount > reserve
"""

from __future__ import annotations

from crr_amm.constants import BPS_DENOMINATOR


class Underflow(ArithmeticError):
    """Subtraction would produce a negative result."""


class SafeInt:
    """Non-negative integer whose subtraction is checked."""

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Raises Underflow if other exceeds self."""
        other_val = other._value if isinstance(other, SafeInt) else other
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def bps(self, rate_bps: int) -> SafeInt:
        """Basis-point share of self, rounded down."""
        return SafeInt(self._value * rate_bps // BPS_DENOMINATOR)


S = SafeInt
