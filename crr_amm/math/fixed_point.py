"""Fixed-point math library for the bonding curve.

All public values are integers scaled by 10^18. Internally, ln/exp/pow work
at 36 decimals so that the 18-decimal results are accurate to the last few
digits for every input the curve produces.

Every loop in this module is bounded by a named constant:
- ln: range reduction into [2/3, 4/3] by halving/doubling, at most
  MAX_LN_REDUCTION_STEPS steps (covers every positive 18-decimal input up
  to 2^128); beyond that the input is rejected with DomainError.
- exp: range reduction below 0.5 by halving, at most MAX_EXP_HALVINGS steps.
- series evaluation: at most MAX_SERIES_TERMS terms.

Precision: for inputs the curve produces (bases within [1e-12, 1e12],
exponents within [0, 20]) the 36-decimal intermediate is accurate to well
below 1e-30 relative, so 18-decimal results are off by at most a few units
in the last place. That is far inside the 10 bps budget the curve needs.
Outside that range precision degrades but every call terminates.
"""

from __future__ import annotations

from typing import ClassVar

from crr_amm.errors import DomainError

__all__ = [
    # Classes
    "Fixed",
    # Functions
    "ln",
    "exp",
    "pow_raw",
    # Constants
    "ONE_18",
    "ONE_36",
    "MAX_LN_REDUCTION_STEPS",
    "MAX_EXP_HALVINGS",
    "MAX_SERIES_TERMS",
]

# =============================================================================
# Constants
# =============================================================================

ONE_18 = 10**18
ONE_36 = 10**36

# ln(2) to 36 decimals
LN2_36 = 693_147_180_559_945_309_417_232_121_458_176_568

MAX_NATURAL_EXPONENT = 130 * ONE_18  # e^130 is the max we can handle
MIN_NATURAL_EXPONENT = -41 * ONE_18  # e^-41 is below 1 wei at 18 decimals

# ln range reduction target: ratio of bounds is exactly 2
LN_REDUCTION_LOWER = 2 * ONE_36 // 3
LN_REDUCTION_UPPER = 4 * ONE_36 // 3
MAX_LN_REDUCTION_STEPS = 128

# exp range reduction target: |x| <= 0.5
EXP_REDUCTION_THRESHOLD = ONE_36 // 2
MAX_EXP_HALVINGS = 16

MAX_SERIES_TERMS = 64

# Binomial fast path: (1 + x)^a for a < 2 and |x| <= 0.2
BINOMIAL_MAX_EXPONENT = 2 * ONE_18
BINOMIAL_MAX_DEVIATION = ONE_18 // 5


# =============================================================================
# Core math functions
# =============================================================================


def _div_trunc(a: int, b: int) -> int:
    """Integer division with truncation toward zero.

    Python's // rounds toward negative infinity. Series terms can be
    negative (ln of x < 1, binomial terms with negative deviation), and
    truncation keeps their rounding symmetric around zero.
    """
    if (a >= 0) == (b >= 0):
        return a // b
    return -(abs(a) // abs(b))


def _ln_36(x: int) -> int:
    """Natural logarithm of an 18-decimal input, returned at 36 decimals.

    Uses ln(x) = k * ln(2) + 2 * arctanh((y - 1) / (y + 1)) with y = x / 2^k
    reduced into [2/3, 4/3], where |z| <= 1/7 and the series converges fast.

    Raises:
        DomainError: If x <= 0, or if x needs more than MAX_LN_REDUCTION_STEPS
            halvings/doublings to reach the reduction interval.
    """
    if x <= 0:
        raise DomainError("ln undefined for non-positive input", function="ln", value=x)

    y = x * ONE_18  # Scale to 36 decimals
    k = 0
    steps = 0
    while not (LN_REDUCTION_LOWER <= y <= LN_REDUCTION_UPPER):
        if steps == MAX_LN_REDUCTION_STEPS:
            raise DomainError(
                "ln input outside reducible range",
                function="ln",
                value=x,
                max_steps=MAX_LN_REDUCTION_STEPS,
            )
        if y > LN_REDUCTION_UPPER:
            y //= 2
            k += 1
        else:
            y *= 2
            k -= 1
        steps += 1

    z = _div_trunc((y - ONE_36) * ONE_36, y + ONE_36)
    z_squared = _div_trunc(z * z, ONE_36)

    num = z
    series_sum = z
    for i in range(1, MAX_SERIES_TERMS):
        num = _div_trunc(num * z_squared, ONE_36)
        if num == 0:
            break
        series_sum += _div_trunc(num, 2 * i + 1)

    return k * LN2_36 + 2 * series_sum


def _exp_36(x: int) -> int:
    """e^x for a 36-decimal exponent, returned at 36 decimals.

    Halves x until |x| <= 0.5, evaluates the Taylor series, then squares the
    result back once per halving.

    Raises:
        DomainError: If x exceeds MAX_NATURAL_EXPONENT (result would overflow)
    """
    if x > MAX_NATURAL_EXPONENT * ONE_18:
        raise DomainError(
            "exp input too large",
            function="exp",
            value=x // ONE_18,
            limit=MAX_NATURAL_EXPONENT,
        )
    if x < MIN_NATURAL_EXPONENT * ONE_18:
        return 0
    if x < 0:
        # e^-x = 1 / e^x
        return (ONE_36 * ONE_36) // _exp_36(-x)

    r = x
    halvings = 0
    while r > EXP_REDUCTION_THRESHOLD:
        if halvings == MAX_EXP_HALVINGS:
            raise DomainError(
                "exp range reduction did not converge",
                function="exp",
                value=x // ONE_18,
                max_steps=MAX_EXP_HALVINGS,
            )
        r //= 2
        halvings += 1

    # Taylor series: e^r = 1 + r + r^2/2! + r^3/3! + ...
    series_sum = ONE_36
    term = ONE_36
    for n in range(1, MAX_SERIES_TERMS + 1):
        term = (term * r) // (n * ONE_36)
        if term == 0:
            break
        series_sum += term

    for _ in range(halvings):
        series_sum = (series_sum * series_sum) // ONE_36

    return series_sum


def _binomial_36(base: int, exponent: int) -> int:
    """(1 + x)^a via the binomial series, returned at 36 decimals.

    Only used for a < 2 and |x| <= 0.2, where the terms shrink by at least
    a factor of five each step.
    """
    x = (base - ONE_18) * ONE_18
    a = exponent * ONE_18

    series_sum = ONE_36
    term = ONE_36
    for k in range(1, MAX_SERIES_TERMS + 1):
        # term_k = term_{k-1} * (a - k + 1) / k * x
        term = _div_trunc(term * (a - (k - 1) * ONE_36), k * ONE_36)
        term = _div_trunc(term * x, ONE_36)
        if term == 0:
            break
        series_sum += term

    return series_sum


def ln(x: int) -> int:
    """Natural logarithm of x (18-decimal fixed-point).

    Raises:
        DomainError: If x <= 0 or x is beyond the reducible range
    """
    return _div_trunc(_ln_36(x), ONE_18)


def exp(x: int) -> int:
    """e^x where x is 18-decimal fixed-point (can be negative).

    Returns 0 for x below MIN_NATURAL_EXPONENT.

    Raises:
        DomainError: If x > MAX_NATURAL_EXPONENT
    """
    return _exp_36(x * ONE_18) // ONE_18


def pow_raw(base: int, exponent: int) -> int:
    """Compute base^exponent where both are 18-decimal fixed-point.

    Exponents below 2 with base within 20% of 1 use the binomial series;
    everything else goes through exp(exponent * ln(base)).

    Raises:
        DomainError: If base or exponent is negative, or exponent * ln(base)
            exceeds MAX_NATURAL_EXPONENT
    """
    if base < 0 or exponent < 0:
        raise DomainError(
            "pow requires non-negative base and exponent",
            function="pow",
            base=base,
            exponent=exponent,
        )
    if exponent == 0:
        return ONE_18
    if base == 0:
        return 0
    if base == ONE_18:
        return ONE_18

    if exponent < BINOMIAL_MAX_EXPONENT and abs(base - ONE_18) <= BINOMIAL_MAX_DEVIATION:
        return _binomial_36(base, exponent) // ONE_18

    logx_times_y = _div_trunc(_ln_36(base) * exponent, ONE_18)
    return _exp_36(logx_times_y) // ONE_18


# =============================================================================
# Fixed: directed-rounding operations used by the curve
# =============================================================================


class Fixed:
    """18-decimal fixed-point value with explicit rounding direction.

    Raw token amounts can be wrapped directly: Fixed(supply).mul_down(ratio)
    yields an amount in the token's own units.
    """

    ONE: ClassVar[int] = ONE_18
    # pow results are widened by this relative margin (1e-14) on each side
    POW_MARGIN: ClassVar[int] = 10_000

    __slots__ = ("value",)

    def __init__(self, value: int) -> None:
        self.value = value

    @classmethod
    def ratio_down(cls, numerator: int, denominator: int) -> Fixed:
        if denominator == 0:
            raise ZeroDivisionError("Fixed ratio with zero denominator")
        return cls(numerator * cls.ONE // denominator)

    @classmethod
    def ratio_up(cls, numerator: int, denominator: int) -> Fixed:
        if denominator == 0:
            raise ZeroDivisionError("Fixed ratio with zero denominator")
        return cls(-(-numerator * cls.ONE // denominator))

    def mul_down(self, other: Fixed) -> Fixed:
        return Fixed(self.value * other.value // self.ONE)

    def add(self, other: Fixed) -> Fixed:
        return Fixed(self.value + other.value)

    def sub(self, other: Fixed) -> Fixed:
        """self - other, floored at zero."""
        return Fixed(max(0, self.value - other.value))

    def complement(self) -> Fixed:
        """1 - self, floored at zero."""
        return Fixed(max(0, self.ONE - self.value))

    def pow_down(self, exponent: Fixed) -> Fixed:
        """self ** exponent, lowered by the pow margin."""
        raw = pow_raw(self.value, exponent.value)
        return Fixed(max(0, raw - _pow_margin(raw)))

    def pow_up(self, exponent: Fixed) -> Fixed:
        """self ** exponent, raised by the pow margin."""
        if self.value == 0 and exponent.value > 0:
            return Fixed(0)
        raw = pow_raw(self.value, exponent.value)
        return Fixed(raw + _pow_margin(raw))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fixed):
            return NotImplemented
        return self.value == other.value

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Fixed({self.value})"


def _pow_margin(raw: int) -> int:
    # raw * 1e-14 rounded up, plus one unit
    return -(-raw * Fixed.POW_MARGIN // ONE_18) + 1
