"""Bancor-style constant reserve ratio curve math.

Core formulas for pricing trades against a reserve held at a constant ratio
w = crr_ppm / 1e6 to the market cap of the issued token:

    reserve = w * supply * price

Fees are handled by the caller: subtract the trade fee from the deposit
BEFORE calling calc_purchase_return, and from the result AFTER calling
calc_sale_return. Rounding always favors the pool.
"""

from crr_amm.constants import BPS_DENOMINATOR, MAX_CRR_PPM, MIN_CRR_PPM, PPM
from crr_amm.errors import BoundsError, DomainError, check_range
from crr_amm.math.fixed_point import ONE_18, Fixed


def _validate_curve(supply: int, reserve: int, crr_ppm: int) -> None:
    check_range("crr_ppm", crr_ppm, MIN_CRR_PPM, MAX_CRR_PPM)
    if supply <= 0:
        raise DomainError("supply must be positive", parameter="supply", value=supply)
    if reserve <= 0:
        raise DomainError("reserve must be positive", parameter="reserve", value=reserve)


def calc_purchase_return(supply: int, reserve: int, crr_ppm: int, deposit: int) -> int:
    """Calculate tokens minted for a reserve deposit (buy).

    Formula:
        tokens_out = supply * ((1 + deposit / reserve)^w - 1)

    Args:
        supply: Current token supply (must be positive)
        reserve: Current reserve balance (must be positive)
        crr_ppm: Reserve ratio in parts per million
        deposit: Reserve amount entering the curve (after fee subtraction)

    Returns:
        Token amount to mint, rounded down

    Raises:
        BoundsError: If crr_ppm is outside [MIN_CRR_PPM, MAX_CRR_PPM]
        DomainError: If supply or reserve is not positive, or deposit is negative
    """
    _validate_curve(supply, reserve, crr_ppm)
    if deposit < 0:
        raise DomainError("deposit cannot be negative", parameter="deposit", value=deposit)
    if deposit == 0:
        return 0

    # base = 1 + deposit / reserve (rounded down)
    base = Fixed(ONE_18).add(Fixed.ratio_down(deposit, reserve))

    # weight = crr_ppm / 1e6 (exact)
    weight = Fixed.ratio_down(crr_ppm, PPM)

    # power = base ^ weight (rounded down)
    power = base.pow_down(weight)

    # tokens_out = supply * (power - 1) (rounded down)
    return Fixed(supply).mul_down(power.sub(Fixed(ONE_18))).value


def calc_sale_return(supply: int, reserve: int, crr_ppm: int, amount: int) -> int:
    """Calculate reserve released for burning tokens (sell), before fees.

    Formula:
        reserve_out = reserve * (1 - (1 - amount / supply)^(1 / w))

    Selling the entire supply releases the entire reserve.

    Args:
        supply: Current token supply (must be positive)
        reserve: Current reserve balance (must be positive)
        crr_ppm: Reserve ratio in parts per million
        amount: Tokens to burn

    Returns:
        Gross reserve amount released, rounded down

    Raises:
        BoundsError: If crr_ppm is out of bounds or amount exceeds supply
        DomainError: If supply or reserve is not positive, or amount is negative
    """
    _validate_curve(supply, reserve, crr_ppm)
    if amount < 0:
        raise DomainError("amount cannot be negative", parameter="amount", value=amount)
    if amount > supply:
        raise BoundsError.above("amount", amount, supply)
    if amount == 0:
        return 0
    if amount == supply:
        return reserve

    # base = (supply - amount) / supply (rounded up for a conservative estimate)
    base = Fixed.ratio_up(supply - amount, supply)

    # exponent = 1 / w (rounded down)
    exponent = Fixed.ratio_down(PPM, crr_ppm)

    # power = base ^ exponent (rounded up)
    power = base.pow_up(exponent)

    # reserve_out = reserve * (1 - power) (rounded down)
    return Fixed(reserve).mul_down(power.complement()).value


def calc_spot_price(supply: int, reserve: int, crr_ppm: int) -> int:
    """Marginal price: reserve / (w * supply).

    Expressed as reserve base units per 10^18 token base units, so with
    18-decimal balances on both sides it reads as an 18-decimal price.
    Returns 0 for zero supply.
    """
    if supply <= 0:
        return 0
    return (reserve * ONE_18 * PPM) // (crr_ppm * supply)


def price_impact_bps(price_before: int, price_after: int) -> int:
    """Relative price move in basis points (0 when there is no prior price)."""
    if price_before <= 0:
        return 0
    return abs(price_after - price_before) * BPS_DENOMINATOR // price_before
