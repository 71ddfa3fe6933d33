"""Mathematical utilities for the bonding curve.

This package provides:
- Fixed: 18-decimal fixed-point arithmetic with bounded ln/exp/pow
- curve: purchase/sale return, spot price, and price impact formulas
"""

from crr_amm.math.curve import (
    calc_purchase_return,
    calc_sale_return,
    calc_spot_price,
    price_impact_bps,
)
from crr_amm.math.fixed_point import Fixed, exp, ln, pow_raw

__all__ = [
    "Fixed",
    "ln",
    "exp",
    "pow_raw",
    "calc_purchase_return",
    "calc_sale_return",
    "calc_spot_price",
    "price_impact_bps",
]
