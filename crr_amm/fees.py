"""Trade fee calculation.

The trade fee is charged on the principal leg of a trade: the reserve paid
in on a buy, the gross reserve released on a sell. A share of that fee
(protocol_fee_bps of it) is routed to the treasury and held outside the
reserve; the remainder stays in the reserve and accrues to token holders.

Uses SafeInt so a fee can never exceed the amount it is charged on.
"""

from dataclasses import dataclass

from crr_amm.safe_int import S


@dataclass(frozen=True)
class FeeBreakdown:
    """Split of a trade fee.

    Attributes:
        amount: Principal the fee was charged on
        total: Total trade fee (amount * trade_fee_bps / 10_000, rounded down)
        protocol_share: Part of the fee routed to the treasury
        reserve_share: Part of the fee retained in the reserve
    """

    amount: int
    total: int
    protocol_share: int
    reserve_share: int

    @property
    def net(self) -> int:
        """Principal after the trade fee."""
        return self.amount - self.total

    @classmethod
    def none(cls, amount: int) -> "FeeBreakdown":
        """A fee-free breakdown."""
        return cls(amount=amount, total=0, protocol_share=0, reserve_share=0)


def calculate_trade_fee(amount: int, trade_fee_bps: int, protocol_fee_bps: int) -> FeeBreakdown:
    """Compute the trade fee on amount and its treasury/reserve split.

    Args:
        amount: Principal leg of the trade
        trade_fee_bps: Trade fee rate in basis points
        protocol_fee_bps: Treasury share of the fee in basis points

    Returns:
        FeeBreakdown with total, protocol_share and reserve_share
    """
    if amount <= 0 or trade_fee_bps == 0:
        return FeeBreakdown.none(amount)

    total = S(amount).bps(trade_fee_bps)
    protocol_share = total.bps(protocol_fee_bps)
    reserve_share = total - protocol_share

    return FeeBreakdown(
        amount=amount,
        total=total.value,
        protocol_share=protocol_share.value,
        reserve_share=reserve_share.value,
    )
