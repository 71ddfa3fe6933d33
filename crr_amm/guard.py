"""Maximum single-trade size relative to the reserve.

Capping each trade at a fraction of the reserve bounds the price move a
single transaction can cause, which limits what a flash-loan funded or
sandwiching trader can extract in one step.
"""

from crr_amm.constants import BPS_DENOMINATOR, DEFAULT_MAX_TRADE_BPS, MAX_TRADE_BPS_LIMIT
from crr_amm.errors import BoundsError, check_range
from crr_amm.lifecycle import CallContext, LifecycleStateMachine, Role
from crr_amm.models.records import MaxTradeBpsUpdated


def _validate_max_trade_bps(max_trade_bps: int) -> int:
    return check_range("max_trade_bps", max_trade_bps, 1, MAX_TRADE_BPS_LIMIT)


class TradeGuard:
    """Rejects trades larger than max_trade_bps of the pre-trade reserve.

    The reserve-denominated magnitude of a trade is its gross reserve input
    for buys and the reserve paid out after fees for sells. A trade equal
    to the limit passes; one unit above fails.
    """

    def __init__(
        self,
        authority: LifecycleStateMachine,
        max_trade_bps: int = DEFAULT_MAX_TRADE_BPS,
    ) -> None:
        self._authority = authority
        self._max_trade_bps = _validate_max_trade_bps(max_trade_bps)

    @property
    def max_trade_bps(self) -> int:
        return self._max_trade_bps

    def limit(self, reserve_balance: int) -> int:
        """Largest trade magnitude allowed against reserve_balance."""
        return reserve_balance * self._max_trade_bps // BPS_DENOMINATOR

    def check(self, amount: int, reserve_balance: int) -> None:
        """Raise BoundsError if amount exceeds the limit for reserve_balance."""
        limit = self.limit(reserve_balance)
        if amount > limit:
            error = BoundsError.above("trade_amount", amount, limit)
            error.details["max_trade_bps"] = self._max_trade_bps
            error.details["reserve_balance"] = reserve_balance
            raise error

    def set_max_trade_bps(self, ctx: CallContext, max_trade_bps: int) -> MaxTradeBpsUpdated:
        """Governor-only update, 0 < max_trade_bps <= MAX_TRADE_BPS_LIMIT."""
        self._authority.require_role(ctx, Role.GOVERNOR)
        previous = self._max_trade_bps
        self._max_trade_bps = _validate_max_trade_bps(max_trade_bps)
        return MaxTradeBpsUpdated(
            previous_bps=previous,
            max_trade_bps=self._max_trade_bps,
            updated_by=ctx.caller,
        )

    def snapshot(self) -> int:
        return self._max_trade_bps

    def restore(self, saved: int) -> None:
        self._max_trade_bps = saved
