"""Bonding-curve engine: quotes and atomic trade execution for one pool.

A pool issues a token against a reserve asset held at a constant reserve
ratio. Buys deposit reserve and mint tokens; sells burn tokens and release
reserve. Every mutating operation:

1. runs under the pool's lock and rejects re-entry from collaborator
   callbacks,
2. validates deadline, lifecycle state and trade size before any effect,
3. applies internal state changes first, then calls the reserve asset and
   token (each completed call registers a compensating action),
4. on any failure restores internal state and runs compensations in
   reverse, so the pool either commits fully or is left unchanged,
5. publishes an immutable PoolSnapshot for quotes and appends its records
   to the event log; subscribers are notified after the lock is released.

Quotes price against the last published snapshot and never take the lock.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog

from crr_amm.accounting import FeeTotals, ReserveAccountant
from crr_amm.assets.base import FungibleAsset, TokenMinter
from crr_amm.config import PoolConfig
from crr_amm.constants import MAX_IBR_DURATION, MIN_IBR_DURATION, UINT256_MAX
from crr_amm.errors import (
    AMMError,
    BoundsError,
    ExpiredError,
    SlippageError,
    StateError,
    ValidationError,
    check_range,
)
from crr_amm.events import EventLog, Subscriber
from crr_amm.fees import FeeBreakdown, calculate_trade_fee
from crr_amm.guard import TradeGuard
from crr_amm.lifecycle import CallContext, CurveParameters, LifecycleStateMachine, Phase, Role
from crr_amm.math.curve import (
    calc_purchase_return,
    calc_sale_return,
    calc_spot_price,
    price_impact_bps,
)
from crr_amm.models.pool import PoolSnapshot, PoolStateView, TradeInfo
from crr_amm.models.records import (
    Direction,
    FeesDeposited,
    PoolEvent,
    Quote,
    TradeExecuted,
    TreasuryWithdrawn,
)
from crr_amm.models.types import require_address

logger = structlog.get_logger()

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


def _require_amount(name: str, amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{name} must be an integer", parameter=name, value=amount)
    if amount <= 0:
        raise ValidationError("Amount must be > 0", parameter=name, value=amount)
    if amount > UINT256_MAX:
        raise BoundsError.above(name, amount, UINT256_MAX)


def _require_minimum(name: str, minimum: int) -> None:
    if isinstance(minimum, bool) or not isinstance(minimum, int) or minimum < 0:
        raise ValidationError(f"{name} must be a non-negative integer", parameter=name, value=minimum)


def _require_seeded(state: PoolSnapshot) -> None:
    if state.reserve_balance <= 0 or state.token_supply <= 0:
        raise StateError(
            "Pool is not seeded",
            reserve_balance=state.reserve_balance,
            token_supply=state.token_supply,
        )


def _price_buy(state: PoolSnapshot, reserve_in: int) -> tuple[int, FeeBreakdown]:
    """Tokens minted for reserve_in, and the fee charged on it."""
    fee = calculate_trade_fee(reserve_in, state.trade_fee_bps, state.protocol_fee_bps)
    tokens_out = calc_purchase_return(state.token_supply, state.reserve_balance, state.crr_ppm, fee.net)
    return tokens_out, fee


def _price_sell(state: PoolSnapshot, tokens_in: int) -> FeeBreakdown:
    """Fee breakdown on the gross reserve released by burning tokens_in.

    fee.amount is the gross output, fee.net what the seller receives.
    """
    if tokens_in > state.token_supply:
        raise BoundsError.above("tokens_in", tokens_in, state.token_supply)
    gross_out = calc_sale_return(state.token_supply, state.reserve_balance, state.crr_ppm, tokens_in)
    return calculate_trade_fee(gross_out, state.trade_fee_bps, state.protocol_fee_bps)


class _Transaction:
    """Pending effects of one mutating operation."""

    def __init__(self, now: int, restore: Callable[[], None]) -> None:
        self.now = now
        self.events: list[PoolEvent] = []
        self.committed: list[PoolEvent] = []
        self._restore = restore
        self._compensations: list[tuple[str, Callable[[], None]]] = []

    def emit(self, event: PoolEvent) -> None:
        self.events.append(event)

    def on_rollback(self, label: str, action: Callable[[], None]) -> None:
        self._compensations.append((label, action))

    def rollback(self, pool_id: str) -> None:
        for label, action in reversed(self._compensations):
            try:
                action()
            except Exception:
                logger.exception("compensation_failed", pool_id=pool_id, action=label)
        self._restore()


class BondingCurveEngine:
    """Prices and executes trades for a single CRR pool.

    Args:
        config: Pool creation parameters
        reserve_asset: Reserve asset handle bound to config.address
        token: Issued token with mint/burn rights for the pool
        clock: Returns the current unix time in seconds
        event_log: Destination for committed records (a new unbounded log by default)
    """

    def __init__(
        self,
        config: PoolConfig,
        reserve_asset: FungibleAsset,
        token: TokenMinter,
        *,
        clock: Clock | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self.config = config
        self._clock = clock or system_clock
        self._asset = reserve_asset
        self._token = token

        ibr_duration = check_range("ibr_duration", config.ibr_duration, MIN_IBR_DURATION, MAX_IBR_DURATION)
        self.created_at = self._clock()
        params = CurveParameters(
            crr_ppm=config.crr_ppm,
            trade_fee_bps=config.trade_fee_bps,
            protocol_fee_bps=config.protocol_fee_bps,
        )
        self._lifecycle = LifecycleStateMachine(
            governor=config.governor,
            treasury=config.treasury,
            params=params,
            ibr_end=self.created_at + ibr_duration,
        )
        self._guard = TradeGuard(self._lifecycle, config.max_trade_bps)
        self._accountant = ReserveAccountant(self._lifecycle)
        self._events = event_log if event_log is not None else EventLog()

        self._lock = threading.RLock()
        self._active_operation: str | None = None
        self._snapshot = self._capture_state()

        logger.info(
            "pool_created",
            pool_id=self.pool_id,
            crr_ppm=params.crr_ppm,
            trade_fee_bps=params.trade_fee_bps,
            protocol_fee_bps=params.protocol_fee_bps,
            max_trade_bps=self._guard.max_trade_bps,
            ibr_end=self._lifecycle.ibr_end,
        )

    # -- identity and components ----------------------------------------------

    @property
    def pool_id(self) -> str:
        return self.config.pool_id

    @property
    def address(self) -> str:
        return self.config.address

    @property
    def lifecycle(self) -> LifecycleStateMachine:
        return self._lifecycle

    @property
    def guard(self) -> TradeGuard:
        return self._guard

    @property
    def events(self) -> EventLog:
        return self._events

    # -- state publication ----------------------------------------------------

    def _capture_state(self, version: int = 0) -> PoolSnapshot:
        params = self._lifecycle.params
        return PoolSnapshot(
            reserve_balance=self._accountant.reserve_balance,
            token_supply=self._token.total_supply(),
            crr_ppm=params.crr_ppm,
            trade_fee_bps=params.trade_fee_bps,
            protocol_fee_bps=params.protocol_fee_bps,
            max_trade_bps=self._guard.max_trade_bps,
            paused=self._lifecycle.paused,
            ibr_end=self._lifecycle.ibr_end,
            version=version,
        )

    @property
    def snapshot(self) -> PoolSnapshot:
        """Last committed pool state."""
        return self._snapshot

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[_Transaction]:
        """Run operation atomically under the pool lock."""
        with self._lock:
            if self._active_operation is not None:
                logger.warning(
                    "reentrant_call_rejected",
                    pool_id=self.pool_id,
                    operation=operation,
                    active_operation=self._active_operation,
                )
                raise StateError(
                    "Reentrant call rejected",
                    operation=operation,
                    active_operation=self._active_operation,
                )
            self._active_operation = operation
            accountant_state = self._accountant.snapshot()
            lifecycle_state = self._lifecycle.snapshot()
            guard_state = self._guard.snapshot()

            def restore() -> None:
                self._accountant.restore(accountant_state)
                self._lifecycle.restore(lifecycle_state)
                self._guard.restore(guard_state)

            tx = _Transaction(now=self._clock(), restore=restore)
            try:
                yield tx
                snapshot = self._capture_state(version=self._snapshot.version + 1)
                tx.committed = [self._events.record(e, self.pool_id, tx.now) for e in tx.events]
                self._snapshot = snapshot
            except Exception as e:
                tx.rollback(self.pool_id)
                logger.warning(
                    "operation_rejected",
                    pool_id=self.pool_id,
                    operation=operation,
                    error=type(e).__name__,
                    reason=e.message if isinstance(e, AMMError) else str(e),
                )
                raise
            finally:
                self._active_operation = None
        self._events.notify(tx.committed)

    @staticmethod
    def _check_deadline(deadline: int, now: int) -> None:
        if now > deadline:
            raise ExpiredError("Transaction expired", deadline=deadline, now=now, late_by=now - deadline)

    def _require_backed(self) -> None:
        self._accountant.require_backed(self._asset.balance_of(self.address))

    def _pull(self, tx: _Transaction, owner: str, amount: int) -> None:
        """Move amount from owner into the pool; refunded if the operation fails.

        Raises:
            StateError: If the pool's held balance did not grow by exactly amount
        """
        held_before = self._asset.balance_of(self.address)
        self._asset.transfer_from(owner, self.address, amount)
        received = self._asset.balance_of(self.address) - held_before
        if received > 0:
            tx.on_rollback("refund_reserve", lambda: self._asset.transfer(owner, received))
        if received != amount:
            raise StateError(
                "Reserve asset delivered an unexpected amount",
                expected=amount,
                received=received,
            )
        self._require_backed()

    # -- quotes ---------------------------------------------------------------

    def quote_buy(self, reserve_in: int) -> int:
        """Tokens a buy of reserve_in would mint at the current state."""
        return self.preview_buy(reserve_in).amount_out

    def quote_sell(self, tokens_in: int) -> int:
        """Reserve a sell of tokens_in would pay out, after the trade fee."""
        return self.preview_sell(tokens_in).amount_out

    def preview_buy(self, reserve_in: int) -> Quote:
        """Full quote for a buy: output, fee, spot price before/after, impact."""
        _require_amount("reserve_in", reserve_in)
        state = self._snapshot
        _require_seeded(state)
        tokens_out, fee = _price_buy(state, reserve_in)
        spot_after = calc_spot_price(
            state.token_supply + tokens_out,
            state.reserve_balance + reserve_in - fee.protocol_share,
            state.crr_ppm,
        )
        quote = Quote(
            direction=Direction.BUY,
            amount_in=reserve_in,
            amount_out=tokens_out,
            fee=fee.total,
            spot_price_before=state.spot_price,
            spot_price_after=spot_after,
            price_impact_bps=price_impact_bps(state.spot_price, spot_after),
        )
        logger.debug("buy_quoted", pool_id=self.pool_id, reserve_in=reserve_in, tokens_out=tokens_out)
        return quote

    def preview_sell(self, tokens_in: int) -> Quote:
        """Full quote for a sell. Selling the whole supply is 10000 bps of impact."""
        _require_amount("tokens_in", tokens_in)
        state = self._snapshot
        _require_seeded(state)
        fee = _price_sell(state, tokens_in)
        spot_after = calc_spot_price(
            state.token_supply - tokens_in,
            state.reserve_balance - (fee.amount - fee.reserve_share),
            state.crr_ppm,
        )
        quote = Quote(
            direction=Direction.SELL,
            amount_in=tokens_in,
            amount_out=fee.net,
            fee=fee.total,
            spot_price_before=state.spot_price,
            spot_price_after=spot_after,
            price_impact_bps=price_impact_bps(state.spot_price, spot_after),
        )
        logger.debug("sell_quoted", pool_id=self.pool_id, tokens_in=tokens_in, reserve_out=fee.net)
        return quote

    # -- trading --------------------------------------------------------------

    def buy(
        self,
        ctx: CallContext,
        reserve_in: int,
        min_tokens_out: int,
        recipient: str,
        deadline: int,
    ) -> TradeExecuted:
        """Deposit reserve_in and mint tokens to recipient.

        Raises:
            ExpiredError: now > deadline
            StateError: Pool paused or not seeded, or reentrant call
            BoundsError: reserve_in exceeds the trade guard limit
            ValidationError: Zero amount, bad recipient, or zero output
            SlippageError: Output below min_tokens_out
        """
        _require_amount("reserve_in", reserve_in)
        _require_minimum("min_tokens_out", min_tokens_out)
        recipient = require_address("recipient", recipient)

        with self._mutation("buy") as tx:
            self._check_deadline(deadline, tx.now)
            self._lifecycle.require_active()
            state = self._capture_state()
            _require_seeded(state)
            self._guard.check(reserve_in, state.reserve_balance)

            tokens_out, fee = _price_buy(state, reserve_in)
            if tokens_out == 0:
                raise ValidationError("Trade output is zero", reserve_in=reserve_in)
            if tokens_out < min_tokens_out:
                raise SlippageError(
                    "Insufficient output amount",
                    amount_out=tokens_out,
                    minimum=min_tokens_out,
                    shortfall=min_tokens_out - tokens_out,
                )

            reserve_delta = self._accountant.credit_buy(reserve_in, fee)

            self._pull(tx, ctx.caller, reserve_in)
            self._token.mint(recipient, tokens_out)

            reserve_after = self._accountant.reserve_balance
            supply_after = state.token_supply + tokens_out
            tx.emit(
                TradeExecuted(
                    trader=ctx.caller,
                    recipient=recipient,
                    direction=Direction.BUY,
                    amount_in=reserve_in,
                    amount_out=tokens_out,
                    fee=fee.total,
                    protocol_fee=fee.protocol_share,
                    reserve_delta=reserve_delta,
                    supply_delta=tokens_out,
                    spot_price_before=state.spot_price,
                    spot_price_after=calc_spot_price(supply_after, reserve_after, state.crr_ppm),
                    reserve_after=reserve_after,
                    supply_after=supply_after,
                )
            )

        trade = tx.committed[0]
        self._log_trade(trade)
        return trade

    def sell(
        self,
        ctx: CallContext,
        tokens_in: int,
        min_reserve_out: int,
        recipient: str,
        deadline: int,
    ) -> TradeExecuted:
        """Burn tokens_in from the caller and pay reserve to recipient.

        Raises:
            ExpiredError: now > deadline
            StateError: Pool paused or not seeded, IBR still active, or reentrant call
            BoundsError: tokens_in exceeds supply, or the output after fees
                exceeds the trade guard limit
            ValidationError: Zero amount, bad recipient, or zero output
            SlippageError: Output below min_reserve_out
        """
        _require_amount("tokens_in", tokens_in)
        _require_minimum("min_reserve_out", min_reserve_out)
        recipient = require_address("recipient", recipient)

        with self._mutation("sell") as tx:
            self._check_deadline(deadline, tx.now)
            self._lifecycle.require_active()
            self._lifecycle.require_sells_enabled(tx.now)
            state = self._capture_state()
            _require_seeded(state)

            fee = _price_sell(state, tokens_in)
            self._guard.check(fee.net, state.reserve_balance)
            reserve_out = fee.net
            if reserve_out == 0:
                raise ValidationError("Trade output is zero", tokens_in=tokens_in)
            if reserve_out < min_reserve_out:
                raise SlippageError(
                    "Insufficient output amount",
                    amount_out=reserve_out,
                    minimum=min_reserve_out,
                    shortfall=min_reserve_out - reserve_out,
                )

            reserve_delta = self._accountant.debit_sell(fee.amount, fee)

            self._token.burn(ctx.caller, tokens_in)
            tx.on_rollback("restore_tokens", lambda: self._token.mint(ctx.caller, tokens_in))
            self._asset.transfer(recipient, reserve_out)

            reserve_after = self._accountant.reserve_balance
            supply_after = state.token_supply - tokens_in
            tx.emit(
                TradeExecuted(
                    trader=ctx.caller,
                    recipient=recipient,
                    direction=Direction.SELL,
                    amount_in=tokens_in,
                    amount_out=reserve_out,
                    fee=fee.total,
                    protocol_fee=fee.protocol_share,
                    reserve_delta=reserve_delta,
                    supply_delta=-tokens_in,
                    spot_price_before=state.spot_price,
                    spot_price_after=calc_spot_price(supply_after, reserve_after, state.crr_ppm),
                    reserve_after=reserve_after,
                    supply_after=supply_after,
                )
            )

        trade = tx.committed[0]
        self._log_trade(trade)
        return trade

    def _log_trade(self, trade: TradeExecuted) -> None:
        logger.info(
            "trade_executed",
            pool_id=self.pool_id,
            direction=trade.direction.value,
            trader=trade.trader[-8:],
            amount_in=trade.amount_in,
            amount_out=trade.amount_out,
            fee=trade.fee,
            reserve_after=trade.reserve_after,
            supply_after=trade.supply_after,
            sequence=trade.sequence,
        )

    # -- reserve management ---------------------------------------------------

    def deposit_fees(self, ctx: CallContext, amount: int) -> FeesDeposited:
        """Add amount to the reserve without minting. Allowed while paused."""
        _require_amount("amount", amount)

        with self._mutation("deposit_fees") as tx:
            reserve_after = self._accountant.deposit_fees(ctx, amount)
            self._pull(tx, ctx.caller, amount)
            tx.emit(FeesDeposited(depositor=ctx.caller, amount=amount, reserve_after=reserve_after))

        event = tx.committed[0]
        logger.info(
            "fees_deposited",
            pool_id=self.pool_id,
            depositor=ctx.caller[-8:],
            amount=amount,
            reserve_after=reserve_after,
        )
        return event

    def withdraw_treasury(self, ctx: CallContext, amount: int) -> TreasuryWithdrawn:
        """Pay amount of the treasury surplus to the treasury address."""
        _require_amount("amount", amount)

        with self._mutation("withdraw_treasury") as tx:
            held = self._asset.balance_of(self.address)
            surplus_after = self._accountant.withdraw_treasury(ctx, amount, held)
            treasury = self._lifecycle.treasury
            self._asset.transfer(treasury, amount)
            self._require_backed()
            tx.emit(TreasuryWithdrawn(treasury=treasury, amount=amount, surplus_after=surplus_after))

        event = tx.committed[0]
        logger.info(
            "treasury_withdrawn",
            pool_id=self.pool_id,
            treasury=event.treasury[-8:],
            amount=amount,
            surplus_after=surplus_after,
        )
        return event

    # -- governance -----------------------------------------------------------

    def _govern(self, operation: str, action: Callable[[], PoolEvent]) -> PoolEvent:
        with self._mutation(operation) as tx:
            tx.emit(action())
        event = tx.committed[0]
        logger.info("governance_action", pool_id=self.pool_id, action=event.name, sequence=event.sequence)
        return event

    def pause(self, ctx: CallContext) -> PoolEvent:
        return self._govern("pause", lambda: self._lifecycle.pause(ctx))

    def unpause(self, ctx: CallContext) -> PoolEvent:
        return self._govern("unpause", lambda: self._lifecycle.unpause(ctx))

    def set_parameters(
        self,
        ctx: CallContext,
        crr_ppm: int,
        trade_fee_bps: int,
        protocol_fee_bps: int,
    ) -> PoolEvent:
        """Update CRR and fee rates. Allowed while paused."""
        return self._govern(
            "set_parameters",
            lambda: self._lifecycle.set_parameters(ctx, crr_ppm, trade_fee_bps, protocol_fee_bps),
        )

    def set_max_trade_bps(self, ctx: CallContext, max_trade_bps: int) -> PoolEvent:
        return self._govern("set_max_trade_bps", lambda: self._guard.set_max_trade_bps(ctx, max_trade_bps))

    def set_treasury(self, ctx: CallContext, treasury: str) -> PoolEvent:
        return self._govern("set_treasury", lambda: self._lifecycle.set_treasury(ctx, treasury))

    def transfer_governance(self, ctx: CallContext, new_governor: str) -> PoolEvent:
        return self._govern(
            "transfer_governance", lambda: self._lifecycle.transfer_governance(ctx, new_governor)
        )

    def grant_role(self, ctx: CallContext, role: Role, account: str) -> PoolEvent:
        return self._govern("grant_role", lambda: self._lifecycle.grant_role(ctx, role, account))

    def revoke_role(self, ctx: CallContext, role: Role, account: str) -> PoolEvent:
        return self._govern("revoke_role", lambda: self._lifecycle.revoke_role(ctx, role, account))

    def sync_supply(self) -> PoolSnapshot:
        """Re-read the token supply into the published snapshot."""
        with self._mutation("sync_supply"):
            # The commit re-reads token supply into a new snapshot version
            pass
        return self._snapshot

    # -- views ----------------------------------------------------------------

    def spot_price(self) -> int:
        """Reserve base units per 1e18 token base units (0 when supply is 0)."""
        return self._snapshot.spot_price

    @property
    def reserve_balance(self) -> int:
        return self._snapshot.reserve_balance

    @property
    def token_supply(self) -> int:
        return self._snapshot.token_supply

    def pool_state(self) -> PoolStateView:
        return PoolStateView.from_snapshot(self._snapshot)

    def phase(self) -> Phase:
        return self._lifecycle.phase(self._clock())

    def trade_info(self) -> TradeInfo:
        state = self._snapshot
        return TradeInfo(
            sells_enabled=self._lifecycle.sells_enabled(self._clock()),
            ibr_end=state.ibr_end,
            paused=state.paused,
        )

    def treasury_surplus(self) -> int:
        """Held reserve-asset balance not backing the curve."""
        with self._lock:
            return self._accountant.surplus(self._asset.balance_of(self.address))

    def fee_totals(self) -> FeeTotals:
        return self._accountant.totals

    def trades(self) -> list[TradeExecuted]:
        return self._events.trades()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        return self._events.subscribe(subscriber)
