"""Pool lifecycle: pause state, initial bonding round, roles and parameters.

Two independent axes describe a pool:

- Phase: IBR_ACTIVE until ibr_end, then IBR_ENDED. Time-driven, never reverts.
  During the initial bonding round only buys are accepted.
- PoolState: ACTIVE or PAUSED, toggled by the governor. Pausing blocks buys
  and sells only; fee deposits, treasury withdrawals, parameter updates and
  queries stay available.

Capabilities are checked against an explicit CallContext. The governor role
has a single holder and is transferred, not shared; fee depositors are
granted and revoked by the governor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crr_amm.constants import (
    MAX_CRR_PPM,
    MAX_PROTOCOL_FEE_BPS,
    MAX_TRADE_FEE_BPS,
    MIN_CRR_PPM,
)
from crr_amm.errors import AuthorizationError, StateError, ValidationError, check_range
from crr_amm.models.records import (
    GovernorTransferred,
    ParametersUpdated,
    Paused,
    RoleGranted,
    RoleRevoked,
    TreasuryUpdated,
    Unpaused,
)
from crr_amm.models.types import require_address


class PoolState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class Phase(str, Enum):
    IBR_ACTIVE = "ibr_active"
    IBR_ENDED = "ibr_ended"


class Role(str, Enum):
    GOVERNOR = "governor"
    FEE_DEPOSITOR = "fee_depositor"


@dataclass(frozen=True)
class CallContext:
    """Identity of the account invoking a pool operation."""

    caller: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "caller", require_address("caller", self.caller))


@dataclass(frozen=True)
class CurveParameters:
    """Governance-bounded pricing parameters."""

    crr_ppm: int
    trade_fee_bps: int
    protocol_fee_bps: int

    def __post_init__(self) -> None:
        check_range("crr_ppm", self.crr_ppm, MIN_CRR_PPM, MAX_CRR_PPM)
        check_range("trade_fee_bps", self.trade_fee_bps, 0, MAX_TRADE_FEE_BPS)
        check_range("protocol_fee_bps", self.protocol_fee_bps, 0, MAX_PROTOCOL_FEE_BPS)


@dataclass(frozen=True)
class _LifecycleState:
    state: PoolState
    params: CurveParameters
    governor: str
    treasury: str
    fee_depositors: frozenset[str]


class LifecycleStateMachine:
    """Pause/IBR state, role registry and curve parameters of one pool."""

    def __init__(
        self,
        governor: str,
        treasury: str,
        params: CurveParameters,
        ibr_end: int,
    ) -> None:
        self._governor = require_address("governor", governor)
        self._treasury = require_address("treasury", treasury)
        self._params = params
        self._ibr_end = ibr_end
        self._state = PoolState.ACTIVE
        self._fee_depositors: set[str] = set()

    # -- queries --------------------------------------------------------------

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def paused(self) -> bool:
        return self._state is PoolState.PAUSED

    @property
    def params(self) -> CurveParameters:
        return self._params

    @property
    def governor(self) -> str:
        return self._governor

    @property
    def treasury(self) -> str:
        return self._treasury

    @property
    def ibr_end(self) -> int:
        return self._ibr_end

    def phase(self, now: int) -> Phase:
        return Phase.IBR_ENDED if now >= self._ibr_end else Phase.IBR_ACTIVE

    def sells_enabled(self, now: int) -> bool:
        return self.phase(now) is Phase.IBR_ENDED

    def has_role(self, role: Role, account: str) -> bool:
        account = account.lower()
        if role is Role.GOVERNOR:
            return account == self._governor
        return account in self._fee_depositors

    # -- gates ----------------------------------------------------------------

    def require_role(self, ctx: CallContext, *roles: Role) -> None:
        """Raise AuthorizationError unless the caller holds one of roles."""
        if any(self.has_role(role, ctx.caller) for role in roles):
            return
        raise AuthorizationError(
            "Caller lacks required role",
            caller=ctx.caller,
            required=",".join(role.value for role in roles),
        )

    def require_active(self) -> None:
        if self.paused:
            raise StateError("Pool is paused", state=self._state.value)

    def require_sells_enabled(self, now: int) -> None:
        if not self.sells_enabled(now):
            raise StateError(
                "Sells are disabled during the initial bonding round",
                ibr_end=self._ibr_end,
                now=now,
                remaining=self._ibr_end - now,
            )

    # -- transitions ----------------------------------------------------------

    def pause(self, ctx: CallContext) -> Paused:
        self.require_role(ctx, Role.GOVERNOR)
        if self.paused:
            raise StateError("Pool is already paused", state=self._state.value)
        self._state = PoolState.PAUSED
        return Paused(account=ctx.caller)

    def unpause(self, ctx: CallContext) -> Unpaused:
        self.require_role(ctx, Role.GOVERNOR)
        if not self.paused:
            raise StateError("Pool is not paused", state=self._state.value)
        self._state = PoolState.ACTIVE
        return Unpaused(account=ctx.caller)

    def set_parameters(
        self,
        ctx: CallContext,
        crr_ppm: int,
        trade_fee_bps: int,
        protocol_fee_bps: int,
    ) -> ParametersUpdated:
        """Replace the curve parameters; each is checked against its bounds."""
        self.require_role(ctx, Role.GOVERNOR)
        self._params = CurveParameters(
            crr_ppm=crr_ppm,
            trade_fee_bps=trade_fee_bps,
            protocol_fee_bps=protocol_fee_bps,
        )
        return ParametersUpdated(
            crr_ppm=crr_ppm,
            trade_fee_bps=trade_fee_bps,
            protocol_fee_bps=protocol_fee_bps,
            updated_by=ctx.caller,
        )

    def set_treasury(self, ctx: CallContext, treasury: str) -> TreasuryUpdated:
        self.require_role(ctx, Role.GOVERNOR)
        treasury = require_address("treasury", treasury)
        previous, self._treasury = self._treasury, treasury
        return TreasuryUpdated(previous_treasury=previous, treasury=treasury)

    def transfer_governance(self, ctx: CallContext, new_governor: str) -> GovernorTransferred:
        """Hand the governor role to new_governor. The caller loses it."""
        self.require_role(ctx, Role.GOVERNOR)
        new_governor = require_address("new_governor", new_governor)
        previous, self._governor = self._governor, new_governor
        return GovernorTransferred(previous_governor=previous, governor=new_governor)

    def grant_role(self, ctx: CallContext, role: Role, account: str) -> RoleGranted:
        self.require_role(ctx, Role.GOVERNOR)
        self._require_grantable(role)
        account = require_address("account", account)
        if account in self._fee_depositors:
            raise StateError("Account already holds role", role=role.value, account=account)
        self._fee_depositors.add(account)
        return RoleGranted(role=role.value, account=account, granted_by=ctx.caller)

    def revoke_role(self, ctx: CallContext, role: Role, account: str) -> RoleRevoked:
        self.require_role(ctx, Role.GOVERNOR)
        self._require_grantable(role)
        account = require_address("account", account)
        if account not in self._fee_depositors:
            raise StateError("Account does not hold role", role=role.value, account=account)
        self._fee_depositors.discard(account)
        return RoleRevoked(role=role.value, account=account, revoked_by=ctx.caller)

    @staticmethod
    def _require_grantable(role: Role) -> None:
        if role is Role.GOVERNOR:
            raise ValidationError(
                "Governor role is transferred with transfer_governance", role=role.value
            )

    # -- rollback support -----------------------------------------------------

    def snapshot(self) -> _LifecycleState:
        return _LifecycleState(
            state=self._state,
            params=self._params,
            governor=self._governor,
            treasury=self._treasury,
            fee_depositors=frozenset(self._fee_depositors),
        )

    def restore(self, saved: _LifecycleState) -> None:
        self._state = saved.state
        self._params = saved.params
        self._governor = saved.governor
        self._treasury = saved.treasury
        self._fee_depositors = set(saved.fee_depositors)
