"""Registry of bonding-curve pools.

Pools are keyed by pool id, with a secondary index by issued token. Each
pool serializes its own operations; the registry lock only guards the
registry's indexes, so trades on different pools never contend.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

import structlog

from crr_amm.assets.base import FungibleAsset, TokenMinter
from crr_amm.config import DEFAULT_SETTINGS, PoolConfig, Settings
from crr_amm.engine import BondingCurveEngine, Clock
from crr_amm.errors import ValidationError
from crr_amm.events import EventLog
from crr_amm.models.types import normalize_address

logger = structlog.get_logger()


class PoolRegistry:
    """Pool-id keyed lookup of BondingCurveEngine instances."""

    def __init__(
        self,
        pools: list[BondingCurveEngine] | None = None,
        settings: Settings = DEFAULT_SETTINGS,
    ) -> None:
        """Initialize the registry with optional pools.

        Args:
            pools: Initial pools. If None, starts empty.
            settings: Runtime settings applied to pools created here
        """
        self.settings = settings
        self._pools: dict[str, BondingCurveEngine] = {}
        # Secondary index: issued token address -> pool id
        self._pools_by_token: dict[str, str] = {}
        self._lock = threading.Lock()

        if pools:
            for pool in pools:
                self.add(pool)

    def create(
        self,
        config: PoolConfig,
        reserve_asset: FungibleAsset,
        token: TokenMinter,
        *,
        clock: Clock | None = None,
    ) -> BondingCurveEngine:
        """Build a pool from config and register it.

        Raises:
            ValidationError: If the pool id or token is already registered
            BoundsError: If a configured parameter is out of bounds
        """
        pool = BondingCurveEngine(
            config,
            reserve_asset,
            token,
            clock=clock,
            event_log=EventLog(capacity=self.settings.event_log_capacity),
        )
        self.add(pool)
        return pool

    def add(self, pool: BondingCurveEngine) -> None:
        """Register an existing pool.

        Raises:
            ValidationError: If the pool id or token is already registered
        """
        token = normalize_address(pool.config.token)
        with self._lock:
            if pool.pool_id in self._pools:
                raise ValidationError("Pool id already registered", pool_id=pool.pool_id)
            if token in self._pools_by_token:
                raise ValidationError(
                    "Token already has a pool",
                    token=token,
                    pool_id=self._pools_by_token[token],
                )
            self._pools[pool.pool_id] = pool
            self._pools_by_token[token] = pool.pool_id
        logger.debug("pool_registered", pool_id=pool.pool_id, token=token[-8:])

    def get(self, pool_id: str) -> BondingCurveEngine | None:
        with self._lock:
            return self._pools.get(pool_id)

    def require(self, pool_id: str) -> BondingCurveEngine:
        """Get a pool by id.

        Raises:
            ValidationError: If no pool has this id
        """
        pool = self.get(pool_id)
        if pool is None:
            raise ValidationError("Unknown pool", pool_id=pool_id)
        return pool

    def get_by_token(self, token: str) -> BondingCurveEngine | None:
        """Get the pool issuing token (any address case)."""
        with self._lock:
            pool_id = self._pools_by_token.get(normalize_address(token))
            return self._pools.get(pool_id) if pool_id is not None else None

    @property
    def pool_ids(self) -> list[str]:
        with self._lock:
            return list(self._pools)

    def __contains__(self, pool_id: object) -> bool:
        with self._lock:
            return pool_id in self._pools

    def __iter__(self) -> Iterator[BondingCurveEngine]:
        with self._lock:
            pools = list(self._pools.values())
        return iter(pools)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)
