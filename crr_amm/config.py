"""Pool and runtime configuration.

PoolConfig describes one pool at creation. Field types and address formats
are checked by pydantic on load; numeric bounds (CRR, fees, trade limit,
IBR duration) are enforced by the components that own them and raise
BoundsError with the offending limit.

Settings holds process-wide options read from environment variables:
- CRR_AMM_LOG_LEVEL: Log level name (default: INFO)
- CRR_AMM_LOG_FORMAT: "console" or "json" (default: console)
- CRR_AMM_EVENT_LOG_CAPACITY: Records kept per pool, 0 for unbounded (default: 0)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel, Field

from crr_amm.constants import DEFAULT_IBR_DURATION, DEFAULT_MAX_TRADE_BPS
from crr_amm.models.types import Address


class PoolConfig(BaseModel):
    """Creation parameters of a bonding-curve pool."""

    pool_id: str = Field(min_length=1, alias="poolId")
    address: Address = Field(description="Account holding the pool's reserve.")
    reserve_asset: Address = Field(alias="reserveAsset")
    token: Address
    treasury: Address
    governor: Address
    crr_ppm: int = Field(alias="crrPpm")
    trade_fee_bps: int = Field(alias="tradeFeeBps")
    protocol_fee_bps: int = Field(default=0, alias="protocolFeeBps")
    max_trade_bps: int = Field(default=DEFAULT_MAX_TRADE_BPS, alias="maxTradeBps")
    ibr_duration: int = Field(
        default=DEFAULT_IBR_DURATION,
        alias="ibrDuration",
        description="Seconds after creation during which sells are disabled.",
    )

    model_config = {"populate_by_name": True, "frozen": True, "extra": "forbid"}


_LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class Settings:
    """Process-wide runtime settings.

    Attributes:
        log_level: Minimum level emitted by structlog
        log_format: Renderer, "console" or "json"
        event_log_capacity: Records kept per pool, None for unbounded
    """

    log_level: str = "INFO"
    log_format: str = "console"
    event_log_capacity: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from environment variables, falling back to defaults.

        Raises:
            ValueError: If a variable holds an unusable value
        """
        env = os.environ if environ is None else environ
        log_level = env.get("CRR_AMM_LOG_LEVEL", "INFO").upper()
        log_format = env.get("CRR_AMM_LOG_FORMAT", "console").lower()
        if log_format not in _LOG_FORMATS:
            raise ValueError(f"CRR_AMM_LOG_FORMAT must be one of {_LOG_FORMATS}, got {log_format!r}")
        capacity = int(env.get("CRR_AMM_EVENT_LOG_CAPACITY", "0"))
        if capacity < 0:
            raise ValueError(f"CRR_AMM_EVENT_LOG_CAPACITY must be >= 0, got {capacity}")
        return cls(
            log_level=log_level,
            log_format=log_format,
            event_log_capacity=capacity or None,
        )


# Default settings instance
DEFAULT_SETTINGS = Settings()
