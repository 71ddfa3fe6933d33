"""Tests for PoolRegistry."""

import pytest

from crr_amm.assets import InMemoryLedger, InMemoryToken
from crr_amm.config import Settings
from crr_amm.errors import ValidationError
from crr_amm.registry import PoolRegistry
from tests.helpers import POOL, TOKEN, FakeClock, make_config, make_pool

OTHER_TOKEN = "0x7000000000000000000000000000000000000007"
OTHER_POOL = "0x8000000000000000000000000000000000000008"


def _create(registry: PoolRegistry, pool_id: str, token: str, address: str):
    ledger = InMemoryLedger()
    issued = InMemoryToken()
    issued.authorize_minter(address)
    return registry.create(
        make_config(pool_id=pool_id, token=token, address=address),
        ledger.handle(address),
        issued.minter(address),
        clock=FakeClock(),
    )


class TestPoolRegistry:
    def test_starts_empty(self):
        registry = PoolRegistry()
        assert len(registry) == 0
        assert registry.pool_ids == []

    def test_initial_pools(self):
        harness = make_pool()
        registry = PoolRegistry([harness.engine])
        assert registry.get("test-pool") is harness.engine
        assert "test-pool" in registry

    def test_create_and_lookup(self):
        registry = PoolRegistry()
        alpha = _create(registry, "alpha", TOKEN, POOL)
        beta = _create(registry, "beta", OTHER_TOKEN, OTHER_POOL)

        assert registry.require("alpha") is alpha
        assert registry.get_by_token(OTHER_TOKEN) is beta
        assert registry.get_by_token("0x" + OTHER_TOKEN[2:].upper()) is beta
        assert set(registry.pool_ids) == {"alpha", "beta"}
        assert list(registry) == [alpha, beta]

    def test_missing_pool(self):
        registry = PoolRegistry()
        assert registry.get("missing") is None
        assert registry.get_by_token(TOKEN) is None
        with pytest.raises(ValidationError, match="Unknown pool"):
            registry.require("missing")

    def test_duplicate_pool_id(self):
        registry = PoolRegistry()
        _create(registry, "alpha", TOKEN, POOL)
        with pytest.raises(ValidationError, match="Pool id already registered"):
            _create(registry, "alpha", OTHER_TOKEN, OTHER_POOL)
        assert len(registry) == 1

    def test_one_pool_per_token(self):
        registry = PoolRegistry()
        _create(registry, "alpha", TOKEN, POOL)
        with pytest.raises(ValidationError, match="Token already has a pool"):
            _create(registry, "beta", TOKEN, OTHER_POOL)

    def test_event_log_capacity_from_settings(self):
        registry = PoolRegistry(settings=Settings(event_log_capacity=2))
        pool = _create(registry, "alpha", TOKEN, POOL)
        assert pool.events.capacity == 2
