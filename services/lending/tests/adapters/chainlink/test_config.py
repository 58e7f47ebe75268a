from decimal import Decimal

import pytest

from services.lending.src.lending.adapters.chainlink.config import (
    FeedConfig,
    PoolConfig,
    ReserveConfig,
    get_default_config,
)
from services.lending.src.lending.domain.math import WAD, apr_to_ray_per_sec


def make_reserve(**overrides) -> ReserveConfig:
    values = dict(
        asset="DAI",
        decimals=18,
        reserve_factor_bps=1000,
        ltv_bps=7500,
        liquidation_threshold_bps=8000,
        liquidation_bonus_bps=500,
    )
    values.update(overrides)
    return ReserveConfig(**values)


class TestFeedConfig:
    def test_defaults_to_8_decimals(self):
        feed = FeedConfig(asset="DAI", aggregator_address="0xabc")
        assert feed.decimals == 8

    def test_requires_address(self):
        with pytest.raises(Exception):
            FeedConfig(asset="DAI")


class TestReserveConfig:
    def test_converts_aprs_to_ray_per_second(self):
        reserve = make_reserve(slope1_apr=Decimal("0.04"), slope2_apr=Decimal("0.75"))

        params = reserve.to_risk_params()

        assert params.slope1_ray_per_sec == apr_to_ray_per_sec(Decimal("0.04"))
        assert params.slope2_ray_per_sec == apr_to_ray_per_sec(Decimal("0.75"))
        assert params.base_rate_ray_per_sec == 0
        assert params.close_factor_bps == 5000

    def test_seed_price(self):
        assert make_reserve(price_usd=Decimal("1600.5")).seed_price_1e18() == 16005 * WAD // 10
        assert make_reserve().seed_price_1e18() is None


class TestPoolConfig:
    def test_lookup_by_asset(self):
        config = PoolConfig(
            reserves=[make_reserve()],
            feeds=[FeedConfig(asset="DAI", aggregator_address="0xabc")],
        )

        assert config.get_reserve("DAI").asset == "DAI"
        assert config.get_feed("DAI").aggregator_address == "0xabc"
        assert config.get_reserve("USDC") is None
        assert config.get_feed("USDC") is None


class TestDefaultConfig:
    def test_has_expected_reserves(self):
        config = get_default_config()
        assert [r.asset for r in config.reserves] == ["USDC", "DAI", "WETH"]

    def test_every_reserve_has_a_feed_and_seed_price(self):
        config = get_default_config()
        for reserve in config.reserves:
            assert config.get_feed(reserve.asset) is not None
            assert reserve.seed_price_1e18() is not None

    def test_default_params_are_valid(self):
        for reserve in get_default_config().reserves:
            reserve.to_risk_params().validate()

    def test_weth_is_collateral_only(self):
        assert not get_default_config().get_reserve("WETH").is_borrowable
