import os
from decimal import Decimal

from pydantic import BaseModel, Field

from services.lending.src.lending.domain.math import WAD, apr_to_ray_per_sec
from services.lending.src.lending.domain.models import RiskParams

RPC_URL = os.environ.get("RPC_URL", "")


class FeedConfig(BaseModel):
    asset: str
    aggregator_address: str = Field(..., description="Chainlink aggregator proxy address")
    decimals: int = 8


class ReserveConfig(BaseModel):
    asset: str
    decimals: int
    reserve_factor_bps: int
    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int
    close_factor_bps: int = 5000
    is_borrowable: bool = True
    optimal_utilization_bps: int = 8000
    # Annual rates, converted to RAY per second at init
    base_rate_apr: Decimal = Decimal("0")
    slope1_apr: Decimal = Decimal("0")
    slope2_apr: Decimal = Decimal("0")
    # Seed price for the in-memory oracle when no RPC is configured
    price_usd: Decimal | None = None

    def to_risk_params(self) -> RiskParams:
        return RiskParams(
            decimals=self.decimals,
            reserve_factor_bps=self.reserve_factor_bps,
            ltv_bps=self.ltv_bps,
            liquidation_threshold_bps=self.liquidation_threshold_bps,
            liquidation_bonus_bps=self.liquidation_bonus_bps,
            close_factor_bps=self.close_factor_bps,
            is_borrowable=self.is_borrowable,
            optimal_utilization_bps=self.optimal_utilization_bps,
            base_rate_ray_per_sec=apr_to_ray_per_sec(self.base_rate_apr),
            slope1_ray_per_sec=apr_to_ray_per_sec(self.slope1_apr),
            slope2_ray_per_sec=apr_to_ray_per_sec(self.slope2_apr),
        )

    def seed_price_1e18(self) -> int | None:
        if self.price_usd is None:
            return None
        return int(self.price_usd * WAD)


class PoolConfig(BaseModel):
    rpc_url: str = ""
    reserves: list[ReserveConfig]
    feeds: list[FeedConfig] = []

    def get_reserve(self, asset: str) -> ReserveConfig | None:
        for reserve in self.reserves:
            if reserve.asset == asset:
                return reserve
        return None

    def get_feed(self, asset: str) -> FeedConfig | None:
        for feed in self.feeds:
            if feed.asset == asset:
                return feed
        return None


def get_default_config() -> PoolConfig:
    """Default pool: USDC and DAI borrowable, WETH collateral-only, mainnet USD feeds."""
    return PoolConfig(
        rpc_url=RPC_URL,
        reserves=[
            ReserveConfig(
                asset="USDC",
                decimals=6,
                reserve_factor_bps=500,
                ltv_bps=8000,
                liquidation_threshold_bps=8500,
                liquidation_bonus_bps=500,
                slope1_apr=Decimal("0.04"),
                slope2_apr=Decimal("0.60"),
                price_usd=Decimal("1"),
            ),
            ReserveConfig(
                asset="DAI",
                decimals=18,
                reserve_factor_bps=1000,
                ltv_bps=7500,
                liquidation_threshold_bps=8000,
                liquidation_bonus_bps=500,
                slope1_apr=Decimal("0.04"),
                slope2_apr=Decimal("0.75"),
                price_usd=Decimal("1"),
            ),
            ReserveConfig(
                asset="WETH",
                decimals=18,
                reserve_factor_bps=1000,
                ltv_bps=8000,
                liquidation_threshold_bps=8500,
                liquidation_bonus_bps=500,
                is_borrowable=False,
                price_usd=Decimal("1600"),
            ),
        ],
        feeds=[
            FeedConfig(
                asset="USDC",
                aggregator_address="0x8fffffd4afb6115b954bd326cbe7b4ba576818f6",  # USDC / USD
            ),
            FeedConfig(
                asset="DAI",
                aggregator_address="0xaed0c38402a5d19df6e4c03f4e2dced6e29c1ee9",  # DAI / USD
            ),
            FeedConfig(
                asset="WETH",
                aggregator_address="0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419",  # ETH / USD
            ),
        ],
    )
