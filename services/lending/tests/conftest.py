"""Shared fixtures: a pool on a controllable clock with static prices, and an API client over it."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from services.lending.src.lending.db.engine import init_db
from services.lending.src.lending.domain.custody import InMemoryCustody
from services.lending.src.lending.domain.math import WAD, apr_to_ray_per_sec
from services.lending.src.lending.domain.models import RiskParams
from services.lending.src.lending.domain.oracle import StaticPriceOracle
from services.lending.src.lending.domain.pool import LendingPool
from services.lending.src.lending.main import app
from services.lending.src.lending.routes.deps import get_db_engine, get_lending_pool
from services.lending.src.lending.service import persistence_listener

START = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_params(**overrides) -> RiskParams:
    values = dict(
        decimals=18,
        reserve_factor_bps=1000,
        ltv_bps=7500,
        liquidation_threshold_bps=8000,
        liquidation_bonus_bps=500,
        close_factor_bps=5000,
        is_borrowable=True,
        optimal_utilization_bps=8000,
        base_rate_ray_per_sec=0,
        slope1_ray_per_sec=0,
        slope2_ray_per_sec=0,
    )
    values.update(overrides)
    return RiskParams(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def oracle(clock):
    oracle = StaticPriceOracle(clock=clock)
    oracle.set_asset_price("WETH", 1600 * WAD)
    oracle.set_asset_price("DAI", 1 * WAD)
    oracle.set_asset_price("USDC", 1 * WAD)
    return oracle


@pytest.fixture
def custody():
    return InMemoryCustody()


@pytest.fixture
def events():
    return []


@pytest.fixture
def pool(oracle, custody, clock, events):
    """WETH (collateral only), DAI and USDC (borrowable, kinked curves) reserves."""
    pool = LendingPool(oracle, custody, clock)
    pool.init_reserve("WETH", make_params(is_borrowable=False))
    pool.init_reserve(
        "DAI",
        make_params(
            slope1_ray_per_sec=apr_to_ray_per_sec(Decimal("0.04")),
            slope2_ray_per_sec=apr_to_ray_per_sec(Decimal("0.75")),
        ),
    )
    pool.init_reserve(
        "USDC",
        make_params(
            decimals=6,
            reserve_factor_bps=500,
            ltv_bps=8000,
            liquidation_threshold_bps=8500,
            slope1_ray_per_sec=apr_to_ray_per_sec(Decimal("0.04")),
            slope2_ray_per_sec=apr_to_ray_per_sec(Decimal("0.60")),
        ),
    )
    pool.add_listener(events.append)
    return pool


@pytest.fixture
def fund(custody):
    """Credit native units to an account: fund(account, asset, amount)."""
    return custody.mint


@pytest.fixture
def borrower(pool, fund):
    """
    Scenario B position: 50 WETH supplied at $1600, 30,000 DAI borrowed.

    A separate lender provides 100,000 DAI of liquidity.
    """
    fund("lender", "DAI", 100_000 * WAD)
    pool.lend("lender", "DAI", 100_000 * WAD)
    fund("alice", "WETH", 50 * WAD)
    pool.lend("alice", "WETH", 50 * WAD)
    pool.borrow("alice", "DAI", 30_000 * WAD)
    return "alice"


@pytest.fixture
def engine():
    """In-memory database shared across threads (the test client runs endpoints off-thread)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def client(pool, engine):
    """API client bound to the test pool, persisting events to the test database."""
    pool.add_listener(persistence_listener(engine))
    app.dependency_overrides[get_lending_pool] = lambda: pool
    app.dependency_overrides[get_db_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()
