"""Process-wide pool instance and its wiring to the database."""

import logging
import threading

from sqlalchemy.engine import Engine

from services.lending.src.lending.adapters.chainlink.config import (
    PoolConfig,
    get_default_config,
)
from services.lending.src.lending.adapters.chainlink.oracle import ChainlinkRpcOracle
from services.lending.src.lending.config import settings
from services.lending.src.lending.db.events_repository import EventsRepository
from services.lending.src.lending.db.repository import ReserveUpdateRepository
from services.lending.src.lending.domain.models import PoolEvent, ReserveUpdated
from services.lending.src.lending.domain.oracle import PriceOracle, StaticPriceOracle
from services.lending.src.lending.domain.pool import LendingPool, Listener

logger = logging.getLogger(__name__)

_pool: LendingPool | None = None
_pool_lock = threading.Lock()


def build_oracle(config: PoolConfig) -> PriceOracle:
    """Chainlink over RPC when an RPC URL is configured, else seeded static prices."""
    if config.rpc_url:
        logger.info("Using Chainlink RPC price feeds")
        return ChainlinkRpcOracle(config, max_stale_seconds=settings.oracle_max_stale_seconds)

    logger.info("No RPC_URL set; using static seed prices")
    oracle = StaticPriceOracle()
    for reserve in config.reserves:
        price = reserve.seed_price_1e18()
        if price is not None:
            oracle.set_asset_price(reserve.asset, price)
    return oracle


def persistence_listener(engine: Engine) -> Listener:
    """Listener writing committed events and accrual observations to the database."""
    events = EventsRepository(engine)
    updates = ReserveUpdateRepository(engine)

    def persist(item: PoolEvent | ReserveUpdated) -> None:
        if isinstance(item, ReserveUpdated):
            updates.upsert_updates([item])
        else:
            events.insert_events([item])

    return persist


def build_pool(
    config: PoolConfig | None = None,
    oracle: PriceOracle | None = None,
    engine: Engine | None = None,
) -> LendingPool:
    """Create a pool with every configured reserve initialized."""
    config = config or get_default_config()
    pool = LendingPool(oracle if oracle is not None else build_oracle(config))
    for reserve in config.reserves:
        pool.init_reserve(reserve.asset, reserve.to_risk_params())
    if engine is not None:
        pool.add_listener(persistence_listener(engine))
    return pool


def get_pool() -> LendingPool:
    global _pool
    if _pool is not None:
        return _pool
    with _pool_lock:
        if _pool is None:
            engine = None
            if settings.persist_events:
                from services.lending.src.lending.db.engine import get_engine, init_db

                engine = get_engine()
                init_db(engine)
            _pool = build_pool(engine=engine)
    return _pool
