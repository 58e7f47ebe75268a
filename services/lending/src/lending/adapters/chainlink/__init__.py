from services.lending.src.lending.adapters.chainlink.config import (
    PoolConfig,
    ReserveConfig,
    get_default_config,
)
from services.lending.src.lending.adapters.chainlink.oracle import (
    ChainlinkRpcOracle,
    FeedError,
)

__all__ = [
    "ChainlinkRpcOracle",
    "FeedError",
    "PoolConfig",
    "ReserveConfig",
    "get_default_config",
]
