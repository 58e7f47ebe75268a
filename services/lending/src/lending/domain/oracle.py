"""USD price sources (1e18-scaled) consumed by the risk engine."""

import logging
import threading
import time
from typing import Callable, Protocol

from services.lending.src.lending.domain.errors import PriceUnavailable

logger = logging.getLogger(__name__)


class PriceOracle(Protocol):
    def price_usd_1e18(self, asset: str) -> int:
        """Return the asset's USD price scaled by 1e18.

        Raises:
            PriceUnavailable: If the price is unset, non-positive or stale.
        """
        ...


def wall_clock() -> int:
    return int(time.time())


class StaticPriceOracle:
    """Settable price table with an optional staleness bound (0 disables it)."""

    def __init__(self, max_stale_seconds: int = 0, clock: Callable[[], int] = wall_clock):
        self.max_stale_seconds = max_stale_seconds
        self.clock = clock
        self._prices: dict[str, tuple[int, int]] = {}
        self._lock = threading.Lock()

    def set_asset_price(self, asset: str, price: int, updated_at: int | None = None) -> None:
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        timestamp = self.clock() if updated_at is None else updated_at
        with self._lock:
            old = self._prices.get(asset)
            self._prices[asset] = (price, timestamp)
        logger.info(f"Price updated for {asset}: {old[0] if old else None} -> {price}")

    def price_usd_1e18(self, asset: str) -> int:
        entry = self._prices.get(asset)
        if entry is None:
            raise PriceUnavailable(asset)
        price, updated_at = entry
        if self.max_stale_seconds and self.clock() - updated_at > self.max_stale_seconds:
            raise PriceUnavailable(asset, f"stale since {updated_at}")
        return price
