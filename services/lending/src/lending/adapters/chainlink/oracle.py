"""Price oracle backed by Chainlink aggregators read over JSON-RPC."""

import logging
from typing import Any, Callable

import httpx

from services.lending.src.lending.adapters.chainlink.config import FeedConfig, PoolConfig
from services.lending.src.lending.adapters.chainlink.fetcher import ChainlinkFetcher
from services.lending.src.lending.domain.errors import PriceUnavailable
from services.lending.src.lending.domain.oracle import wall_clock

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Raised when a JSON-RPC response is missing or malformed."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing or malformed field: {field}")


def decode_latest_round(response: dict[str, Any]) -> tuple[int, int]:
    """
    Decode a ``latestRoundData()`` eth_call response.

    Returns:
        (answer, updated_at); answer is signed, in the feed's own decimals

    Raises:
        FeedError: If the response carries an error or an unexpected payload
    """
    if response.get("error"):
        raise FeedError("error")
    result = response.get("result")
    if not isinstance(result, str) or not result.startswith("0x"):
        raise FeedError("result")
    payload = result[2:]
    if len(payload) < 64 * 5:
        raise FeedError("result")
    try:
        words = [int(payload[i : i + 64], 16) for i in range(0, 64 * 5, 64)]
    except ValueError as e:
        raise FeedError("result") from e

    answer = words[1]
    if answer >= 1 << 255:
        answer -= 1 << 256
    return answer, words[3]


def scale_to_1e18(answer: int, decimals: int) -> int:
    if decimals <= 18:
        return answer * 10 ** (18 - decimals)
    return answer // 10 ** (decimals - 18)


class ChainlinkRpcOracle:
    """
    USD prices from Chainlink aggregators.

    Every lookup reads the latest round; there is no caching. A transport
    failure, malformed response, non-positive answer or a round older than
    ``max_stale_seconds`` (0 disables the check) surfaces as PriceUnavailable.
    """

    def __init__(
        self,
        config: PoolConfig,
        fetcher_factory=ChainlinkFetcher,
        max_stale_seconds: int = 0,
        clock: Callable[[], int] = wall_clock,
    ):
        self.config = config
        self.fetcher = fetcher_factory(config.rpc_url)
        self.max_stale_seconds = max_stale_seconds
        self.clock = clock

    def _feed(self, asset: str) -> FeedConfig:
        feed = self.config.get_feed(asset)
        if feed is None:
            raise PriceUnavailable(asset, "no feed configured")
        return feed

    def price_usd_1e18(self, asset: str) -> int:
        feed = self._feed(asset)
        try:
            response = self.fetcher.fetch_latest_round(feed.aggregator_address)
            answer, updated_at = decode_latest_round(response)
        except httpx.HTTPError as e:
            logger.error(f"Feed request failed for {asset}: {e}")
            raise PriceUnavailable(asset, f"feed request failed: {e}") from e
        except FeedError as e:
            logger.error(f"Bad feed response for {asset}: {e}")
            raise PriceUnavailable(asset, str(e)) from e

        if answer <= 0:
            raise PriceUnavailable(asset, f"non-positive answer {answer}")
        if self.max_stale_seconds and self.clock() - updated_at > self.max_stale_seconds:
            raise PriceUnavailable(asset, f"stale since {updated_at}")
        return scale_to_1e18(answer, feed.decimals)
