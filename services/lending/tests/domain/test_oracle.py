import pytest

from services.lending.src.lending.domain.errors import PriceUnavailable
from services.lending.src.lending.domain.math import WAD
from services.lending.src.lending.domain.oracle import StaticPriceOracle

from conftest import FakeClock


class TestStaticPriceOracle:

    def test_unset_price_is_unavailable(self):
        with pytest.raises(PriceUnavailable) as exc_info:
            StaticPriceOracle().price_usd_1e18("WETH")
        assert exc_info.value.asset == "WETH"

    def test_set_and_read(self):
        oracle = StaticPriceOracle()
        oracle.set_asset_price("WETH", 1600 * WAD)
        assert oracle.price_usd_1e18("WETH") == 1600 * WAD

    @pytest.mark.parametrize("price", [0, -1])
    def test_non_positive_price_rejected(self, price):
        with pytest.raises(ValueError):
            StaticPriceOracle().set_asset_price("WETH", price)

    def test_stale_price_is_unavailable(self):
        clock = FakeClock()
        oracle = StaticPriceOracle(max_stale_seconds=3600, clock=clock)
        oracle.set_asset_price("WETH", 1600 * WAD)

        clock.advance(3600)
        assert oracle.price_usd_1e18("WETH") == 1600 * WAD

        clock.advance(1)
        with pytest.raises(PriceUnavailable):
            oracle.price_usd_1e18("WETH")
