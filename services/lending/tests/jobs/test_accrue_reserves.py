"""Tests for accrue_reserves job."""

import sys
from contextlib import nullcontext

import httpx
from sqlalchemy import create_engine

from services.lending.src.lending.db.engine import init_db
from services.lending.src.lending.db.repository import ReserveUpdateRepository
from services.lending.src.lending.domain.errors import PriceUnavailable
from services.lending.src.lending.domain.math import RAY
from services.lending.src.lending.jobs.accrue_reserves import (
    accrue_all_reserves,
    accrue_via_api,
    main,
)
from services.lending.src.lending.service import persistence_listener


class TestAccrueAllReserves:

    def test_reports_borrow_index_per_asset(self, pool, borrower, clock):
        clock.advance(86400)

        results = accrue_all_reserves(pool)

        assert set(results) == {"DAI", "USDC", "WETH"}
        assert results["DAI"] > RAY
        assert results["USDC"] == RAY
        assert pool.reserve_state("DAI").last_update == clock.now

    def test_failure_is_reported_per_asset(self, pool, clock, monkeypatch):
        accrue = pool.accrue

        def flaky(asset):
            if asset == "USDC":
                raise PriceUnavailable(asset)
            return accrue(asset)

        monkeypatch.setattr(pool, "accrue", flaky)
        clock.advance(60)

        results = accrue_all_reserves(pool)

        assert results["USDC"] == -1
        assert results["DAI"] == RAY

    def test_runs_while_paused(self, pool, clock):
        pool.pause()
        clock.advance(60)

        results = accrue_all_reserves(pool)

        assert all(index >= 0 for index in results.values())

    def test_observations_are_persisted(self, pool, borrower, clock):
        engine = create_engine("sqlite:///:memory:")
        init_db(engine)
        pool.add_listener(persistence_listener(engine))
        clock.advance(3600)

        accrue_all_reserves(pool)

        latest = ReserveUpdateRepository(engine).get_latest("DAI")
        assert latest.timestamp == clock.now
        assert latest.borrow_index == pool.reserve_state("DAI").borrow_index


class TestAccrueViaApi:

    def test_accrues_the_service_pool(self, client, pool, borrower, clock, engine):
        clock.advance(86400)

        results = accrue_via_api(client)

        assert set(results) == {"DAI", "USDC", "WETH"}
        assert results["DAI"] > RAY
        assert results["DAI"] == pool.reserve_state("DAI").borrow_index
        latest = ReserveUpdateRepository(engine).get_latest("DAI")
        assert latest.timestamp == clock.now
        assert latest.borrow_index == results["DAI"]

    def test_failed_reserve_is_reported(self, client, pool, clock, monkeypatch):
        accrue = pool.accrue

        def flaky(asset):
            if asset == "WETH":
                raise PriceUnavailable(asset)
            return accrue(asset)

        monkeypatch.setattr(pool, "accrue", flaky)
        clock.advance(60)

        results = accrue_via_api(client)

        assert results["WETH"] == -1
        assert results["DAI"] == RAY


class TestMain:

    def test_unreachable_service_exits_nonzero(self, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        real_client = httpx.Client
        monkeypatch.setattr(
            httpx,
            "Client",
            lambda **kwargs: real_client(transport=httpx.MockTransport(refuse), **kwargs),
        )
        monkeypatch.setattr(sys, "argv", ["accrue_reserves", "--api-url", "http://keeper.test"])

        assert main() == 1

    def test_exit_code_reflects_failures(self, client, pool, clock, monkeypatch):
        monkeypatch.setattr(httpx, "Client", lambda **kwargs: nullcontext(client))
        monkeypatch.setattr(sys, "argv", ["accrue_reserves"])
        clock.advance(60)

        assert main() == 0

        def down(asset):
            raise PriceUnavailable(asset)

        monkeypatch.setattr(pool, "accrue", down)

        assert main() == 1
