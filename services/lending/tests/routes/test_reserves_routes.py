"""Tests for reserves API endpoints."""

import time

from services.lending.src.lending.domain.math import RAY, WAD


class TestListReserves:

    def test_lists_configured_reserves(self, client):
        response = client.get("/api/reserves")

        assert response.status_code == 200
        assert [r["asset"] for r in response.json()] == ["DAI", "USDC", "WETH"]

    def test_big_integers_are_strings(self, client, borrower):
        data = client.get("/api/reserves/DAI").json()

        assert data["cash"] == str(70_000 * WAD)
        assert data["total_debt"] == str(30_000 * WAD)
        assert data["borrow_index"] == str(RAY)
        assert data["params"]["ltv_bps"] == 7500


class TestGetReserve:

    def test_unknown_asset_is_404(self, client):
        response = client.get("/api/reserves/NOPE")

        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "AssetNotInitialized"

    def test_projects_interest_without_mutating(self, client, pool, borrower, clock):
        clock.advance(86400)

        data = client.get("/api/reserves/DAI").json()

        assert int(data["borrow_index"]) > RAY
        assert pool._store.reserve("DAI").borrow_index == RAY


class TestAccrue:

    def test_accrue_updates_indices(self, client, pool, borrower, clock):
        clock.advance(86400)

        response = client.post("/api/reserves/DAI/accrue")

        assert response.status_code == 200
        assert response.json()["last_update"] == clock.now
        assert pool._store.reserve("DAI").borrow_index > RAY

    def test_accrue_allowed_while_paused(self, client, pool, clock):
        pool.pause()
        clock.advance(60)

        assert client.post("/api/reserves/DAI/accrue").status_code == 200


class TestRateCurve:

    def test_samples_requested_points(self, client):
        data = client.get("/api/reserves/DAI/rate-curve", params={"points": 5}).json()

        assert data["optimal_utilization_bps"] == 8000
        assert [p["utilization"] for p in data["points"]] == [
            "0",
            str(WAD // 4),
            str(WAD // 2),
            str(3 * WAD // 4),
            str(WAD),
        ]
        assert data["points"][0]["borrow_rate"] == "0"

    def test_rejects_single_point(self, client):
        response = client.get("/api/reserves/DAI/rate-curve", params={"points": 1})

        assert response.status_code == 422


class TestHistory:

    def test_returns_recorded_observations(self, client, clock):
        clock.now = int(time.time())
        client.post("/api/reserves/DAI/accrue")

        data = client.get("/api/reserves/DAI/history").json()

        assert data["asset"] == "DAI"
        assert [u["timestamp"] for u in data["updates"]] == [clock.now]

    def test_unknown_asset_is_404(self, client):
        assert client.get("/api/reserves/NOPE/history").status_code == 404
