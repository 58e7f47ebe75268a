"""Tests for pool action endpoints."""

import pytest

from services.lending.src.lending.domain.math import WAD

from conftest import make_params


def post(client, action, **body):
    return client.post(f"/api/actions/{action}", json=body)


@pytest.fixture
def funded(client):
    """alice: 50 WETH collateral; bob: 100,000 DAI liquidity."""
    post(client, "mint", account="alice", asset="WETH", amount=50 * WAD)
    post(client, "lend", user="alice", asset="WETH", amount=50 * WAD)
    post(client, "mint", account="bob", asset="DAI", amount=100_000 * WAD)
    post(client, "lend", user="bob", asset="DAI", amount=100_000 * WAD)
    return client


class TestLendAndWithdraw:

    def test_lend_creates_collateral_position(self, funded):
        data = funded.get("/api/accounts/alice").json()

        assert data["collateral_value_usd"] == str(80_000 * WAD)
        assert data["health_factor"] is None
        assert data["positions"][0]["use_as_collateral"] is True

    def test_lend_without_funds_is_rejected(self, client):
        response = post(client, "lend", user="carol", asset="DAI", amount=WAD)

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "TransferFailed"

    def test_zero_amount_is_rejected(self, funded):
        response = post(funded, "lend", user="alice", asset="WETH", amount=0)

        assert response.json()["detail"]["kind"] == "InvalidAmount"

    def test_withdraw_all(self, funded, custody):
        response = post(funded, "withdraw", user="alice", asset="WETH", amount="all")

        assert response.json() == {"action": "withdraw", "amount": str(50 * WAD)}
        assert custody.balance_of("alice", "WETH") == 50 * WAD

    def test_unparseable_amount_is_422(self, funded):
        response = post(funded, "withdraw", user="alice", asset="WETH", amount="most")

        assert response.status_code == 422


class TestBorrowAndRepay:

    def test_borrow_then_repay_all(self, funded, pool):
        assert post(funded, "borrow", user="alice", asset="DAI", amount=1000 * WAD).status_code == 200

        response = post(funded, "repay", payer="alice", asset="DAI", amount="all")

        assert response.json()["amount"] == str(1000 * WAD)
        assert pool.get_borrow_balance("alice", "DAI") == 0

    def test_repay_on_behalf(self, funded, pool):
        post(funded, "borrow", user="alice", asset="DAI", amount=1000 * WAD)

        response = post(
            funded, "repay", payer="bob", asset="DAI", amount=400 * WAD, on_behalf_of="alice"
        )

        assert response.json()["amount"] == str(400 * WAD)
        assert pool.get_borrow_balance("alice", "DAI") == 600 * WAD

    def test_unsafe_borrow_is_rejected(self, funded):
        response = post(funded, "borrow", user="alice", asset="DAI", amount=64_001 * WAD)

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "HealthFactorTooLow"

    def test_collateral_only_asset(self, funded):
        response = post(funded, "borrow", user="bob", asset="WETH", amount=WAD)

        assert response.json()["detail"]["kind"] == "AssetNotBorrowable"

    def test_paused_pool_is_423(self, funded, pool):
        pool.pause()

        response = post(funded, "borrow", user="alice", asset="DAI", amount=WAD)

        assert response.status_code == 423
        assert response.json()["detail"]["kind"] == "PoolPaused"


class TestCollateral:

    def test_cannot_disable_backing_collateral(self, funded):
        post(funded, "borrow", user="alice", asset="DAI", amount=1000 * WAD)

        response = post(funded, "collateral", user="alice", asset="WETH", enabled=False)

        assert response.json()["detail"]["kind"] == "HealthFactorTooLow"

    def test_toggle_without_debt(self, funded):
        response = post(funded, "collateral", user="alice", asset="WETH", enabled=False)

        assert response.json() == {"action": "collateral", "amount": None}
        assert funded.get("/api/accounts/alice").json()["collateral_value_usd"] == "0"


class TestLiquidate:

    def test_liquidation_returns_amounts_as_strings(self, funded, oracle):
        post(funded, "borrow", user="alice", asset="DAI", amount=30_000 * WAD)
        oracle.set_asset_price("WETH", 650 * WAD)
        post(funded, "mint", account="liq", asset="DAI", amount=30_000 * WAD)

        response = post(
            funded,
            "liquidate",
            liquidator="liq",
            borrower="alice",
            debt_asset="DAI",
            collateral_asset="WETH",
            amount="all",
        )

        data = response.json()
        assert response.status_code == 200
        assert data["debt_repaid"] == str(15_000 * WAD)
        assert data["health_factor_before"] == "866666666666666666"

    def test_healthy_account(self, funded):
        post(funded, "borrow", user="alice", asset="DAI", amount=1000 * WAD)

        response = post(
            funded,
            "liquidate",
            liquidator="liq",
            borrower="alice",
            debt_asset="DAI",
            collateral_asset="WETH",
            amount="all",
        )

        assert response.json()["detail"]["kind"] == "NotLiquidatable"


class TestMint:

    def test_unknown_asset_is_404(self, client):
        response = post(client, "mint", account="alice", asset="NOPE", amount=1)

        assert response.status_code == 404

    def test_non_positive_amount_is_422(self, client):
        assert post(client, "mint", account="alice", asset="DAI", amount=0).status_code == 422


class TestAccounts:

    def test_unpriced_collateral_is_503(self, client, pool):
        pool.init_reserve("ODD", make_params())
        post(client, "mint", account="alice", asset="ODD", amount=WAD)
        post(client, "lend", user="alice", asset="ODD", amount=WAD)

        response = client.get("/api/accounts/alice")

        assert response.status_code == 503
        assert response.json()["detail"]["kind"] == "PriceUnavailable"

    def test_single_position(self, funded):
        data = funded.get("/api/accounts/bob/positions/DAI").json()

        assert data["current_supply"] == str(100_000 * WAD)
        assert data["current_borrow"] == "0"

    def test_position_in_unknown_asset_is_404(self, client):
        assert client.get("/api/accounts/bob/positions/NOPE").status_code == 404
