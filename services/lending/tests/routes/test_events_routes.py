"""Tests for events API endpoint."""

from services.lending.src.lending.domain.math import WAD


class TestGetEvents:

    def test_empty(self, client):
        data = client.get("/api/events").json()

        assert data == {"events": [], "counts": {}}

    def test_committed_actions_are_listed(self, client, pool, borrower):
        data = client.get("/api/events").json()

        assert data["counts"] == {"supply": 2, "borrow": 1}
        assert data["events"][0]["event_type"] == "borrow"
        assert data["events"][0]["amount"] == str(30_000 * WAD)

    def test_filter_by_type(self, client, borrower):
        data = client.get("/api/events", params={"event_type": "borrow"}).json()

        assert len(data["events"]) == 1
        assert data["events"][0]["user_address"] == "alice"
        assert data["events"][0]["amount"] == str(30_000 * WAD)

    def test_failed_action_records_nothing(self, client):
        client.post("/api/actions/lend", json={"user": "carol", "asset": "DAI", "amount": WAD})

        assert client.get("/api/events").json()["counts"] == {}
