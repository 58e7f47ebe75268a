from services.lending.src.lending.adapters.chainlink.fetcher import (
    MockChainlinkFetcher,
    encode_round,
)


class TestMockChainlinkFetcher:
    """Tests for MockChainlinkFetcher."""

    def test_records_calls(self):
        fetcher = MockChainlinkFetcher()

        fetcher.fetch_latest_round("0xFeed")

        assert fetcher.call_history == ["0xFeed"]

    def test_returns_empty_when_not_set(self):
        assert MockChainlinkFetcher().fetch_latest_round("0xfeed") == {}

    def test_lookup_ignores_address_case(self):
        fetcher = MockChainlinkFetcher()
        fetcher.set_mock_response("0xABC", {"result": "0x"})

        assert fetcher.fetch_latest_round("0xabc") == {"result": "0x"}

    def test_set_round_builds_rpc_response(self):
        fetcher = MockChainlinkFetcher()
        fetcher.set_round("0xfeed", answer=100_000_000, updated_at=1700000000)

        response = fetcher.fetch_latest_round("0xfeed")

        assert response["jsonrpc"] == "2.0"
        assert response["result"] == encode_round(1, 100_000_000, 1700000000)


class TestEncodeRound:

    def test_five_words(self):
        encoded = encode_round(7, 1, 2)
        assert encoded.startswith("0x")
        assert len(encoded) == 2 + 5 * 64

    def test_negative_answer_is_twos_complement(self):
        encoded = encode_round(1, -1, 0)
        assert encoded[2 + 64 : 2 + 128] == "f" * 64
