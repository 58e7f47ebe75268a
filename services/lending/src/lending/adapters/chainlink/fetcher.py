from typing import Any

import httpx

# keccak256("latestRoundData()")[:4]
LATEST_ROUND_DATA_SELECTOR = "0xfeaf968c"


class ChainlinkFetcher:
    """Reads aggregator rounds over Ethereum JSON-RPC ``eth_call``."""

    def __init__(self, rpc_url: str, timeout: float = 10.0):
        self.rpc_url = rpc_url
        self.timeout = timeout

    def fetch_latest_round(self, aggregator_address: str) -> dict[str, Any]:
        """Return the raw JSON-RPC response for ``latestRoundData()``."""
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "eth_call",
                    "params": [
                        {"to": aggregator_address, "data": LATEST_ROUND_DATA_SELECTOR},
                        "latest",
                    ],
                },
            )
            response.raise_for_status()
            return response.json()


class MockChainlinkFetcher(ChainlinkFetcher):
    """Mock fetcher for testing without network calls."""

    def __init__(self, mock_data: dict[str, Any] | None = None):
        super().__init__("http://mock")
        self.mock_data = mock_data or {}
        self.call_history: list[str] = []

    def set_mock_response(self, aggregator_address: str, response: dict[str, Any]) -> None:
        self.mock_data[aggregator_address.lower()] = response

    def set_round(
        self,
        aggregator_address: str,
        answer: int,
        updated_at: int,
        round_id: int = 1,
    ) -> None:
        """Store a well-formed response encoding the given round."""
        self.set_mock_response(
            aggregator_address,
            {"jsonrpc": "2.0", "id": 1, "result": encode_round(round_id, answer, updated_at)},
        )

    def fetch_latest_round(self, aggregator_address: str) -> dict[str, Any]:
        self.call_history.append(aggregator_address)
        return self.mock_data.get(aggregator_address.lower(), {})


def encode_round(round_id: int, answer: int, updated_at: int) -> str:
    """ABI-encode a ``latestRoundData`` return tuple (answer as int256)."""
    words = [
        round_id,
        answer % (1 << 256),
        updated_at,
        updated_at,
        round_id,
    ]
    return "0x" + "".join(f"{word:064x}" for word in words)
