import pytest

from services.lending.src.lending.domain.custody import (
    POOL_ACCOUNT,
    InMemoryCustody,
    Movement,
)
from services.lending.src.lending.domain.errors import TransferFailed


@pytest.fixture
def custody():
    custody = InMemoryCustody()
    custody.mint("alice", "DAI", 100)
    return custody


class TestInMemoryCustody:

    def test_settle_moves_both_directions(self, custody):
        custody.settle([Movement("DAI", "alice", 60, inbound=True)])
        custody.settle([Movement("DAI", "bob", 10, inbound=False)])

        assert custody.balance_of("alice", "DAI") == 40
        assert custody.balance_of(POOL_ACCOUNT, "DAI") == 50
        assert custody.balance_of("bob", "DAI") == 10

    def test_failed_batch_moves_nothing(self, custody):
        batch = [
            Movement("DAI", "alice", 100, inbound=True),
            Movement("DAI", "bob", 101, inbound=False),
        ]
        with pytest.raises(TransferFailed):
            custody.settle(batch)

        assert custody.balance_of("alice", "DAI") == 100
        assert custody.balance_of(POOL_ACCOUNT, "DAI") == 0

    def test_batch_can_spend_what_it_received(self, custody):
        custody.settle(
            [
                Movement("DAI", "alice", 100, inbound=True),
                Movement("DAI", "bob", 100, inbound=False),
            ]
        )

        assert custody.balance_of("bob", "DAI") == 100

    def test_negative_mint_rejected(self, custody):
        with pytest.raises(ValueError):
            custody.mint("alice", "DAI", -1)
