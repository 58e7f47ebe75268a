"""Asset custody collaborator.

The pool never touches token balances directly: it records the movements an
operation needs and hands them to custody in one batch at commit time.
Custody moves exactly the requested amounts or raises without moving
anything.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Protocol, Sequence

from services.lending.src.lending.domain.errors import TransferFailed

logger = logging.getLogger(__name__)

POOL_ACCOUNT = "pool"


@dataclass(frozen=True)
class Movement:
    """Transfer of ``amount`` native units of ``asset`` between an account and the pool."""

    asset: str
    account: str
    amount: int
    inbound: bool  # True: account -> pool, False: pool -> account


class AssetCustody(Protocol):
    def settle(self, movements: Sequence[Movement]) -> None:
        ...


class InMemoryCustody:
    """Wallet book keyed by (account, asset), in native units."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def mint(self, account: str, asset: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("mint amount must be non-negative")
        with self._lock:
            key = (account, asset)
            self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, account: str, asset: str) -> int:
        return self._balances.get((account, asset), 0)

    def settle(self, movements: Sequence[Movement]) -> None:
        with self._lock:
            staged = dict(self._balances)
            for m in movements:
                if m.amount < 0:
                    raise TransferFailed(f"negative transfer of {m.asset}")
                source, target = (
                    (m.account, POOL_ACCOUNT) if m.inbound else (POOL_ACCOUNT, m.account)
                )
                available = staged.get((source, m.asset), 0)
                if available < m.amount:
                    raise TransferFailed(
                        f"{source} holds {available} {m.asset}, needs {m.amount}"
                    )
                staged[(source, m.asset)] = available - m.amount
                staged[(target, m.asset)] = staged.get((target, m.asset), 0) + m.amount
            self._balances = staged
        logger.debug(f"Settled {len(movements)} custody movements")
