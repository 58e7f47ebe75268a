"""Commit-or-discard staging for ledger mutations.

A ``LedgerTransaction`` overlays the committed store: reads fall through to
committed state, writes land in the overlay. Nothing is visible outside the
transaction until ``commit`` swaps the overlay in. Dropping the transaction
discards every staged mutation, including accruals, custody movements and
events.
"""

import threading
from dataclasses import dataclass, field

from services.lending.src.lending.domain import position_ledger, reserve_ledger
from services.lending.src.lending.domain.custody import Movement
from services.lending.src.lending.domain.errors import AssetNotInitialized
from services.lending.src.lending.domain.math import Rounding, to_native
from services.lending.src.lending.domain.models import (
    PoolEvent,
    Reserve,
    ReserveUpdated,
    UserPosition,
)


@dataclass
class LedgerStore:
    """Committed ledger state."""

    reserves: dict[str, Reserve] = field(default_factory=dict)
    # user -> asset -> position
    positions: dict[str, dict[str, UserPosition]] = field(default_factory=dict)
    commit_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def reserve(self, asset: str) -> Reserve:
        reserve = self.reserves.get(asset)
        if reserve is None:
            raise AssetNotInitialized(asset)
        return reserve

    def position(self, user: str, asset: str) -> UserPosition:
        return self.positions.get(user, {}).get(asset) or UserPosition(user=user, asset=asset)

    def assets_of(self, user: str) -> set[str]:
        return set(self.positions.get(user, {}))


class LedgerTransaction:
    def __init__(self, store: LedgerStore, now: int):
        self._store = store
        self.now = now
        self._reserves: dict[str, Reserve] = {}
        self._positions: dict[tuple[str, str], UserPosition] = {}
        self.events: list[PoolEvent] = []
        self.observations: list[ReserveUpdated] = []
        self.movements: list[Movement] = []

    # -- reads -------------------------------------------------------------

    def reserve(self, asset: str) -> Reserve:
        if asset in self._reserves:
            return self._reserves[asset]
        return self._store.reserve(asset)

    def position(self, user: str, asset: str) -> UserPosition:
        staged = self._positions.get((user, asset))
        if staged is not None:
            return staged
        return self._store.position(user, asset)

    def positions_of(self, user: str) -> list[UserPosition]:
        assets = self._store.assets_of(user)
        assets.update(a for (u, a) in self._positions if u == user)
        return [self.position(user, asset) for asset in sorted(assets)]

    # -- writes ------------------------------------------------------------

    def put_reserve(self, reserve: Reserve) -> None:
        self._reserves[reserve.asset] = reserve

    def put_position(self, position: UserPosition) -> None:
        self._positions[(position.user, position.asset)] = position

    def accrue(self, asset: str) -> Reserve:
        reserve, observation = reserve_ledger.accrue(self.reserve(asset), self.now)
        if observation is not None:
            self.put_reserve(reserve)
            self.observations.append(observation)
        return reserve

    def settle(self, user: str, asset: str) -> tuple[Reserve, UserPosition]:
        """Accrue the reserve and crystallise the user's position against it."""
        reserve = self.accrue(asset)
        position = position_ledger.settle(self.position(user, asset), reserve)
        self.put_position(position)
        return reserve, position

    def pull(self, account: str, reserve: Reserve, amount: int) -> None:
        """Record an inbound transfer; the payer covers rounding."""
        native = to_native(amount, reserve.params.decimals, Rounding.UP)
        self.movements.append(Movement(reserve.asset, account, native, inbound=True))

    def push(self, account: str, reserve: Reserve, amount: int) -> None:
        """Record an outbound transfer; the receiver bears rounding."""
        native = to_native(amount, reserve.params.decimals, Rounding.DOWN)
        self.movements.append(Movement(reserve.asset, account, native, inbound=False))

    def emit(self, event: PoolEvent) -> None:
        self.events.append(event)

    def commit(self) -> None:
        # Replace per-user dicts rather than mutating them so unlocked readers
        # iterating a user's positions always see a complete version.
        by_user: dict[str, dict[str, UserPosition]] = {}
        for (user, asset), position in self._positions.items():
            by_user.setdefault(user, {})[asset] = position
        with self._store.commit_lock:
            self._store.reserves.update(self._reserves)
            for user, staged in by_user.items():
                self._store.positions[user] = {**self._store.positions.get(user, {}), **staged}
