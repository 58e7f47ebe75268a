"""Lending pool facade.

Owns the committed ledger and serialises access to it. Every mutating call
follows the same path: take the per-asset locks, stage the operation in a
``LedgerTransaction``, settle its custody batch, commit, then hand the
buffered events to listeners. An exception anywhere before commit leaves no
trace: the stage is dropped and custody is untouched.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Union

from services.lending.src.lending.domain import (
    liquidation,
    position_ledger,
    reserve_ledger,
)
from services.lending.src.lending.domain.custody import AssetCustody, InMemoryCustody
from services.lending.src.lending.domain.errors import (
    AssetNotInitialized,
    PoolPaused,
    ReserveAlreadyInitialized,
)
from services.lending.src.lending.domain.health_factor import RiskEngine
from services.lending.src.lending.domain.models import (
    AccountSnapshot,
    Amount,
    LiquidationResult,
    PoolEvent,
    Reserve,
    ReserveSnapshot,
    ReserveUpdated,
    RiskParams,
    UserPositionSnapshot,
)
from services.lending.src.lending.domain.oracle import PriceOracle, wall_clock
from services.lending.src.lending.domain.staging import LedgerStore, LedgerTransaction

logger = logging.getLogger(__name__)

Listener = Callable[[Union[PoolEvent, ReserveUpdated]], None]


class LendingPool:
    def __init__(
        self,
        oracle: PriceOracle,
        custody: AssetCustody | None = None,
        clock: Callable[[], int] = wall_clock,
    ):
        self.oracle = oracle
        self.custody = custody if custody is not None else InMemoryCustody()
        self.clock = clock
        self.risk = RiskEngine(oracle)
        self._store = LedgerStore()
        self._locks: dict[str, threading.Lock] = {}
        self._admin_lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._paused = False

    # -- administration ----------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callback for committed events and accrual observations."""
        self._listeners.append(listener)

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True
        logger.warning("Pool paused")

    def unpause(self) -> None:
        self._paused = False
        logger.info("Pool unpaused")

    def init_reserve(self, asset: str, params: RiskParams) -> ReserveSnapshot:
        """Create a reserve. Parameters are validated here and fixed afterwards."""
        params.validate()
        with self._admin_lock:
            if asset in self._store.reserves:
                raise ReserveAlreadyInitialized(asset)
            reserve = Reserve(asset=asset, params=params, last_update=self.clock())
            self._locks[asset] = threading.Lock()
            self._store.reserves[asset] = reserve
        logger.info(f"Initialized reserve {asset} (decimals={params.decimals})")
        return reserve_ledger.snapshot(reserve)

    # -- locking and staging -----------------------------------------------

    def _lock_set(self, assets: Iterable[str], users: Iterable[str]) -> set[str]:
        wanted = set()
        for asset in assets:
            if asset not in self._locks:
                raise AssetNotInitialized(asset)
            wanted.add(asset)
        for user in users:
            wanted |= self._store.assets_of(user)
        return wanted

    @contextmanager
    def _locked(self, assets: Iterable[str], users: Iterable[str]) -> Iterator[None]:
        assets, users = tuple(assets), tuple(users)
        while True:
            wanted = self._lock_set(assets, users)
            locks = [self._locks[asset] for asset in sorted(wanted)]
            for lock in locks:
                lock.acquire()
            # A concurrent commit may have given the user a new asset while we waited.
            if self._lock_set(assets, users) <= wanted:
                break
            for lock in reversed(locks):
                lock.release()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    @contextmanager
    def _transaction(
        self,
        assets: Iterable[str],
        users: Iterable[str] = (),
        mutating: bool = True,
    ) -> Iterator[LedgerTransaction]:
        if mutating and self._paused:
            raise PoolPaused("pool is paused")
        with self._locked(assets, users):
            # pause() may have landed while we waited for the locks
            if mutating and self._paused:
                raise PoolPaused("pool is paused")
            tx = LedgerTransaction(self._store, self.clock())
            yield tx
            self.custody.settle(tx.movements)
            tx.commit()
        self._publish(tx)

    def _publish(self, tx: LedgerTransaction) -> None:
        for item in [*tx.observations, *tx.events]:
            for listener in self._listeners:
                try:
                    listener(item)
                except Exception:
                    logger.exception(f"Listener {listener!r} failed on {item!r}")

    def _view(self) -> LedgerTransaction:
        """Read-only view over committed state (never committed)."""
        return LedgerTransaction(self._store, self.clock())

    # -- mutating entry points ---------------------------------------------

    def lend(self, user: str, asset: str, amount: int) -> None:
        with self._transaction([asset]) as tx:
            position_ledger.lend(tx, user, asset, amount)

    def withdraw(self, user: str, asset: str, requested: Amount) -> int:
        with self._transaction([asset], [user]) as tx:
            return position_ledger.withdraw(tx, self.risk, user, asset, requested)

    def borrow(self, user: str, asset: str, amount: int) -> None:
        with self._transaction([asset], [user]) as tx:
            position_ledger.borrow(tx, self.risk, user, asset, amount)

    def repay(
        self, payer: str, asset: str, amount: Amount, on_behalf_of: str | None = None
    ) -> int:
        borrower = payer if on_behalf_of is None else on_behalf_of
        with self._transaction([asset]) as tx:
            return position_ledger.repay(tx, payer, asset, amount, borrower)

    def set_as_collateral(self, user: str, asset: str, enabled: bool) -> None:
        with self._transaction([asset], [user]) as tx:
            position_ledger.set_as_collateral(tx, self.risk, user, asset, enabled)

    def liquidation_call(
        self,
        liquidator: str,
        debt_asset: str,
        collateral_asset: str,
        borrower: str,
        repay_amount: Amount,
        receive_underlying: bool = True,
    ) -> LiquidationResult:
        with self._transaction([debt_asset, collateral_asset], [borrower]) as tx:
            result = liquidation.liquidation_call(
                tx,
                self.risk,
                liquidator,
                debt_asset,
                collateral_asset,
                borrower,
                repay_amount,
                receive_underlying,
            )
        logger.info(
            f"Liquidated {borrower}: repaid {result.debt_repaid} {debt_asset}, "
            f"seized {result.collateral_seized} {collateral_asset}"
        )
        return result

    def accrue(self, asset: str) -> ReserveUpdated | None:
        """Accrue one reserve now. Allowed while paused."""
        with self._transaction([asset], mutating=False) as tx:
            tx.accrue(asset)
        return tx.observations[0] if tx.observations else None

    def accrue_all(self) -> list[ReserveUpdated]:
        return [
            observation
            for observation in (self.accrue(asset) for asset in sorted(self._locks))
            if observation is not None
        ]

    # -- views -------------------------------------------------------------

    def reserves(self) -> list[ReserveSnapshot]:
        return [self.reserve_state(asset) for asset in sorted(self._store.reserves)]

    def reserve_state(self, asset: str) -> ReserveSnapshot:
        """Reserve as it would look if accrued now. Does not mutate."""
        view = self._view()
        projected, _ = reserve_ledger.accrue(view.reserve(asset), view.now)
        return reserve_ledger.snapshot(projected)

    def user_position(self, user: str, asset: str) -> UserPositionSnapshot:
        view = self._view()
        liquidity_index, borrow_index = reserve_ledger.projected_indices(
            view.reserve(asset), view.now
        )
        return position_ledger.snapshot(
            view.position(user, asset), liquidity_index, borrow_index
        )

    def user_positions(self, user: str) -> list[UserPositionSnapshot]:
        view = self._view()
        snapshots = []
        for position in view.positions_of(user):
            liquidity_index, borrow_index = reserve_ledger.projected_indices(
                view.reserve(position.asset), view.now
            )
            snapshots.append(
                position_ledger.snapshot(position, liquidity_index, borrow_index)
            )
        return snapshots

    def account_data(self, user: str) -> AccountSnapshot:
        return self.risk.account_data(self._view(), user)

    def get_supply_balance(self, user: str, asset: str) -> int:
        return self.user_position(user, asset).current_supply

    def get_borrow_balance(self, user: str, asset: str) -> int:
        return self.user_position(user, asset).current_borrow
