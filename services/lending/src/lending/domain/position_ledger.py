"""Per-user position accounting.

Balances are stored as ``ScaledBalance`` (principal + index snapshot) so
interest accrues to every position through the reserve indices without
touching each user. Before any delta is applied, a position is settled:
accrued interest is folded into principal and the snapshot moves to the
current index.

Each operation runs inside a ``LedgerTransaction``:
accrue reserve -> settle position -> risk check -> apply delta -> refresh rates.
"""

from dataclasses import replace
from typing import TYPE_CHECKING

from services.lending.src.lending.domain import reserve_ledger
from services.lending.src.lending.domain.errors import (
    AssetNotBorrowable,
    HealthFactorTooLow,
    InsufficientLiquidity,
    InvalidAmount,
)
from services.lending.src.lending.domain.math import Rounding, ray_div
from services.lending.src.lending.domain.models import (
    Amount,
    AllType,
    PoolEvent,
    PositionDelta,
    Reserve,
    ScaledBalance,
    UserPosition,
    UserPositionSnapshot,
    resolve_amount,
)

if TYPE_CHECKING:
    from services.lending.src.lending.domain.health_factor import RiskEngine
    from services.lending.src.lending.domain.staging import LedgerTransaction


def current_supply(position: UserPosition, liquidity_index: int) -> int:
    return position.supply.value(liquidity_index, Rounding.DOWN)


def current_borrow(position: UserPosition, borrow_index: int) -> int:
    return position.borrow.value(borrow_index, Rounding.UP)


def settle(position: UserPosition, reserve: Reserve) -> UserPosition:
    return replace(
        position,
        supply=position.supply.settle(reserve.liquidity_index, Rounding.DOWN),
        borrow=position.borrow.settle(reserve.borrow_index, Rounding.UP),
    )


def snapshot(
    position: UserPosition, liquidity_index: int, borrow_index: int
) -> UserPositionSnapshot:
    return UserPositionSnapshot(
        user=position.user,
        asset=position.asset,
        current_supply=current_supply(position, liquidity_index),
        current_borrow=current_borrow(position, borrow_index),
        supply_principal=position.supply.principal,
        supply_index_snapshot=position.supply.index_snapshot,
        borrow_principal=position.borrow.principal,
        borrow_index_snapshot=position.borrow.index_snapshot,
        use_as_collateral=position.use_as_collateral,
    )


# -- deltas on settled positions ---------------------------------------------


def _with_supply(position: UserPosition, reserve: Reserve, principal: int) -> UserPosition:
    return replace(
        position,
        supply=ScaledBalance(principal=principal, index_snapshot=reserve.liquidity_index),
    )


def _with_borrow(position: UserPosition, reserve: Reserve, principal: int) -> UserPosition:
    return replace(
        position,
        borrow=ScaledBalance(principal=principal, index_snapshot=reserve.borrow_index),
    )


def add_supply(
    reserve: Reserve, position: UserPosition, amount: int, cash_delta: int
) -> tuple[Reserve, UserPosition]:
    """Credit ``amount`` to a settled supply balance and move ``cash_delta`` into the reserve."""
    position = _with_supply(position, reserve, position.supply.principal + amount)
    return replace(reserve, cash=reserve.cash + cash_delta), position


def remove_supply(
    reserve: Reserve, position: UserPosition, amount: int, cash_delta: int
) -> tuple[Reserve, UserPosition]:
    """Debit ``amount`` from a settled supply balance and take ``cash_delta`` out of the reserve."""
    if amount > position.supply.principal:
        raise InsufficientLiquidity(
            f"supply balance {position.supply.principal} below {amount}"
        )
    if cash_delta > reserve.cash:
        raise InsufficientLiquidity(f"reserve cash {reserve.cash} below {cash_delta}")
    position = _with_supply(position, reserve, position.supply.principal - amount)
    return replace(reserve, cash=reserve.cash - cash_delta), position


def add_borrow(
    reserve: Reserve, position: UserPosition, amount: int
) -> tuple[Reserve, UserPosition]:
    if amount > reserve.cash:
        raise InsufficientLiquidity(f"reserve cash {reserve.cash} below {amount}")
    scaled = ray_div(amount, reserve.borrow_index, Rounding.UP)
    reserve = replace(
        reserve,
        cash=reserve.cash - amount,
        total_borrow_principal=reserve.total_borrow_principal + scaled,
    )
    return reserve, _with_borrow(position, reserve, position.borrow.principal + amount)


def reduce_borrow(
    reserve: Reserve, position: UserPosition, amount: int
) -> tuple[Reserve, UserPosition]:
    if amount > position.borrow.principal:
        raise InvalidAmount(f"repay {amount} exceeds debt {position.borrow.principal}")
    scaled = ray_div(amount, reserve.borrow_index, Rounding.DOWN)
    reserve = replace(
        reserve,
        cash=reserve.cash + amount,
        total_borrow_principal=max(reserve.total_borrow_principal - scaled, 0),
    )
    return reserve, _with_borrow(position, reserve, position.borrow.principal - amount)


# -- operations --------------------------------------------------------------


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")


def lend(tx: "LedgerTransaction", user: str, asset: str, amount: int) -> None:
    _require_positive(amount)
    reserve, position = tx.settle(user, asset)

    first_supply = position.is_empty and not position.use_as_collateral
    reserve, position = add_supply(reserve, position, amount, amount)
    if first_supply and reserve.params.liquidation_threshold_bps > 0:
        position = replace(position, use_as_collateral=True)

    tx.pull(user, reserve, amount)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))
    tx.put_position(position)
    tx.emit(PoolEvent("supply", tx.now, user, asset, amount))


def withdraw(
    tx: "LedgerTransaction", risk: "RiskEngine", user: str, asset: str, requested: Amount
) -> int:
    """
    Withdraw up to ``requested`` (or ALL) and return the amount actually paid out.

    The amount is clamped to the current supply, the reserve's cash and the
    largest amount that keeps the account's health factor >= 1. Asking for too
    much is never an error; an error is raised only when nothing at all can
    be withdrawn.
    """
    reserve, position = tx.settle(user, asset)
    supplied = position.supply.principal
    clamped = resolve_amount(requested, supplied)

    if clamped == 0 or reserve.cash == 0:
        raise InsufficientLiquidity(
            f"nothing to withdraw from {asset}: supply={supplied} cash={reserve.cash}"
        )

    clamped = min(clamped, reserve.cash)
    safe = risk.max_safe_withdrawal(tx, user, asset)
    actual = min(clamped, safe)
    if actual == 0:
        raise HealthFactorTooLow(f"withdrawing {asset} would breach health factor 1.0")

    reserve, position = remove_supply(reserve, position, actual, actual)
    tx.push(user, reserve, actual)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))
    tx.put_position(position)
    tx.emit(PoolEvent("withdraw", tx.now, user, asset, actual))
    return actual


def borrow(
    tx: "LedgerTransaction", risk: "RiskEngine", user: str, asset: str, amount: int
) -> None:
    _require_positive(amount)
    reserve, position = tx.settle(user, asset)

    if not reserve.params.is_borrowable:
        raise AssetNotBorrowable(asset)
    if reserve.cash < amount:
        raise InsufficientLiquidity(f"reserve cash {reserve.cash} below {amount}")
    if not risk.would_be_safe(tx, user, [PositionDelta(asset, borrow_delta=amount)]):
        raise HealthFactorTooLow(f"borrowing {amount} {asset} would breach health factor 1.0")

    reserve, position = add_borrow(reserve, position, amount)
    tx.push(user, reserve, amount)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))
    tx.put_position(position)
    tx.emit(PoolEvent("borrow", tx.now, user, asset, amount))


def repay(
    tx: "LedgerTransaction", payer: str, asset: str, amount: Amount, on_behalf_of: str
) -> int:
    """
    Repay up to ``amount`` (or ALL) of ``on_behalf_of``'s debt, paid by ``payer``.

    Never collects more than is owed, so ALL or any oversized amount clears
    the debt exactly. Returns the amount actually repaid.
    """
    if not isinstance(amount, AllType):
        _require_positive(amount)
    reserve, position = tx.settle(on_behalf_of, asset)
    debt = position.borrow.principal
    actual = resolve_amount(amount, debt)
    if actual == 0:
        return 0

    reserve, position = reduce_borrow(reserve, position, actual)
    tx.pull(payer, reserve, actual)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))
    tx.put_position(position)
    tx.emit(
        PoolEvent(
            "repay",
            tx.now,
            on_behalf_of,
            asset,
            actual,
            counterparty_address=payer,
            is_full=position.borrow.principal == 0,
        )
    )
    return actual


def set_as_collateral(
    tx: "LedgerTransaction", risk: "RiskEngine", user: str, asset: str, enabled: bool
) -> None:
    _, position = tx.settle(user, asset)
    if position.use_as_collateral == enabled:
        return
    if not enabled and not risk.would_be_safe(
        tx, user, [PositionDelta(asset, use_as_collateral=False)]
    ):
        raise HealthFactorTooLow(f"disabling {asset} as collateral would breach health factor 1.0")

    tx.put_position(replace(position, use_as_collateral=enabled))
    tx.emit(PoolEvent("collateral", tx.now, user, asset, 0, is_full=enabled))
