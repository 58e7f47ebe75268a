"""Reserve accrual.

Interest compounds discretely per accrual call: each call multiplies the
indices by ``1 + rate * dt`` using the rate in effect for the elapsed
interval, i.e. the rate implied by the cash and debt that persisted since the
previous call. Only indices, rates and ``last_update`` move here; cash and
principal move in the pool operations.
"""

import logging
from dataclasses import replace

from services.lending.src.lending.domain.interest_rate import utilization
from services.lending.src.lending.domain.math import RAY, Rounding, ray_mul
from services.lending.src.lending.domain.models import (
    Reserve,
    ReserveSnapshot,
    ReserveUpdated,
)

logger = logging.getLogger(__name__)


def total_debt(reserve: Reserve, borrow_index: int | None = None) -> int:
    """Outstanding debt valued at the given (default: stored) borrow index, rounded up."""
    index = reserve.borrow_index if borrow_index is None else borrow_index
    return ray_mul(reserve.total_borrow_principal, index, Rounding.UP)


def current_rates(reserve: Reserve) -> tuple[int, int]:
    return reserve.params.rate_model.rates(reserve.cash, total_debt(reserve))


def _grow(index: int, rate: int, dt: int) -> int:
    return ray_mul(index, RAY + rate * dt, Rounding.DOWN)


def projected_indices(reserve: Reserve, now: int) -> tuple[int, int]:
    """(liquidity_index, borrow_index) as they would be after accruing at ``now``.

    Read-only: used to value positions in reserves the current operation
    does not touch.
    """
    dt = now - reserve.last_update
    if dt <= 0:
        return reserve.liquidity_index, reserve.borrow_index
    borrow_rate, supply_rate = current_rates(reserve)
    return (
        _grow(reserve.liquidity_index, supply_rate, dt),
        _grow(reserve.borrow_index, borrow_rate, dt),
    )


def accrue(reserve: Reserve, now: int) -> tuple[Reserve, ReserveUpdated | None]:
    """
    Bring a reserve's indices up to ``now``.

    Returns the (possibly unchanged) reserve and the observation to emit, or
    None when no time has elapsed. A clock that went backwards is treated as
    no elapsed time.
    """
    dt = now - reserve.last_update
    if dt <= 0:
        return reserve, None

    borrow_rate, supply_rate = current_rates(reserve)
    liquidity_index = _grow(reserve.liquidity_index, supply_rate, dt)
    borrow_index = _grow(reserve.borrow_index, borrow_rate, dt)

    updated = replace(
        reserve,
        liquidity_index=liquidity_index,
        borrow_index=borrow_index,
        liquidity_rate=supply_rate,
        borrow_rate=borrow_rate,
        last_update=now,
    )
    observation = ReserveUpdated(
        asset=reserve.asset,
        timestamp=now,
        utilization=utilization(updated.cash, total_debt(updated)),
        liquidity_rate=supply_rate,
        borrow_rate=borrow_rate,
        liquidity_index=liquidity_index,
        borrow_index=borrow_index,
    )
    logger.debug(
        f"Accrued {reserve.asset} over {dt}s: "
        f"borrow_index={borrow_index} liquidity_index={liquidity_index}"
    )
    return updated, observation


def refresh_rates(reserve: Reserve) -> Reserve:
    """Recompute stored rates after cash or debt changed. Indices are untouched."""
    borrow_rate, supply_rate = current_rates(reserve)
    if borrow_rate == reserve.borrow_rate and supply_rate == reserve.liquidity_rate:
        return reserve
    return replace(reserve, borrow_rate=borrow_rate, liquidity_rate=supply_rate)


def snapshot(reserve: Reserve) -> ReserveSnapshot:
    debt = total_debt(reserve)
    return ReserveSnapshot(
        asset=reserve.asset,
        cash=reserve.cash,
        total_borrow_principal=reserve.total_borrow_principal,
        total_debt=debt,
        utilization=utilization(reserve.cash, debt),
        liquidity_rate=reserve.liquidity_rate,
        borrow_rate=reserve.borrow_rate,
        liquidity_index=reserve.liquidity_index,
        borrow_index=reserve.borrow_index,
        last_update=reserve.last_update,
        params=reserve.params,
    )
