"""Liquidation of unhealthy accounts.

A liquidator repays part of an unhealthy borrower's debt and receives the
borrower's collateral at a discount (the collateral reserve's liquidation
bonus). One call repays at most ``close_factor`` of the debt in that asset;
restoring health may take several calls.

When the bonus-adjusted seize exceeds the borrower's collateral balance the
call still succeeds: the whole balance is seized and the repaid amount is
reduced to what that balance is worth.
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from services.lending.src.lending.domain import position_ledger, reserve_ledger
from services.lending.src.lending.domain.errors import (
    ExceedsCloseFactor,
    InsufficientLiquidity,
    InvalidAmount,
    NotLiquidatable,
)
from services.lending.src.lending.domain.math import (
    BPS,
    MAX_UINT256,
    Rounding,
    bps_mul,
    mul_div,
)
from services.lending.src.lending.domain.models import (
    AllType,
    Amount,
    LiquidationResult,
    PoolEvent,
    resolve_amount,
)

if TYPE_CHECKING:
    from services.lending.src.lending.domain.health_factor import RiskEngine
    from services.lending.src.lending.domain.staging import LedgerTransaction

logger = logging.getLogger(__name__)


def collateral_for_debt(
    debt_amount: int, debt_price: int, collateral_price: int, bonus_bps: int
) -> int:
    """Collateral worth ``debt_amount`` plus the bonus, rounded down (paid out)."""
    return mul_div(
        min(debt_amount * debt_price, MAX_UINT256),
        BPS + bonus_bps,
        collateral_price * BPS,
        Rounding.DOWN,
    )


def debt_for_collateral(
    collateral_amount: int, debt_price: int, collateral_price: int, bonus_bps: int
) -> int:
    """Debt a liquidator must repay to receive ``collateral_amount``, rounded up (owed)."""
    return mul_div(
        min(collateral_amount * collateral_price, MAX_UINT256),
        BPS,
        debt_price * (BPS + bonus_bps),
        Rounding.UP,
    )


def liquidation_call(
    tx: "LedgerTransaction",
    risk: "RiskEngine",
    liquidator: str,
    debt_asset: str,
    collateral_asset: str,
    borrower: str,
    repay_amount: Amount,
    receive_underlying: bool = True,
) -> LiquidationResult:
    if not isinstance(repay_amount, AllType) and (
        isinstance(repay_amount, bool)
        or not isinstance(repay_amount, int)
        or repay_amount <= 0
    ):
        raise InvalidAmount(f"repay amount must be positive, got {repay_amount!r}")

    debt_reserve, debt_position = tx.settle(borrower, debt_asset)
    _, collateral_position = tx.settle(borrower, collateral_asset)

    before = risk.account_data(tx, borrower)
    if before.is_healthy:
        raise NotLiquidatable(
            f"{borrower} health factor {before.health_factor} is not below 1.0"
        )

    debt = debt_position.borrow.principal
    if debt == 0:
        raise NotLiquidatable(f"{borrower} owes no {debt_asset}")
    if not collateral_position.use_as_collateral or collateral_position.supply.principal == 0:
        raise NotLiquidatable(f"{borrower} has no {collateral_asset} collateral")

    max_repay = bps_mul(debt, debt_reserve.params.close_factor_bps, Rounding.DOWN)
    repay = resolve_amount(repay_amount, max_repay)
    if repay == 0:
        raise ExceedsCloseFactor(
            f"close factor allows no repayment of {debt} {debt_asset} debt"
        )

    debt_price = risk.oracle.price_usd_1e18(debt_asset)
    collateral_price = risk.oracle.price_usd_1e18(collateral_asset)
    bonus = tx.reserve(collateral_asset).params.liquidation_bonus_bps

    seize = collateral_for_debt(repay, debt_price, collateral_price, bonus)
    available = collateral_position.supply.principal
    if seize > available:
        seize = available
        repay = min(repay, debt_for_collateral(available, debt_price, collateral_price, bonus))
        logger.info(
            f"Liquidation of {borrower} capped by collateral: seizing all {available} "
            f"{collateral_asset}, repaying {repay} {debt_asset}"
        )

    # Debt side: the liquidator repays on the borrower's behalf.
    reserve, position = position_ledger.reduce_borrow(
        tx.reserve(debt_asset), tx.position(borrower, debt_asset), repay
    )
    tx.pull(liquidator, reserve, repay)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))
    tx.put_position(position)

    # Collateral side: the seized supply leaves the borrower.
    reserve = tx.reserve(collateral_asset)
    position = tx.position(borrower, collateral_asset)
    if receive_underlying:
        if reserve.cash < seize:
            raise InsufficientLiquidity(
                f"{collateral_asset} cash {reserve.cash} cannot pay out {seize}"
            )
        reserve, position = position_ledger.remove_supply(reserve, position, seize, seize)
        tx.push(liquidator, reserve, seize)
        tx.put_position(position)
    else:
        reserve, position = position_ledger.remove_supply(reserve, position, seize, 0)
        tx.put_position(position)
        receiver = position_ledger.settle(tx.position(liquidator, collateral_asset), reserve)
        first_supply = receiver.is_empty and not receiver.use_as_collateral
        reserve, receiver = position_ledger.add_supply(reserve, receiver, seize, 0)
        if first_supply and reserve.params.liquidation_threshold_bps > 0:
            receiver = replace(receiver, use_as_collateral=True)
        tx.put_position(receiver)
    tx.put_reserve(reserve_ledger.refresh_rates(reserve))

    after = risk.account_data(tx, borrower)
    tx.emit(
        PoolEvent(
            "liquidation",
            tx.now,
            borrower,
            debt_asset,
            repay,
            counterparty_address=liquidator,
            collateral_asset=collateral_asset,
            collateral_amount=seize,
        )
    )
    return LiquidationResult(
        debt_repaid=repay,
        collateral_seized=seize,
        health_factor_before=before.health_factor,
        health_factor_after=after.health_factor,
    )
