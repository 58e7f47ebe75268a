from fastapi import APIRouter, Depends, HTTPException

from services.lending.src.lending.domain.custody import InMemoryCustody
from services.lending.src.lending.domain.pool import LendingPool
from services.lending.src.lending.routes.deps import (
    get_lending_pool,
    parse_amount,
    pool_errors,
)
from services.lending.src.lending.schemas.responses import (
    ActionResponse,
    BorrowRequest,
    CollateralRequest,
    LendRequest,
    LiquidateRequest,
    LiquidationResponse,
    MintRequest,
    RepayRequest,
    WithdrawRequest,
)

router = APIRouter(prefix="/actions", tags=["actions"])


@router.post("/lend", response_model=ActionResponse)
def lend(body: LendRequest, pool: LendingPool = Depends(get_lending_pool)) -> ActionResponse:
    with pool_errors():
        pool.lend(body.user, body.asset, body.amount)
    return ActionResponse(action="lend", amount=body.amount)


@router.post("/withdraw", response_model=ActionResponse)
def withdraw(
    body: WithdrawRequest, pool: LendingPool = Depends(get_lending_pool)
) -> ActionResponse:
    """Withdraw up to the requested amount; the response carries what was paid out."""
    with pool_errors():
        actual = pool.withdraw(body.user, body.asset, parse_amount(body.amount))
    return ActionResponse(action="withdraw", amount=actual)


@router.post("/borrow", response_model=ActionResponse)
def borrow(body: BorrowRequest, pool: LendingPool = Depends(get_lending_pool)) -> ActionResponse:
    with pool_errors():
        pool.borrow(body.user, body.asset, body.amount)
    return ActionResponse(action="borrow", amount=body.amount)


@router.post("/repay", response_model=ActionResponse)
def repay(body: RepayRequest, pool: LendingPool = Depends(get_lending_pool)) -> ActionResponse:
    with pool_errors():
        actual = pool.repay(
            body.payer, body.asset, parse_amount(body.amount), body.on_behalf_of
        )
    return ActionResponse(action="repay", amount=actual)


@router.post("/collateral", response_model=ActionResponse)
def set_collateral(
    body: CollateralRequest, pool: LendingPool = Depends(get_lending_pool)
) -> ActionResponse:
    with pool_errors():
        pool.set_as_collateral(body.user, body.asset, body.enabled)
    return ActionResponse(action="collateral")


@router.post("/liquidate", response_model=LiquidationResponse)
def liquidate(
    body: LiquidateRequest, pool: LendingPool = Depends(get_lending_pool)
) -> LiquidationResponse:
    with pool_errors():
        result = pool.liquidation_call(
            body.liquidator,
            body.debt_asset,
            body.collateral_asset,
            body.borrower,
            parse_amount(body.amount),
            body.receive_underlying,
        )
    return LiquidationResponse.model_validate(result)


@router.post("/mint", response_model=ActionResponse)
def mint(body: MintRequest, pool: LendingPool = Depends(get_lending_pool)) -> ActionResponse:
    """Credit a wallet in the in-memory custody book (development only)."""
    if not isinstance(pool.custody, InMemoryCustody):
        raise HTTPException(status_code=404, detail="Custody does not support minting")
    with pool_errors():
        pool.reserve_state(body.asset)
        pool.custody.mint(body.account, body.asset, body.amount)
    return ActionResponse(action="mint", amount=body.amount)
