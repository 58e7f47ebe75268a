from fastapi import APIRouter, Depends

from services.lending.src.lending.domain.pool import LendingPool
from services.lending.src.lending.routes.deps import get_lending_pool, pool_errors
from services.lending.src.lending.schemas.responses import (
    AccountResponse,
    PositionResponse,
)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("/{user}", response_model=AccountResponse)
def get_account(user: str, pool: LendingPool = Depends(get_lending_pool)) -> AccountResponse:
    """
    Get a user's account valuation and positions.

    Valuation uses current oracle prices; 503 if any price the account
    depends on is unavailable.
    """
    with pool_errors():
        snapshot = pool.account_data(user)
        positions = pool.user_positions(user)

    return AccountResponse(
        user=user,
        collateral_value_usd=snapshot.collateral_value_usd,
        debt_value_usd=snapshot.debt_value_usd,
        weighted_collateral_usd=snapshot.weighted_collateral_usd,
        borrowing_power_usd=snapshot.borrowing_power_usd,
        health_factor=snapshot.health_factor,
        current_liquidation_threshold_bps=snapshot.current_liquidation_threshold_bps,
        is_liquidatable=snapshot.is_liquidatable,
        positions=[PositionResponse.model_validate(p) for p in positions],
    )


@router.get("/{user}/positions/{asset}", response_model=PositionResponse)
def get_position(
    user: str, asset: str, pool: LendingPool = Depends(get_lending_pool)
) -> PositionResponse:
    with pool_errors():
        return PositionResponse.model_validate(pool.user_position(user, asset))
