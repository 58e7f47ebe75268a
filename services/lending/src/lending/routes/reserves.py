from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from services.lending.src.lending.db.repository import ReserveUpdateRepository
from services.lending.src.lending.domain.math import ray_per_sec_to_apr
from services.lending.src.lending.domain.models import ReserveSnapshot
from services.lending.src.lending.domain.pool import LendingPool
from services.lending.src.lending.routes.deps import (
    get_db_engine,
    get_lending_pool,
    pool_errors,
)
from services.lending.src.lending.schemas.responses import (
    RateCurvePoint,
    RateCurveResponse,
    ReserveHistory,
    ReserveResponse,
    ReserveUpdateResponse,
    RiskParamsResponse,
)

router = APIRouter(prefix="/reserves", tags=["reserves"])


def reserve_to_response(snapshot: ReserveSnapshot) -> ReserveResponse:
    """Convert domain snapshot to response model."""
    return ReserveResponse(
        asset=snapshot.asset,
        cash=snapshot.cash,
        total_borrow_principal=snapshot.total_borrow_principal,
        total_debt=snapshot.total_debt,
        utilization=snapshot.utilization,
        liquidity_rate=snapshot.liquidity_rate,
        borrow_rate=snapshot.borrow_rate,
        liquidity_index=snapshot.liquidity_index,
        borrow_index=snapshot.borrow_index,
        last_update=snapshot.last_update,
        supply_apr=ray_per_sec_to_apr(snapshot.liquidity_rate),
        borrow_apr=ray_per_sec_to_apr(snapshot.borrow_rate),
        params=RiskParamsResponse.model_validate(snapshot.params),
    )


@router.get("", response_model=list[ReserveResponse])
def list_reserves(pool: LendingPool = Depends(get_lending_pool)) -> list[ReserveResponse]:
    return [reserve_to_response(s) for s in pool.reserves()]


@router.get("/{asset}", response_model=ReserveResponse)
def get_reserve(asset: str, pool: LendingPool = Depends(get_lending_pool)) -> ReserveResponse:
    with pool_errors():
        return reserve_to_response(pool.reserve_state(asset))


@router.post("/{asset}/accrue", response_model=ReserveResponse)
def accrue_reserve(asset: str, pool: LendingPool = Depends(get_lending_pool)) -> ReserveResponse:
    """Accrue interest on the reserve now and return its updated state."""
    with pool_errors():
        pool.accrue(asset)
        return reserve_to_response(pool.reserve_state(asset))


@router.get("/{asset}/rate-curve", response_model=RateCurveResponse)
def get_rate_curve(
    asset: str,
    points: int = Query(default=21, ge=2, le=201),
    pool: LendingPool = Depends(get_lending_pool),
) -> RateCurveResponse:
    """Borrow and supply rates across utilization, for charting the reserve's curve."""
    with pool_errors():
        params = pool.reserve_state(asset).params
    curve = params.rate_model.curve(points)
    return RateCurveResponse(
        asset=asset,
        optimal_utilization_bps=params.optimal_utilization_bps,
        points=[
            RateCurvePoint(
                utilization=u,
                borrow_rate=borrow,
                supply_rate=supply,
                borrow_apr=ray_per_sec_to_apr(borrow),
                supply_apr=ray_per_sec_to_apr(supply),
            )
            for u, borrow, supply in curve
        ],
    )


@router.get("/{asset}/history", response_model=ReserveHistory)
def get_reserve_history(
    asset: str,
    hours: int = Query(default=24, ge=1, le=168),
    pool: LendingPool = Depends(get_lending_pool),
    engine: Engine = Depends(get_db_engine),
) -> ReserveHistory:
    """
    Get recorded accrual observations for a reserve.

    Returns observations from the last N hours (default: 24, max: 168).
    """
    with pool_errors():
        pool.reserve_state(asset)

    repo = ReserveUpdateRepository(engine)
    now = datetime.now(timezone.utc)
    updates = repo.get_updates(asset, now - timedelta(hours=hours), now)

    return ReserveHistory(
        asset=asset,
        updates=[ReserveUpdateResponse.model_validate(u) for u in updates],
    )
