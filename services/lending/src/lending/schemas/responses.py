from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Ledger integers (WAD/RAY scaled, up to 256 bits) are serialized as strings
# so JSON clients do not lose precision.
BigInt = Annotated[int, PlainSerializer(lambda v: str(v), return_type=str)]

# Request amounts: a positive integer or "all" where the action allows it.
AmountOrAll = int | Literal["all"]


class RiskParamsResponse(BaseModel):
    """Reserve risk and rate-curve parameters."""

    model_config = ConfigDict(from_attributes=True)

    decimals: int
    reserve_factor_bps: int
    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int
    close_factor_bps: int
    is_borrowable: bool
    optimal_utilization_bps: int
    base_rate_ray_per_sec: BigInt
    slope1_ray_per_sec: BigInt
    slope2_ray_per_sec: BigInt


class ReserveResponse(BaseModel):
    """Reserve state projected to the time of the request."""

    model_config = ConfigDict(from_attributes=True)

    asset: str
    cash: BigInt
    total_borrow_principal: BigInt
    total_debt: BigInt
    utilization: BigInt
    liquidity_rate: BigInt
    borrow_rate: BigInt
    liquidity_index: BigInt
    borrow_index: BigInt
    last_update: int
    supply_apr: Decimal
    borrow_apr: Decimal
    params: RiskParamsResponse


class RateCurvePoint(BaseModel):
    utilization: BigInt
    borrow_rate: BigInt
    supply_rate: BigInt
    borrow_apr: Decimal
    supply_apr: Decimal


class RateCurveResponse(BaseModel):
    asset: str
    optimal_utilization_bps: int
    points: list[RateCurvePoint]


class ReserveUpdateResponse(BaseModel):
    """Single accrual observation."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: int
    utilization: BigInt
    liquidity_rate: BigInt
    borrow_rate: BigInt
    liquidity_index: BigInt
    borrow_index: BigInt


class ReserveHistory(BaseModel):
    """Accrual observations for a reserve over a time window."""

    asset: str
    updates: list[ReserveUpdateResponse]


class PositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user: str
    asset: str
    current_supply: BigInt
    current_borrow: BigInt
    supply_principal: BigInt
    supply_index_snapshot: BigInt
    borrow_principal: BigInt
    borrow_index_snapshot: BigInt
    use_as_collateral: bool


class AccountResponse(BaseModel):
    """Account valuation in USD (WAD-scaled) with its positions."""

    user: str
    collateral_value_usd: BigInt
    debt_value_usd: BigInt
    weighted_collateral_usd: BigInt
    borrowing_power_usd: BigInt
    # None when the account has no debt
    health_factor: BigInt | None = None
    current_liquidation_threshold_bps: int
    is_liquidatable: bool
    positions: list[PositionResponse]


class LendRequest(BaseModel):
    user: str
    asset: str
    amount: int


class WithdrawRequest(BaseModel):
    user: str
    asset: str
    amount: AmountOrAll


class BorrowRequest(BaseModel):
    user: str
    asset: str
    amount: int


class RepayRequest(BaseModel):
    payer: str
    asset: str
    amount: AmountOrAll
    on_behalf_of: str | None = None


class CollateralRequest(BaseModel):
    user: str
    asset: str
    enabled: bool


class LiquidateRequest(BaseModel):
    liquidator: str
    borrower: str
    debt_asset: str
    collateral_asset: str
    amount: AmountOrAll
    receive_underlying: bool = True


class MintRequest(BaseModel):
    """Credit a development wallet, in the asset's native units."""

    account: str
    asset: str
    amount: int = Field(gt=0)


class ActionResponse(BaseModel):
    action: str
    amount: BigInt | None = None


class LiquidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    debt_repaid: BigInt
    collateral_seized: BigInt
    health_factor_before: BigInt | None = None
    health_factor_after: BigInt | None = None


class PoolEventResponse(BaseModel):
    id: int
    event_type: str
    timestamp: int
    timestamp_hour: str
    user_address: str
    counterparty_address: str | None = None
    asset: str
    amount: str
    collateral_asset: str | None = None
    collateral_amount: str | None = None
    is_full: bool | None = None


class EventsResponse(BaseModel):
    events: list[PoolEventResponse]
    counts: dict[str, int]
