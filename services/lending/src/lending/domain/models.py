from dataclasses import dataclass, field
from typing import Optional

from services.lending.src.lending.domain.errors import InvalidAmount, InvalidRiskParams
from services.lending.src.lending.domain.interest_rate import InterestRateModel
from services.lending.src.lending.domain.math import BPS, RAY, Rounding, mul_div, wad_div


class AllType:
    """Sentinel for "withdraw/repay everything"."""

    _instance: Optional["AllType"] = None

    def __new__(cls) -> "AllType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ALL"


ALL = AllType()

Amount = int | AllType


def resolve_amount(requested: Amount, available: int) -> int:
    """Clamp a requested amount to what is available; ALL takes everything."""
    if isinstance(requested, AllType):
        return available
    if isinstance(requested, bool) or not isinstance(requested, int):
        raise InvalidAmount(f"amount must be an integer or ALL, got {requested!r}")
    if requested <= 0:
        raise InvalidAmount(f"amount must be positive, got {requested}")
    return min(requested, available)


@dataclass(frozen=True)
class RiskParams:
    """Per-reserve risk and rate-curve parameters, fixed at initialization."""

    decimals: int
    reserve_factor_bps: int
    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int
    close_factor_bps: int
    is_borrowable: bool
    optimal_utilization_bps: int
    base_rate_ray_per_sec: int
    slope1_ray_per_sec: int
    slope2_ray_per_sec: int

    def validate(self) -> None:
        """Raise InvalidRiskParams if the parameters cannot describe a sane reserve."""
        if not 0 <= self.decimals <= 18:
            raise InvalidRiskParams(f"decimals out of range: {self.decimals}")
        for name in (
            "reserve_factor_bps",
            "ltv_bps",
            "liquidation_threshold_bps",
            "liquidation_bonus_bps",
            "close_factor_bps",
        ):
            value = getattr(self, name)
            if not 0 <= value <= BPS:
                raise InvalidRiskParams(f"{name} out of range: {value}")
        if not 0 < self.optimal_utilization_bps <= BPS:
            raise InvalidRiskParams(
                f"optimal_utilization_bps out of range: {self.optimal_utilization_bps}"
            )
        if self.ltv_bps > self.liquidation_threshold_bps:
            raise InvalidRiskParams("ltv must not exceed liquidation threshold")
        # Seizing threshold-weighted collateral with a bonus must not leave the
        # borrower less healthy than before.
        if self.liquidation_threshold_bps * (BPS + self.liquidation_bonus_bps) > BPS * BPS:
            raise InvalidRiskParams("liquidation threshold too high for liquidation bonus")
        if self.is_borrowable and self.close_factor_bps == 0:
            raise InvalidRiskParams("borrowable reserve needs a non-zero close factor")
        if min(
            self.base_rate_ray_per_sec,
            self.slope1_ray_per_sec,
            self.slope2_ray_per_sec,
        ) < 0:
            raise InvalidRiskParams("rates must be non-negative")

    @property
    def rate_model(self) -> InterestRateModel:
        return InterestRateModel(
            reserve_factor_bps=self.reserve_factor_bps,
            optimal_utilization_bps=self.optimal_utilization_bps,
            base_rate_ray_per_sec=self.base_rate_ray_per_sec,
            slope1_ray_per_sec=self.slope1_ray_per_sec,
            slope2_ray_per_sec=self.slope2_ray_per_sec,
        )


@dataclass(frozen=True)
class Reserve:
    """Per-asset ledger state.

    ``total_borrow_principal`` is scaled by the borrow index (sum of
    amount * RAY / borrow_index at borrow time), so the live total debt is
    ``total_borrow_principal * borrow_index / RAY``.
    """

    asset: str
    params: RiskParams
    last_update: int
    cash: int = 0
    total_borrow_principal: int = 0
    liquidity_index: int = RAY
    borrow_index: int = RAY
    liquidity_rate: int = 0
    borrow_rate: int = 0


@dataclass(frozen=True)
class ScaledBalance:
    """A principal plus the index it was last settled at.

    The current balance is derived as principal * index / index_snapshot.
    Supply balances round down (paid out), borrow balances round up (owed).
    """

    principal: int = 0
    index_snapshot: int = RAY

    def value(self, index: int, rounding: Rounding) -> int:
        if self.principal == 0:
            return 0
        return mul_div(self.principal, index, self.index_snapshot, rounding)

    def settle(self, index: int, rounding: Rounding) -> "ScaledBalance":
        return ScaledBalance(principal=self.value(index, rounding), index_snapshot=index)


@dataclass(frozen=True)
class UserPosition:
    """A user's supply and borrow in one reserve. Created lazily, never deleted."""

    user: str
    asset: str
    supply: ScaledBalance = field(default_factory=ScaledBalance)
    borrow: ScaledBalance = field(default_factory=ScaledBalance)
    use_as_collateral: bool = False

    @property
    def is_empty(self) -> bool:
        return self.supply.principal == 0 and self.borrow.principal == 0


@dataclass(frozen=True)
class PositionDelta:
    """Hypothetical change to one position, used for pre-action risk checks."""

    asset: str
    supply_delta: int = 0
    borrow_delta: int = 0
    use_as_collateral: bool | None = None


@dataclass(frozen=True)
class AccountSnapshot:
    """Computed valuation of a user's positions (USD, WAD-scaled)."""

    user: str
    collateral_value_usd: int
    debt_value_usd: int
    weighted_collateral_usd: int
    borrowing_power_usd: int

    @property
    def health_factor(self) -> int | None:
        """weighted collateral / debt, WAD-scaled. None when there is no debt."""
        if self.debt_value_usd == 0:
            return None
        return wad_div(self.weighted_collateral_usd, self.debt_value_usd, Rounding.DOWN)

    @property
    def current_liquidation_threshold_bps(self) -> int:
        if self.collateral_value_usd == 0:
            return 0
        return mul_div(
            self.weighted_collateral_usd, BPS, self.collateral_value_usd, Rounding.DOWN
        )

    @property
    def is_healthy(self) -> bool:
        return self.weighted_collateral_usd >= self.debt_value_usd

    @property
    def is_liquidatable(self) -> bool:
        return not self.is_healthy


@dataclass(frozen=True)
class ReserveSnapshot:
    asset: str
    cash: int
    total_borrow_principal: int
    total_debt: int
    utilization: int
    liquidity_rate: int
    borrow_rate: int
    liquidity_index: int
    borrow_index: int
    last_update: int
    params: RiskParams


@dataclass(frozen=True)
class UserPositionSnapshot:
    user: str
    asset: str
    current_supply: int
    current_borrow: int
    supply_principal: int
    supply_index_snapshot: int
    borrow_principal: int
    borrow_index_snapshot: int
    use_as_collateral: bool


@dataclass(frozen=True)
class ReserveUpdated:
    """Observation emitted on every accrual that moved the indices."""

    asset: str
    timestamp: int
    utilization: int
    liquidity_rate: int
    borrow_rate: int
    liquidity_index: int
    borrow_index: int


@dataclass(frozen=True)
class PoolEvent:
    """A committed pool action (supply, withdraw, borrow, repay, liquidation, collateral)."""

    event_type: str
    timestamp: int
    user_address: str
    asset: str
    amount: int
    # repay: payer; liquidation: liquidator
    counterparty_address: Optional[str] = None
    # Liquidation-specific (collateral side)
    collateral_asset: Optional[str] = None
    collateral_amount: Optional[int] = None
    # repay cleared the whole debt / collateral toggle state
    is_full: Optional[bool] = None


@dataclass(frozen=True)
class LiquidationResult:
    debt_repaid: int
    collateral_seized: int
    health_factor_before: int | None
    health_factor_after: int | None
