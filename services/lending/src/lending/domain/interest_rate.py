"""Utilization-based kinked interest rate curve."""

from dataclasses import dataclass

from services.lending.src.lending.domain.errors import InvalidAmount
from services.lending.src.lending.domain.math import (
    BPS,
    WAD,
    Rounding,
    bps_mul,
    mul_div,
    wad_mul,
)


def utilization(cash: int, debt: int) -> int:
    """Borrowed share of the reserve, WAD-scaled. Zero for an empty reserve."""
    if cash < 0 or debt < 0:
        raise InvalidAmount("cash and debt must be non-negative")
    total = cash + debt
    if total == 0:
        return 0
    return mul_div(debt, WAD, total, Rounding.DOWN)


def get_rates(
    cash: int,
    debt: int,
    reserve_factor_bps: int,
    optimal_u_bps: int,
    base_rate: int,
    slope1: int,
    slope2: int,
) -> tuple[int, int]:
    """
    Compute per-second borrow and supply rates (RAY) for a reserve.

    Below the kink:   borrow = base + slope1 * U / U_opt
    Above the kink:   borrow = base + slope1 + slope2 * (U - U_opt) / (1 - U_opt)
    Supply:           supply = borrow * U * (1 - reserveFactor)

    Both branches give ``base + slope1`` at ``U == U_opt``.

    Returns:
        (borrow_rate_per_sec, supply_rate_per_sec)
    """
    if min(base_rate, slope1, slope2) < 0:
        raise InvalidAmount("rates must be non-negative")
    if not 0 <= reserve_factor_bps <= BPS:
        raise InvalidAmount(f"reserve factor out of range: {reserve_factor_bps}")
    if not 0 < optimal_u_bps <= BPS:
        raise InvalidAmount(f"optimal utilization out of range: {optimal_u_bps}")

    u = utilization(cash, debt)
    optimal_u = optimal_u_bps * WAD // BPS

    if u <= optimal_u:
        borrow_rate = base_rate + mul_div(slope1, u, optimal_u, Rounding.DOWN)
    else:
        excess = u - optimal_u
        borrow_rate = (
            base_rate
            + slope1
            + mul_div(slope2, excess, WAD - optimal_u, Rounding.DOWN)
        )

    supply_rate = bps_mul(
        wad_mul(borrow_rate, u, Rounding.DOWN),
        BPS - reserve_factor_bps,
        Rounding.DOWN,
    )
    return borrow_rate, supply_rate


@dataclass(frozen=True)
class InterestRateModel:
    """A reserve's rate curve parameters (rates are RAY per second)."""

    reserve_factor_bps: int
    optimal_utilization_bps: int
    base_rate_ray_per_sec: int
    slope1_ray_per_sec: int
    slope2_ray_per_sec: int

    def rates(self, cash: int, debt: int) -> tuple[int, int]:
        return get_rates(
            cash,
            debt,
            self.reserve_factor_bps,
            self.optimal_utilization_bps,
            self.base_rate_ray_per_sec,
            self.slope1_ray_per_sec,
            self.slope2_ray_per_sec,
        )

    def curve(self, points: int = 21) -> list[tuple[int, int, int]]:
        """Sample the curve at evenly spaced utilizations.

        Returns a list of (utilization_wad, borrow_rate, supply_rate).
        """
        if points < 2:
            raise InvalidAmount("curve needs at least two points")
        samples = []
        for i in range(points):
            debt = i * WAD // (points - 1)
            borrow_rate, supply_rate = self.rates(WAD - debt, debt)
            samples.append((utilization(WAD - debt, debt), borrow_rate, supply_rate))
        return samples
