"""Health factor calculation and pre-action risk checks."""

from typing import Iterable, Protocol

from services.lending.src.lending.domain import position_ledger
from services.lending.src.lending.domain.math import (
    BPS,
    WAD,
    Rounding,
    bps_mul,
    mul_div,
    wad_mul,
)
from services.lending.src.lending.domain.models import (
    AccountSnapshot,
    PositionDelta,
    Reserve,
    UserPosition,
)
from services.lending.src.lending.domain.oracle import PriceOracle
from services.lending.src.lending.domain.reserve_ledger import projected_indices


class LedgerView(Protocol):
    """Read access to reserves and positions (committed or staged)."""

    now: int

    def reserve(self, asset: str) -> Reserve:
        ...

    def position(self, user: str, asset: str) -> UserPosition:
        ...

    def positions_of(self, user: str) -> list[UserPosition]:
        ...


class RiskEngine:
    """
    Values a user's positions in USD and computes the health factor.

    HF = Σ(collateral_i × price_i × liquidationThreshold_i) / Σ(debt_j × price_j)

    Collateral is valued rounding down and debt rounding up, so every
    rounding error makes an account look less healthy, never more.
    Reserves not yet accrued in the current operation are valued at their
    projected indices.
    """

    def __init__(self, oracle: PriceOracle):
        self.oracle = oracle

    def _balances(
        self, view: LedgerView, position: UserPosition
    ) -> tuple[Reserve, int, int]:
        reserve = view.reserve(position.asset)
        liquidity_index, borrow_index = projected_indices(reserve, view.now)
        return (
            reserve,
            position_ledger.current_supply(position, liquidity_index),
            position_ledger.current_borrow(position, borrow_index),
        )

    def account_data(
        self,
        view: LedgerView,
        user: str,
        deltas: Iterable[PositionDelta] = (),
    ) -> AccountSnapshot:
        """
        Compute the account snapshot, optionally with hypothetical position changes.

        Prices are only looked up for assets that contribute collateral or
        debt, so an unpriced asset the user merely holds outside collateral
        does not block the computation.
        """
        by_asset = {p.asset: p for p in view.positions_of(user)}
        pending: dict[str, list[PositionDelta]] = {}
        for delta in deltas:
            pending.setdefault(delta.asset, []).append(delta)
            if delta.asset not in by_asset:
                by_asset[delta.asset] = view.position(user, delta.asset)

        collateral = debt = weighted = power = 0
        for asset in sorted(by_asset):
            position = by_asset[asset]
            reserve, supply, borrow = self._balances(view, position)
            use_as_collateral = position.use_as_collateral
            for delta in pending.get(asset, ()):
                supply = max(supply + delta.supply_delta, 0)
                borrow = max(borrow + delta.borrow_delta, 0)
                if delta.use_as_collateral is not None:
                    use_as_collateral = delta.use_as_collateral

            counts_as_collateral = use_as_collateral and supply > 0
            if not counts_as_collateral and borrow == 0:
                continue

            price = self.oracle.price_usd_1e18(asset)
            if counts_as_collateral:
                value = wad_mul(supply, price, Rounding.DOWN)
                collateral += value
                weighted += bps_mul(
                    value, reserve.params.liquidation_threshold_bps, Rounding.DOWN
                )
                power += bps_mul(value, reserve.params.ltv_bps, Rounding.DOWN)
            if borrow:
                debt += wad_mul(borrow, price, Rounding.UP)

        return AccountSnapshot(
            user=user,
            collateral_value_usd=collateral,
            debt_value_usd=debt,
            weighted_collateral_usd=weighted,
            borrowing_power_usd=power,
        )

    def health_factor(self, view: LedgerView, user: str) -> int | None:
        return self.account_data(view, user).health_factor

    def has_debt(self, view: LedgerView, user: str) -> bool:
        """True if the user owes anything in any reserve. Needs no prices."""
        return any(p.borrow.principal > 0 for p in view.positions_of(user))

    def would_be_safe(
        self, view: LedgerView, user: str, deltas: Iterable[PositionDelta]
    ) -> bool:
        """True if the account keeps health factor >= 1 after the hypothetical changes.

        An account that owes nothing before or after the changes is safe
        without consulting the oracle.
        """
        deltas = list(deltas)
        if not any(d.borrow_delta > 0 for d in deltas) and not self.has_debt(view, user):
            return True
        return self.account_data(view, user, deltas).is_healthy

    def max_safe_withdrawal(self, view: LedgerView, user: str, asset: str) -> int:
        """Largest amount of ``asset`` the user can withdraw keeping health factor >= 1.

        Uncapped by reserve cash; callers clamp to liquidity separately.
        """
        position = view.position(user, asset)
        reserve, supply, _ = self._balances(view, position)
        if supply == 0:
            return 0
        if not position.use_as_collateral or reserve.params.liquidation_threshold_bps == 0:
            return supply
        if not self.has_debt(view, user):
            return supply

        snapshot = self.account_data(view, user)
        if snapshot.weighted_collateral_usd <= snapshot.debt_value_usd:
            return 0

        price = self.oracle.price_usd_1e18(asset)
        slack = snapshot.weighted_collateral_usd - snapshot.debt_value_usd
        candidate = min(
            mul_div(
                slack,
                BPS * WAD,
                reserve.params.liquidation_threshold_bps * price,
                Rounding.DOWN,
            ),
            supply,
        )

        def safe(amount: int) -> bool:
            return self.would_be_safe(view, user, [PositionDelta(asset, supply_delta=-amount)])

        if safe(candidate):
            return candidate

        # Per-asset rounding can leave the closed form a few units too high.
        low, high = 0, candidate
        while high - low > 1:
            mid = (low + high) // 2
            if safe(mid):
                low = mid
            else:
                high = mid
        return low
