"""Scaled-integer fixed point arithmetic.

RAY (1e27) carries rates and indices, WAD (1e18) carries amounts, prices and
valuations. Every helper takes an explicit rounding direction: amounts paid
out to a user round DOWN, amounts a user owes round UP.

Intermediate products are unbounded Python ints, but inputs and results are
held to the 256-bit range so behaviour matches a uint256 ledger.
"""

from decimal import Decimal
from enum import Enum

from services.lending.src.lending.domain.errors import ArithmeticOverflow, InvalidAmount

WAD = 10**18
RAY = 10**27
BPS = 10_000
WAD_RAY_RATIO = 10**9
MAX_UINT256 = 2**256 - 1

SECONDS_PER_YEAR = 365 * 24 * 3600


class Rounding(Enum):
    DOWN = "down"
    UP = "up"


def _check_uint(value: int, name: str = "value") -> int:
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"{name} exceeds 256 bits")
    return value


def mul_div(a: int, b: int, denominator: int, rounding: Rounding) -> int:
    """Compute ``a * b / denominator`` with the requested rounding."""
    _check_uint(a, "a")
    _check_uint(b, "b")
    if denominator <= 0:
        raise ArithmeticOverflow("division by zero")

    quotient, remainder = divmod(a * b, denominator)
    if rounding is Rounding.UP and remainder:
        quotient += 1
    return _check_uint(quotient, "result")


def ray_mul(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, b, RAY, rounding)


def ray_div(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, RAY, b, rounding)


def wad_mul(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, b, WAD, rounding)


def wad_div(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, WAD, b, rounding)


def bps_mul(a: int, bps: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, bps, BPS, rounding)


def ray_to_wad(a: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(a, 1, WAD_RAY_RATIO, rounding)


def to_native(amount: int, decimals: int, rounding: Rounding) -> int:
    """Convert a 1e18-normalised amount into the asset's native units."""
    if decimals == 18:
        return _check_uint(amount, "amount")
    return mul_div(amount, 1, 10 ** (18 - decimals), rounding)


def from_native(amount: int, decimals: int) -> int:
    """Convert a native-unit amount into 1e18-normalised units (exact)."""
    _check_uint(amount, "amount")
    return _check_uint(amount * 10 ** (18 - decimals), "amount")


def apr_to_ray_per_sec(apr: Decimal) -> int:
    """Annual rate as a decimal (0.05 = 5%) to a per-second RAY rate, rounded down."""
    if apr < 0:
        raise InvalidAmount(f"APR must be non-negative, got {apr}")
    return int(Decimal(apr) * RAY) // SECONDS_PER_YEAR


def ray_per_sec_to_apr(rate: int) -> Decimal:
    """Per-second RAY rate to an annual decimal rate (0.05 = 5%)."""
    return Decimal(rate * SECONDS_PER_YEAR) / Decimal(RAY)
