"""Error kinds raised by the lending pool.

Every mutating pool call either commits fully or raises one of these with no
state change. The ``kind`` attribute is the stable identifier surfaced by the
HTTP layer.
"""


class PoolError(Exception):
    """Base class for all pool failures."""

    kind = "PoolError"

    def __init__(self, message: str = ""):
        self.message = message or self.kind
        super().__init__(self.message)


class InvalidAmount(PoolError):
    kind = "InvalidAmount"


class AssetNotInitialized(PoolError):
    kind = "AssetNotInitialized"

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Reserve not initialized: {asset}")


class ReserveAlreadyInitialized(PoolError):
    kind = "ReserveAlreadyInitialized"

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Reserve already initialized: {asset}")


class InvalidRiskParams(PoolError):
    kind = "InvalidRiskParams"


class AssetNotBorrowable(PoolError):
    kind = "AssetNotBorrowable"

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Borrowing is disabled for {asset}")


class InsufficientLiquidity(PoolError):
    kind = "InsufficientLiquidity"


class HealthFactorTooLow(PoolError):
    kind = "HealthFactorTooLow"


class NotLiquidatable(PoolError):
    kind = "NotLiquidatable"


class ExceedsCloseFactor(PoolError):
    kind = "ExceedsCloseFactor"


class PriceUnavailable(PoolError):
    kind = "PriceUnavailable"

    def __init__(self, asset: str, reason: str = "price not set"):
        self.asset = asset
        self.reason = reason
        super().__init__(f"Price unavailable for {asset}: {reason}")


class ArithmeticOverflow(PoolError):
    kind = "ArithmeticOverflow"


class PoolPaused(PoolError):
    kind = "PoolPaused"


class TransferFailed(PoolError):
    kind = "TransferFailed"
