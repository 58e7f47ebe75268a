from services.lending.src.lending.schemas.responses import (
    AccountResponse,
    EventsResponse,
    LiquidationResponse,
    PositionResponse,
    RateCurveResponse,
    ReserveHistory,
    ReserveResponse,
)

__all__ = [
    "AccountResponse",
    "EventsResponse",
    "LiquidationResponse",
    "PositionResponse",
    "RateCurveResponse",
    "ReserveHistory",
    "ReserveResponse",
]
