from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlalchemy.engine import Engine

from services.lending.src.lending.db.engine import get_engine
from services.lending.src.lending.domain.errors import (
    AssetNotInitialized,
    PoolError,
    PoolPaused,
    PriceUnavailable,
)
from services.lending.src.lending.domain.models import ALL, Amount
from services.lending.src.lending.domain.pool import LendingPool
from services.lending.src.lending.service import get_pool

_STATUS_BY_ERROR = {
    AssetNotInitialized: 404,
    PoolPaused: 423,
    PriceUnavailable: 503,
}


def get_db_engine() -> Engine:
    return get_engine()


def get_lending_pool() -> LendingPool:
    return get_pool()


def parse_amount(value: int | str) -> Amount:
    return ALL if value == "all" else value


@contextmanager
def pool_errors() -> Iterator[None]:
    """Translate pool errors into HTTP errors carrying the error kind."""
    try:
        yield
    except PoolError as e:
        status = _STATUS_BY_ERROR.get(type(e), 400)
        raise HTTPException(
            status_code=status, detail={"kind": e.kind, "message": str(e)}
        ) from e
