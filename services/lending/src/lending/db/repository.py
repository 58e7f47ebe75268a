from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine

from services.lending.src.lending.db.models import reserve_updates
from services.lending.src.lending.domain.models import ReserveUpdated
from services.lending.src.lending.utils.timestamps import to_unix, truncate_to_hour

_VALUE_COLUMNS = (
    "utilization",
    "liquidity_rate",
    "borrow_rate",
    "liquidity_index",
    "borrow_index",
)


class ReserveUpdateRepository:
    """Accrual observations, one row per (asset, timestamp)."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._is_sqlite = "sqlite" in str(engine.url)

    def upsert_updates(self, updates: Sequence[ReserveUpdated]) -> int:
        if not updates:
            return 0

        rows = []
        for u in updates:
            row = {
                "asset": u.asset,
                "timestamp": u.timestamp,
                "timestamp_hour": truncate_to_hour(u.timestamp),
            }
            for name in _VALUE_COLUMNS:
                row[name] = str(getattr(u, name))
            rows.append(row)

        with self.engine.begin() as conn:
            if self._is_sqlite:
                return self._upsert_sqlite(conn, rows)
            else:
                return self._upsert_postgres(conn, rows)

    def _upsert_postgres(self, conn: Connection, rows: list[dict]) -> int:
        stmt = pg_insert(reserve_updates).values(rows)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_reserve_update_key",
            set_={name: stmt.excluded[name] for name in _VALUE_COLUMNS},
        )
        result = conn.execute(stmt)
        return result.rowcount

    def _upsert_sqlite(self, conn: Connection, rows: list[dict]) -> int:
        stmt = sqlite_insert(reserve_updates).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["asset", "timestamp"],
            set_={name: stmt.excluded[name] for name in _VALUE_COLUMNS},
        )
        result = conn.execute(stmt)
        return result.rowcount

    def get_updates(
        self, asset: str, from_time: datetime, to_time: datetime
    ) -> list[ReserveUpdated]:
        stmt = (
            select(reserve_updates)
            .where(reserve_updates.c.asset == asset)
            .where(reserve_updates.c.timestamp >= to_unix(from_time))
            .where(reserve_updates.c.timestamp <= to_unix(to_time))
            .order_by(reserve_updates.c.timestamp)
        )

        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            return [_to_update(row) for row in result]

    def get_latest(self, asset: str) -> ReserveUpdated | None:
        stmt = (
            select(reserve_updates)
            .where(reserve_updates.c.asset == asset)
            .order_by(reserve_updates.c.timestamp.desc())
            .limit(1)
        )

        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
            if row is None:
                return None
            return _to_update(row)


def _to_update(row) -> ReserveUpdated:
    return ReserveUpdated(
        asset=row.asset,
        timestamp=row.timestamp,
        utilization=int(row.utilization),
        liquidity_rate=int(row.liquidity_rate),
        borrow_rate=int(row.borrow_rate),
        liquidity_index=int(row.liquidity_index),
        borrow_index=int(row.borrow_index),
    )
