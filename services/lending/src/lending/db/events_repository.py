"""Repository for pool events database operations."""

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from services.lending.src.lending.db.models import pool_events
from services.lending.src.lending.domain.models import PoolEvent
from services.lending.src.lending.utils.timestamps import truncate_to_hour


class EventsRepository:
    """Repository for pool events database operations."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def insert_events(self, events: Sequence[PoolEvent]) -> int:
        """
        Insert a batch of committed pool events atomically.

        Args:
            events: Sequence of PoolEvent objects to insert

        Returns:
            Number of rows inserted
        """
        if not events:
            return 0

        created_at = datetime.now(timezone.utc)
        rows = []
        for e in events:
            row = {
                "event_type": e.event_type,
                "timestamp": e.timestamp,
                "timestamp_hour": truncate_to_hour(e.timestamp),
                "user_address": e.user_address,
                "counterparty_address": e.counterparty_address,
                "asset": e.asset,
                "amount": str(e.amount),
                "collateral_asset": e.collateral_asset,
                "collateral_amount": (
                    str(e.collateral_amount) if e.collateral_amount is not None else None
                ),
                "is_full": e.is_full,
                "created_at": created_at,
            }
            rows.append(row)

        with self.engine.begin() as conn:
            result = conn.execute(pool_events.insert(), rows)
            return result.rowcount

    def get_event_counts(self, asset: str | None = None) -> dict[str, int]:
        """
        Get count of events by type (useful for verification).

        Args:
            asset: Optional filter by asset

        Returns:
            Dict mapping event_type to count
        """
        stmt = select(
            pool_events.c.event_type,
            func.count().label("count"),
        ).group_by(pool_events.c.event_type)
        if asset:
            stmt = stmt.where(pool_events.c.asset == asset)

        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            return {row.event_type: row.count for row in result}

    def get_recent_events(
        self, limit: int = 50, event_type: str | None = None
    ) -> list[dict]:
        """
        Get the most recent events across all types or filtered by type.

        Args:
            limit: Maximum number of events to return (default: 50)
            event_type: Optional filter by event type

        Returns:
            List of event dicts ordered newest first
        """
        stmt = select(pool_events)
        if event_type:
            stmt = stmt.where(pool_events.c.event_type == event_type)
        stmt = stmt.order_by(
            pool_events.c.timestamp.desc(), pool_events.c.id.desc()
        ).limit(limit)

        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            events = []
            for row in result:
                events.append({
                    "id": row.id,
                    "event_type": row.event_type,
                    "timestamp": row.timestamp,
                    "timestamp_hour": row.timestamp_hour.isoformat(),
                    "user_address": row.user_address,
                    "counterparty_address": row.counterparty_address,
                    "asset": row.asset,
                    "amount": row.amount,
                    "collateral_asset": row.collateral_asset,
                    "collateral_amount": row.collateral_amount,
                    "is_full": row.is_full,
                })
            return events
