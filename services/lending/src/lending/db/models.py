from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

# WAD/RAY quantities (up to 256 bits) are stored as decimal strings; SQLite
# NUMERIC is float-backed.
BIG_INT = String(80)

pool_events = Table(
    "pool_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_type", String(20), nullable=False),
    # Raw timestamp (unix seconds UTC)
    Column("timestamp", BigInteger, nullable=False),
    Column("timestamp_hour", DateTime(timezone=True), nullable=False),
    # For repay: the borrower; for liquidation: the borrower
    Column("user_address", String(100), nullable=False),
    # For repay: the payer; for liquidation: the liquidator
    Column("counterparty_address", String(100), nullable=True),
    Column("asset", String(32), nullable=False),
    Column("amount", BIG_INT, nullable=False),
    # Liquidation-specific (collateral side)
    Column("collateral_asset", String(32), nullable=True),
    Column("collateral_amount", BIG_INT, nullable=True),
    # Repay: debt fully cleared; collateral: flag enabled
    Column("is_full", Boolean, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Index("idx_pool_events_type", "event_type", "timestamp"),
    Index("idx_pool_events_user", "user_address", "timestamp"),
    Index("idx_pool_events_asset", "asset", "timestamp"),
)

reserve_updates = Table(
    "reserve_updates",
    metadata,
    Column("asset", String(32), nullable=False),
    Column("timestamp", BigInteger, nullable=False),
    Column("timestamp_hour", DateTime(timezone=True), nullable=False),
    # WAD-scaled
    Column("utilization", BIG_INT, nullable=False),
    # RAY per second
    Column("liquidity_rate", BIG_INT, nullable=False),
    Column("borrow_rate", BIG_INT, nullable=False),
    # RAY
    Column("liquidity_index", BIG_INT, nullable=False),
    Column("borrow_index", BIG_INT, nullable=False),
    UniqueConstraint("asset", "timestamp", name="uq_reserve_update_key"),
    Index("ix_reserve_updates_hour", "asset", "timestamp_hour"),
)
