"""
Database ORM Models - Audit Tables.

============================================================
AUDIT SCHEMA
============================================================

Two append-only tables:
- risk_events: every committed engine event
- pool_risk_snapshots: every recomputed pool risk score

All engine timestamps are unix seconds from the engine clock;
recorded_at is the wall-clock insert time.

============================================================
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, BigInteger, String, DateTime, JSON, Index,
)

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# 1. RISK EVENTS TABLE
# =============================================================

class RiskEventRecord(Base):
    """
    Committed engine event.

    Source: core.events.EventLog (via AuditTrailWriter)
    Update Frequency: Per committed operation
    """
    __tablename__ = "risk_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sequence = Column(BigInteger, nullable=False, index=True)
    name = Column(String(64), nullable=False, index=True)
    pool_id = Column(String(128), nullable=True, index=True)
    event_timestamp = Column(BigInteger, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_risk_events_name_ts", "name", "event_timestamp"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "name": self.name,
            "pool_id": self.pool_id,
            "event_timestamp": self.event_timestamp,
            "payload": self.payload,
        }


# =============================================================
# 2. POOL RISK SNAPSHOTS TABLE
# =============================================================

class PoolRiskSnapshotRecord(Base):
    """
    Recomputed composite pool risk.

    Source: PoolRiskUpdated events
    Update Frequency: Per cache miss in RiskAggregator
    """
    __tablename__ = "pool_risk_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pool_id = Column(String(128), nullable=False, index=True)
    risk_score = Column(Integer, nullable=False)
    volatility_score = Column(Integer, nullable=True)
    liquidity_score = Column(Integer, nullable=True)
    position_score = Column(Integer, nullable=True)
    computed_at = Column(BigInteger, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_pool_risk_pool_ts", "pool_id", "computed_at"),
    )

    def to_dict(self) -> dict:
        return {
            "pool_id": self.pool_id,
            "risk_score": self.risk_score,
            "volatility_score": self.volatility_score,
            "liquidity_score": self.liquidity_score,
            "position_score": self.position_score,
            "computed_at": self.computed_at,
        }
