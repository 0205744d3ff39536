"""
Database Persistence Layer - Audit Repository.

============================================================
PURPOSE
============================================================
Repository pattern implementation for the audit trail.

Provides clean interface for:
- Saving committed engine events
- Saving pool risk snapshots
- Querying event history and the latest pool score

AuditTrailWriter subscribes to the EventLog and writes every
committed event through a session factory. A failing write is
raised to the EventLog, which logs it; it never rolls back the
engine operation that produced the event.

============================================================
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from core.events import EngineEvent

from .engine import transaction_scope
from .models import PoolRiskSnapshotRecord, RiskEventRecord


logger = logging.getLogger(__name__)


class RiskAuditRepository:
    """
    Repository for audit trail persistence operations.

    ============================================================
    METHODS
    ============================================================
    - save_event: Persist one committed event
    - save_pool_snapshot: Persist a pool risk computation
    - get_events: Event history, optionally filtered
    - get_latest_pool_snapshot: Most recent pool score
    - get_pool_snapshots: Score history of a pool
    - count_events: Row count per event name

    ============================================================
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self._session = session

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def save_event(self, event: EngineEvent) -> RiskEventRecord:
        record = RiskEventRecord(
            sequence=event.sequence,
            name=event.name,
            pool_id=event.payload.get("pool_id"),
            event_timestamp=event.timestamp,
            payload=_json_safe(event.payload),
        )
        self._session.add(record)
        self._session.flush()
        return record

    def save_pool_snapshot(self, event: EngineEvent) -> PoolRiskSnapshotRecord:
        """
        Persist a PoolRiskUpdated event as a snapshot row.

        Args:
            event: Event carrying the pool risk breakdown
        """
        payload = event.payload
        record = PoolRiskSnapshotRecord(
            pool_id=payload["pool_id"],
            risk_score=payload["risk_score"],
            volatility_score=payload.get("volatility_score"),
            liquidity_score=payload.get("liquidity_score"),
            position_score=payload.get("position_score"),
            computed_at=payload.get("computed_at", event.timestamp),
        )
        self._session.add(record)
        self._session.flush()
        return record

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def get_events(
        self,
        name: Optional[str] = None,
        pool_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[RiskEventRecord]:
        stmt = select(RiskEventRecord)
        if name is not None:
            stmt = stmt.where(RiskEventRecord.name == name)
        if pool_id is not None:
            stmt = stmt.where(RiskEventRecord.pool_id == pool_id)
        stmt = stmt.order_by(RiskEventRecord.sequence).limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def get_latest_pool_snapshot(self, pool_id: str) -> Optional[PoolRiskSnapshotRecord]:
        stmt = (
            select(PoolRiskSnapshotRecord)
            .where(PoolRiskSnapshotRecord.pool_id == pool_id)
            .order_by(desc(PoolRiskSnapshotRecord.computed_at), desc(PoolRiskSnapshotRecord.id))
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_pool_snapshots(self, pool_id: str, limit: int = 100) -> List[PoolRiskSnapshotRecord]:
        stmt = (
            select(PoolRiskSnapshotRecord)
            .where(PoolRiskSnapshotRecord.pool_id == pool_id)
            .order_by(PoolRiskSnapshotRecord.computed_at, PoolRiskSnapshotRecord.id)
            .limit(limit)
        )
        return list(self._session.execute(stmt).scalars().all())

    def count_events(self, name: Optional[str] = None) -> int:
        stmt = select(func.count(RiskEventRecord.id))
        if name is not None:
            stmt = stmt.where(RiskEventRecord.name == name)
        return self._session.execute(stmt).scalar_one()


def _json_safe(value):
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


# =============================================================
# EVENT LOG OBSERVER
# =============================================================

class AuditTrailWriter:
    """
    EventLog observer persisting committed events.

    Usage:
        writer = AuditTrailWriter(session_factory)
        events.subscribe(writer)
    """

    SNAPSHOT_EVENT = "PoolRiskUpdated"

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._written = 0

    @property
    def written(self) -> int:
        return self._written

    def __call__(self, event: EngineEvent) -> None:
        with transaction_scope(self._session_factory) as session:
            repository = RiskAuditRepository(session)
            repository.save_event(event)
            if event.name == self.SNAPSHOT_EVENT:
                repository.save_pool_snapshot(event)
        self._written += 1
        logger.debug(f"Audit event persisted: #{event.sequence} {event.name}")
