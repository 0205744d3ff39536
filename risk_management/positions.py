"""
Risk Management - Position Manager.

============================================================
RESPONSIBILITY
============================================================
Tracks liquidity positions per (user, pool) and their risk.

- Owner writes positions (single and batch)
- Pool managers push per-position risk scores
- Positions at or above the high-risk threshold are
  force-closed as soon as their score lands

============================================================
RULES
============================================================
1. size > 0 and tick_lower < tick_upper on every write
2. risk_score in [0, 10000]
3. A write resets the risk score to 0
4. batch_update is all-or-nothing (unlike the registry batch)
5. Positions are immutable; reads never hand out writable state

============================================================
"""

import logging
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple

from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import BPS, HIGH_RISK_THRESHOLD, pool_manager_resource
from core.events import EventLog
from core.exceptions import (
    AuthorizationError,
    PositionNotFoundError,
    StateError,
    ValidationError,
)
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic

from .registry import RiskRegistry
from .types import Position


logger = logging.getLogger(__name__)


PositionKey = Tuple[str, str]


class PositionManager(Transactional):
    """Position book with risk-triggered forced closes."""

    _transactional_fields = ("_positions",)
    _keyed_fields = ("_positions",)

    def __init__(
        self,
        registry: RiskRegistry,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        pause_guard: Optional[PauseGuard] = None,
        high_risk_threshold: int = HIGH_RISK_THRESHOLD,
    ):
        self._registry = registry
        self._access = access
        self._clock = clock
        self._events = events
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("positions")
        self._high_risk_threshold = high_risk_threshold
        self._positions: Dict[PositionKey, Position] = {}

    @property
    def high_risk_threshold(self) -> int:
        return self._high_risk_threshold

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def get(self, user: str, pool_id: str) -> Position:
        position = self._positions.get((user, pool_id))
        if position is None or position.size == 0:
            raise PositionNotFoundError(user, pool_id)
        return position

    def has_position(self, user: str, pool_id: str) -> bool:
        position = self._positions.get((user, pool_id))
        return position is not None and position.size > 0

    def risk_score(self, user: str, pool_id: str) -> int:
        """Stored risk score, 0 when no position exists."""
        position = self._positions.get((user, pool_id))
        return position.risk_score if position is not None else 0

    def user_positions(self, user: str) -> Dict[str, Position]:
        return {pool: p for (u, pool), p in self._positions.items() if u == user}

    def pool_positions(self, pool_id: str) -> Dict[str, Position]:
        return {u: p for (u, pool), p in self._positions.items() if pool == pool_id}

    def concentration(self, pool_id: str) -> int:
        """Share of the largest single position in the pool, in bps."""
        sizes = [p.size for p in self.pool_positions(pool_id).values()]
        total = sum(sizes)
        if total == 0:
            return 0
        return max(sizes) * BPS // total

    # --------------------------------------------------------
    # WRITES
    # --------------------------------------------------------

    @staticmethod
    def _validate_position(size: int, tick_lower: int, tick_upper: int) -> None:
        if size <= 0:
            raise ValidationError("Position size must be positive", field_name="size", value=size)
        if tick_lower >= tick_upper:
            raise ValidationError(
                f"Invalid tick range: {tick_lower} >= {tick_upper}",
                field_name="tick_lower",
                value=tick_lower,
            )

    def update(
        self,
        user: str,
        pool_id: str,
        size: int,
        tick_lower: int,
        tick_upper: int,
        caller: str,
    ) -> Position:
        """Create or overwrite a position. Owner-only."""
        self._pause_guard.require_not_paused("positions.update")
        self._access.require_owner(caller)
        self._validate_position(size, tick_lower, tick_upper)

        with self._reentrancy.guard("update"), \
                atomic(self.scoped((user, pool_id)), events=self._events):
            return self._write(user, pool_id, size, tick_lower, tick_upper)

    def batch_update(
        self,
        users: Sequence[str],
        pool_ids: Sequence[str],
        sizes: Sequence[int],
        tick_lowers: Sequence[int],
        tick_uppers: Sequence[int],
        caller: str,
    ) -> int:
        """Write many positions; any invalid entry fails the whole call."""
        self._pause_guard.require_not_paused("positions.batch_update")
        self._access.require_owner(caller)

        count = len(users)
        if count == 0:
            raise ValidationError("Empty batch", field_name="users")
        lengths = {len(pool_ids), len(sizes), len(tick_lowers), len(tick_uppers)}
        if lengths != {count}:
            raise ValidationError("Array length mismatch", field_name="batch")
        for size, lower, upper in zip(sizes, tick_lowers, tick_uppers):
            self._validate_position(size, lower, upper)

        with self._reentrancy.guard("batch_update"), \
                atomic(self.scoped(*zip(users, pool_ids)), events=self._events):
            for user, pool_id, size, lower, upper in zip(users, pool_ids, sizes, tick_lowers, tick_uppers):
                self._write(user, pool_id, size, lower, upper)

        logger.info(f"Batch position update applied: {count} positions")
        return count

    def _write(self, user: str, pool_id: str, size: int, tick_lower: int, tick_upper: int) -> Position:
        self._registry.require_registered(pool_id)
        position = Position(
            size=size,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            risk_score=0,
            last_update=self._clock.timestamp(),
        )
        self._positions[(user, pool_id)] = position
        self._events.emit(
            "PositionUpdated",
            user=user,
            pool_id=pool_id,
            size=size,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )
        return position

    def update_risk(self, user: str, pool_id: str, new_score: int, caller: str) -> bool:
        """
        Store a new risk score for a position.

        Only a registry manager of the pool may call this. A score at
        or above the high-risk threshold closes the position at once.

        Returns:
            True if the position was force-closed
        """
        self._pause_guard.require_not_paused("positions.update_risk")
        if not self._registry.is_manager(pool_id, caller):
            raise AuthorizationError(caller, pool_manager_resource(pool_id))
        if not 0 <= new_score <= BPS:
            raise ValidationError("Risk score out of range", field_name="new_score", value=new_score)

        with self._reentrancy.guard("update_risk"), \
                atomic(self.scoped((user, pool_id)), events=self._events):
            position = self.get(user, pool_id)
            self._positions[(user, pool_id)] = replace(
                position,
                risk_score=new_score,
                last_update=self._clock.timestamp(),
            )
            self._events.emit("PositionRiskUpdated", user=user, pool_id=pool_id, risk_score=new_score)

            if new_score >= self._high_risk_threshold:
                self._close(user, pool_id, reason="high_risk")
                return True
            return False

    def close_risky_position(self, user: str, pool_id: str, caller: str) -> None:
        """Close a position whose stored score already meets the threshold."""
        self._pause_guard.require_not_paused("positions.close_risky_position")

        with self._reentrancy.guard("close_risky_position"), \
                atomic(self.scoped((user, pool_id)), events=self._events):
            position = self.get(user, pool_id)
            if position.risk_score < self._high_risk_threshold:
                raise StateError(
                    f"Position risk {position.risk_score} below threshold {self._high_risk_threshold}",
                    context={"user": user, "pool_id": pool_id, "caller": caller},
                )
            self._close(user, pool_id, reason="high_risk")

    def close_position(self, user: str, pool_id: str, caller: str) -> None:
        """Manual close by the position holder or the owner."""
        self._pause_guard.require_not_paused("positions.close_position")
        if caller != user and not self._access.is_owner(caller):
            raise AuthorizationError(caller, f"position:{user}:{pool_id}")

        with self._reentrancy.guard("close_position"), \
                atomic(self.scoped((user, pool_id)), events=self._events):
            self.get(user, pool_id)
            self._close(user, pool_id, reason="manual")

    def _close(self, user: str, pool_id: str, reason: str) -> None:
        position = self._positions.pop((user, pool_id))
        self._events.emit(
            "PositionClosed",
            user=user,
            pool_id=pool_id,
            size=position.size,
            risk_score=position.risk_score,
            reason=reason,
        )
        logger.warning(
            f"Position closed ({reason}): user={user} pool={pool_id} "
            f"size={position.size} risk={position.risk_score}"
        )
