"""
Risk Scoring Engine - Risk Aggregator.

============================================================
PURPOSE
============================================================
The RiskAggregator is the main entry point for risk reads.

It combines:
1. Volatility score (VolatilityOracle)
2. Liquidity risk (registry threshold vs LiquidityScoring
   stability score, as a shortfall proportion)
3. Position score (risk recorded for the pool's own position)

into a composite pool score with weights 35/35/30.

============================================================
CACHING
============================================================
- Pool and user scores are memoized for the cache duration
  (5 minutes by default)
- A fresh cache hit has no side effects at all
- A recompute stores the cache, folds the score into the
  system metrics and emits PoolRiskUpdated
- Manual refresh (owner-only) invalidates and recomputes

============================================================
SYSTEM METRICS
============================================================
Online aggregate (count, running total, high-risk count) over
every recompute. It depends on history, not on current state,
so a stale aggregate is an error rather than a recompute.

============================================================
"""

import logging
from dataclasses import replace
from typing import Dict, Optional

from core import fixed_math
from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import BPS
from core.events import EventLog
from core.exceptions import StaleDataError
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic
from risk_management.positions import PositionManager
from risk_management.registry import RiskRegistry

from .config import AggregatorConfig
from .liquidity import LiquidityScoring
from .types import PoolRiskBreakdown, RiskCache, SystemMetrics
from .volatility import VolatilityOracle


logger = logging.getLogger(__name__)


def liquidity_shortfall_score(liquidity: int, threshold: int) -> int:
    """Proportion by which liquidity falls short of threshold, in bps."""
    if threshold <= 0 or liquidity >= threshold:
        return 0
    return min(BPS, fixed_math.mul_div(threshold - liquidity, BPS, threshold))


class RiskAggregator(Transactional):
    """
    Composite pool, user and system risk.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Serve fresh memoized scores unchanged
    2. Recompute stale pool scores from the scorers
    3. Weight user risk by position size across pools
    4. Maintain the system-wide online aggregate

    ============================================================
    """

    _transactional_fields = ("_pool_cache", "_user_cache", "_breakdowns", "_metrics")
    _keyed_fields = ("_pool_cache", "_user_cache", "_breakdowns")

    def __init__(
        self,
        registry: RiskRegistry,
        volatility: VolatilityOracle,
        liquidity: LiquidityScoring,
        positions: PositionManager,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        config: Optional[AggregatorConfig] = None,
        pause_guard: Optional[PauseGuard] = None,
    ):
        self._registry = registry
        self._volatility = volatility
        self._liquidity = liquidity
        self._positions = positions
        self._access = access
        self._clock = clock
        self._events = events
        self.config = config or AggregatorConfig()
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("aggregator")

        self._pool_cache: Dict[str, RiskCache] = {}
        self._user_cache: Dict[str, RiskCache] = {}
        self._breakdowns: Dict[str, PoolRiskBreakdown] = {}
        self._metrics = SystemMetrics()

    # --------------------------------------------------------
    # CACHE HELPERS
    # --------------------------------------------------------

    def _is_fresh(self, cached: Optional[RiskCache], now: int) -> bool:
        return cached is not None and now - cached.last_update < self.config.cache_duration_seconds

    def cached_pool_risk(self, pool_id: str) -> Optional[RiskCache]:
        return self._pool_cache.get(pool_id)

    def cached_user_risk(self, user: str) -> Optional[RiskCache]:
        return self._user_cache.get(user)

    # --------------------------------------------------------
    # POOL RISK
    # --------------------------------------------------------

    def pool_risk(self, pool_id: str) -> int:
        """
        Composite risk score of a pool (0-10000).

        Returns the cached value unchanged while it is fresh;
        otherwise recomputes, caches and folds into system metrics.
        """
        now = self._clock.timestamp()
        cached = self._pool_cache.get(pool_id)
        if self._is_fresh(cached, now):
            return cached.risk_score

        with self._reentrancy.guard("pool_risk"), atomic(self.scoped(pool_id), events=self._events):
            return self._pool_risk(pool_id)

    def _pool_risk(self, pool_id: str) -> int:
        now = self._clock.timestamp()
        cached = self._pool_cache.get(pool_id)
        if self._is_fresh(cached, now):
            return cached.risk_score

        breakdown = self._compute_pool_risk(pool_id, now)
        self._pool_cache[pool_id] = RiskCache(risk_score=breakdown.risk_score, last_update=now)
        self._breakdowns[pool_id] = breakdown
        self._fold_into_metrics(breakdown.risk_score, now)

        self._events.emit("PoolRiskUpdated", **breakdown.to_dict())
        logger.info(
            f"Pool risk updated: {pool_id} score={breakdown.risk_score} "
            f"(vol={breakdown.volatility_score}, liq={breakdown.liquidity_score}, "
            f"pos={breakdown.position_score})"
        )
        return breakdown.risk_score

    def _compute_pool_risk(self, pool_id: str, now: int) -> PoolRiskBreakdown:
        params = self._registry.require_registered(pool_id)

        volatility_score = self._volatility.volatility_score(pool_id)
        stability = self._liquidity.stability_score(pool_id)
        liquidity_score = liquidity_shortfall_score(stability, params.liquidity_threshold)
        position_score = self._positions.risk_score(pool_id, pool_id)

        risk_score = fixed_math.clamp_score(fixed_math.weighted_average(
            [volatility_score, liquidity_score, position_score],
            [self.config.volatility_weight, self.config.liquidity_weight, self.config.position_weight],
        ))

        return PoolRiskBreakdown(
            pool_id=pool_id,
            volatility_score=volatility_score,
            liquidity_score=liquidity_score,
            position_score=position_score,
            risk_score=risk_score,
            computed_at=now,
        )

    def _fold_into_metrics(self, score: int, now: int) -> None:
        self._metrics.risk_count += 1
        self._metrics.total_risk += score
        if score >= self.config.high_risk_threshold:
            self._metrics.high_risk_count += 1
        self._metrics.last_update = now

    def pool_risk_breakdown(self, pool_id: str) -> PoolRiskBreakdown:
        """Component scores behind the current pool score."""
        self.pool_risk(pool_id)
        return self._breakdowns[pool_id]

    # --------------------------------------------------------
    # USER RISK
    # --------------------------------------------------------

    def user_risk(self, user: str) -> int:
        """
        Position-size weighted pool risk across every registered pool.

        O(registered pools): each pool score is re-derived through
        the pool cache. Returns 0 for a user with no positions.
        """
        now = self._clock.timestamp()
        cached = self._user_cache.get(user)
        if self._is_fresh(cached, now):
            return cached.risk_score

        with self._reentrancy.guard("user_risk"), \
                atomic(self.scoped(user, *self._registry.registered_pools()), events=self._events):
            return self._user_risk(user, now)

    def _user_risk(self, user: str, now: int) -> int:
        sizes = []
        scores = []
        for pool_id in self._registry.registered_pools():
            if not self._positions.has_position(user, pool_id):
                continue
            sizes.append(self._positions.get(user, pool_id).size)
            scores.append(self._pool_risk(pool_id))

        total_size = sum(sizes)
        score = fixed_math.weighted_average(scores, sizes) if sizes else 0
        self._user_cache[user] = RiskCache(risk_score=score, last_update=now)
        self._events.emit("UserRiskUpdated", user=user, risk_score=score, total_size=total_size)
        return score

    # --------------------------------------------------------
    # SYSTEM RISK
    # --------------------------------------------------------

    def system_risk(self) -> SystemMetrics:
        """
        The online aggregate.

        Raises:
            StaleDataError: aggregate older than the cache duration
        """
        now = self._clock.timestamp()
        age = now - self._metrics.last_update
        if self._metrics.last_update == 0 or age >= self.config.cache_duration_seconds:
            raise StaleDataError(
                "System risk metrics are stale",
                context={"last_update": self._metrics.last_update, "age_seconds": age},
            )
        return replace(self._metrics)

    def reset_system_metrics(self, caller: str) -> None:
        self._pause_guard.require_not_paused("aggregator.reset_system_metrics")
        self._access.require_owner(caller)
        with atomic(self.scoped(), events=self._events):
            self._metrics = SystemMetrics()
            self._events.emit("SystemMetricsReset", caller=caller)
        logger.info(f"System metrics reset by {caller}")

    # --------------------------------------------------------
    # MANUAL INVALIDATION
    # --------------------------------------------------------

    def refresh_pool_cache(self, pool_id: str, caller: str) -> int:
        """Drop the cached pool score and recompute it. Owner-only."""
        self._pause_guard.require_not_paused("aggregator.refresh_pool_cache")
        self._access.require_owner(caller)

        with self._reentrancy.guard("refresh_pool_cache"), \
                atomic(self.scoped(pool_id), events=self._events):
            self._pool_cache.pop(pool_id, None)
            return self._pool_risk(pool_id)

    def refresh_user_cache(self, user: str, caller: str) -> int:
        """Drop the cached user score and recompute it. Owner-only."""
        self._pause_guard.require_not_paused("aggregator.refresh_user_cache")
        self._access.require_owner(caller)

        with self._reentrancy.guard("refresh_user_cache"), \
                atomic(self.scoped(user, *self._registry.registered_pools()), events=self._events):
            self._user_cache.pop(user, None)
            return self._user_risk(user, self._clock.timestamp())
