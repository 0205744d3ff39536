"""
Risk Scoring Engine - Liquidity Scoring.

============================================================
PURPOSE
============================================================
Multi-factor liquidity score for a pool position range.

============================================================
FACTORS
============================================================
1. MARKET CAP (30%)
   ratio = liquidity * 10000 / min(mcap0, mcap1)
   ratio > 10000 -> 0 (over-supplied pool), else 10000 - ratio

2. DISTRIBUTION (40%)
   current price outside [price(tickLower), price(tickUpper)] -> 0
   else 10000 * 10000 / (10000 + relative range width in bps)

3. STABILITY (30%)
   10000 - average period-over-period variation (bps) of the
   recorded liquidity history; < 2 points -> 10000

Every score call appends the reading to the pool's history.

============================================================
"""

import logging
from typing import Dict, List, Optional

from core import fixed_math
from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import BPS
from core.events import EventLog
from core.exceptions import InsufficientDataError, ValidationError
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic
from risk_management.registry import RiskRegistry

from .config import LiquidityScoringConfig
from .types import LiquidityHistory, LiquidityScoreBreakdown, TokenInfo


logger = logging.getLogger(__name__)


# ============================================================
# FACTOR FUNCTIONS
# ============================================================


def market_cap_score(total_liquidity: int, market_cap0: int, market_cap1: int) -> int:
    min_cap = min(market_cap0, market_cap1)
    ratio = total_liquidity * BPS // min_cap
    if ratio > BPS:
        return 0
    return BPS - ratio


def distribution_score(current_price: int, tick_lower: int, tick_upper: int) -> int:
    price_lower = fixed_math.tick_to_price(tick_lower)
    price_upper = fixed_math.tick_to_price(tick_upper)
    if current_price < price_lower or current_price > price_upper:
        return 0
    width = (price_upper - price_lower) * BPS // current_price
    return BPS * BPS // (BPS + width)


def stability_score(history: List[int]) -> int:
    """Inverse of the mean relative step between consecutive readings."""
    if len(history) < 2:
        return BPS
    variations = [
        abs(curr - prev) * BPS // prev
        for prev, curr in zip(history, history[1:])
        if prev > 0
    ]
    if not variations:
        return BPS
    average = sum(variations) // len(variations)
    return BPS - min(average, BPS)


# ============================================================
# SCORER
# ============================================================


class LiquidityScoring(Transactional):
    """Per-pool liquidity scorer with rolling history."""

    _transactional_fields = ("_history", "_tokens")
    _keyed_fields = ("_history", "_tokens")

    def __init__(
        self,
        registry: RiskRegistry,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        config: Optional[LiquidityScoringConfig] = None,
        pause_guard: Optional[PauseGuard] = None,
    ):
        self._registry = registry
        self._access = access
        self._clock = clock
        self._events = events
        self._config = config or LiquidityScoringConfig()
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("liquidity")
        self._history: Dict[str, LiquidityHistory] = {}
        self._tokens: Dict[str, TokenInfo] = {}

    # --------------------------------------------------------
    # TOKEN METADATA
    # --------------------------------------------------------

    def update_token_info(self, token: str, market_cap: int, daily_volume: int, caller: str) -> TokenInfo:
        """Set market cap and daily volume of a token. Owner-only."""
        self._pause_guard.require_not_paused("liquidity.update_token_info")
        self._access.require_owner(caller)
        if market_cap <= 0:
            raise ValidationError("Market cap must be positive", field_name="market_cap", value=market_cap)
        if daily_volume < 0:
            raise ValidationError("Daily volume cannot be negative", field_name="daily_volume", value=daily_volume)

        with atomic(self.scoped(token), events=self._events):
            info = TokenInfo(
                market_cap=market_cap,
                daily_volume=daily_volume,
                last_update=self._clock.timestamp(),
            )
            self._tokens[token] = info
            self._events.emit(
                "TokenInfoUpdated",
                token=token,
                market_cap=market_cap,
                daily_volume=daily_volume,
            )
        return info

    def token_info(self, token: str) -> TokenInfo:
        return self._tokens.get(token, TokenInfo())

    # --------------------------------------------------------
    # SCORING
    # --------------------------------------------------------

    def score(
        self,
        pool_id: str,
        total_liquidity: int,
        current_price: int,
        token0: str,
        token1: str,
        tick_lower: int,
        tick_upper: int,
    ) -> LiquidityScoreBreakdown:
        """Composite liquidity score; records the reading in the pool history."""
        self._pause_guard.require_not_paused("liquidity.score")
        if total_liquidity <= 0:
            raise ValidationError("Total liquidity must be positive", field_name="total_liquidity", value=total_liquidity)
        if current_price <= 0:
            raise ValidationError("Current price must be positive", field_name="current_price", value=current_price)
        if tick_lower >= tick_upper:
            raise ValidationError(
                f"Invalid tick range: {tick_lower} >= {tick_upper}",
                field_name="tick_lower",
                value=tick_lower,
            )
        info0 = self.token_info(token0)
        info1 = self.token_info(token1)
        if not info0.is_set or not info1.is_set:
            missing = token0 if not info0.is_set else token1
            raise ValidationError(f"Market cap not set for token {missing}", field_name="token", value=missing)

        with self._reentrancy.guard("score"), atomic(self.scoped(pool_id), events=self._events):
            self._registry.require_registered(pool_id)
            history = self._history.get(pool_id)
            if history is None:
                history = LiquidityHistory(capacity=self._config.history_size)
                self._history[pool_id] = history
            history.append(total_liquidity, self._clock.timestamp())

            mcap = market_cap_score(total_liquidity, info0.market_cap, info1.market_cap)
            distribution = distribution_score(current_price, tick_lower, tick_upper)
            stability = stability_score(history.chronological())
            composite = (
                self._config.market_cap_weight * mcap
                + self._config.distribution_weight * distribution
                + self._config.stability_weight * stability
            ) // 100

            breakdown = LiquidityScoreBreakdown(
                market_cap_score=mcap,
                distribution_score=distribution,
                stability_score=stability,
                composite_score=composite,
            )
            self._events.emit("LiquidityScored", pool_id=pool_id, total_liquidity=total_liquidity, **breakdown.to_dict())
            logger.debug(f"Liquidity scored: {pool_id} {breakdown.to_dict()}")
            return breakdown

    def stability_score(self, pool_id: str) -> int:
        """
        Stability of the recorded history.

        Raises:
            InsufficientDataError: fewer than 2 history points
        """
        history = self.liquidity_history(pool_id)
        if len(history) < 2:
            raise InsufficientDataError(
                f"Need at least 2 liquidity history points for {pool_id}, have {len(history)}",
                context={"pool_id": pool_id, "points": len(history)},
            )
        return stability_score(history)

    def liquidity_history(self, pool_id: str) -> List[int]:
        history = self._history.get(pool_id)
        return history.chronological() if history is not None else []
