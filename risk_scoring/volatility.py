"""
Risk Scoring Engine - Volatility Oracle.

============================================================
PURPOSE
============================================================
Keeps a rolling price window per pool and turns it into a
volatility score.

============================================================
SCORING
============================================================
Primary score:
    stddev(valid samples) * 10000 / |mean(valid samples)|
    population stddev, capped at 10000, zero mean scores 0

EWMA score (read-only, faster reacting):
    EWMA of |p[i] - p[i-1]| * 10000 / |p[i-1]|

Prices are signed integers in PRECISION scale. Unset slots
are None, so a recorded price of 0 is a real observation.

============================================================
"""

import logging
from typing import Dict, List, Optional

from core import fixed_math
from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import BPS, RESOURCE_PRICE_FEEDER
from core.events import EventLog
from core.exceptions import (
    AlreadyInStateError,
    InsufficientDataError,
    StateError,
    ValidationError,
)
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic
from risk_management.registry import RiskRegistry

from .config import VolatilityConfig
from .types import VolatilitySeries


logger = logging.getLogger(__name__)


def score_samples(samples: List[int]) -> int:
    """Normalized population standard deviation of samples, in bps."""
    if len(samples) < 2:
        raise InsufficientDataError(
            f"Need at least 2 valid price samples, have {len(samples)}",
            context={"valid_samples": len(samples)},
        )
    avg = abs(fixed_math.mean(samples))
    if avg == 0:
        return 0
    deviation = fixed_math.std_dev(samples)
    return fixed_math.clamp_score(deviation * BPS // avg)


def ewma_score_samples(samples: List[int], alpha_bps: int) -> int:
    """EWMA of relative absolute price deltas, in bps."""
    if len(samples) < 2:
        raise InsufficientDataError(
            f"Need at least 2 valid price samples, have {len(samples)}",
            context={"valid_samples": len(samples)},
        )
    deltas = [
        abs(curr - prev) * BPS // abs(prev)
        for prev, curr in zip(samples, samples[1:])
        if prev != 0
    ]
    if not deltas:
        return 0
    return fixed_math.clamp_score(fixed_math.ewma(deltas, alpha_bps))


class VolatilityOracle(Transactional):
    """Per-pool rolling price windows and volatility scores."""

    _transactional_fields = ("_series",)
    _keyed_fields = ("_series",)

    def __init__(
        self,
        registry: RiskRegistry,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        config: Optional[VolatilityConfig] = None,
        pause_guard: Optional[PauseGuard] = None,
    ):
        self._registry = registry
        self._access = access
        self._clock = clock
        self._events = events
        self._config = config or VolatilityConfig()
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("volatility")
        self._series: Dict[str, VolatilitySeries] = {}

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    def initialize(self, pool_id: str, window_size: int, caller: str) -> None:
        """Create the price window of a pool. Owner-only."""
        self._pause_guard.require_not_paused("volatility.initialize")
        self._access.require_owner(caller)
        self._validate_window(window_size)

        with self._reentrancy.guard("initialize"), \
                atomic(self.scoped(pool_id), events=self._events):
            self._registry.require_registered(pool_id)
            if pool_id in self._series:
                raise AlreadyInStateError(f"Volatility window already initialized: {pool_id}")
            self._series[pool_id] = VolatilitySeries(window_size=window_size)
            self._events.emit("VolatilityInitialized", pool_id=pool_id, window_size=window_size)
            logger.info(f"Volatility window initialized: {pool_id} size={window_size}")

    def is_initialized(self, pool_id: str) -> bool:
        return pool_id in self._series

    def resize(self, pool_id: str, new_size: int, caller: str) -> None:
        """Change the window size, keeping the most recent samples in order."""
        self._pause_guard.require_not_paused("volatility.resize")
        self._access.require_owner(caller)
        self._validate_window(new_size)

        with self._reentrancy.guard("resize"), atomic(self.scoped(pool_id), events=self._events):
            series = self._require_series(pool_id)
            old_size = series.window_size
            keep = series.chronological()[-min(old_size, new_size):]
            resized = VolatilitySeries(
                window_size=new_size,
                prices=keep + [None] * (new_size - len(keep)),
                current_index=len(keep) % new_size,
            )
            self._series[pool_id] = resized
            self._events.emit(
                "VolatilityWindowResized",
                pool_id=pool_id,
                old_size=old_size,
                new_size=new_size,
            )
            logger.info(f"Volatility window resized: {pool_id} {old_size} -> {new_size}")

    def _validate_window(self, window_size: int) -> None:
        if window_size < self._config.min_window_size:
            raise ValidationError(
                f"Window size must be at least {self._config.min_window_size}",
                field_name="window_size",
                value=window_size,
            )

    # --------------------------------------------------------
    # SAMPLES
    # --------------------------------------------------------

    def record_price(self, pool_id: str, price: int, caller: str) -> None:
        """Store a price sample without scoring (accumulation path)."""
        self._pause_guard.require_not_paused("volatility.record_price")
        self._access.require(caller, RESOURCE_PRICE_FEEDER)

        with self._reentrancy.guard("record_price"), \
                atomic(self.scoped(pool_id), events=self._events):
            self._write_sample(pool_id, price)

    def record_price_and_score(self, pool_id: str, price: int, caller: str) -> int:
        """
        Store a price sample and return the updated volatility score.

        Raises:
            InsufficientDataError: fewer than 2 valid samples; the
                write is discarded with the failed operation
        """
        self._pause_guard.require_not_paused("volatility.record_price_and_score")
        self._access.require(caller, RESOURCE_PRICE_FEEDER)

        with self._reentrancy.guard("record_price_and_score"), \
                atomic(self.scoped(pool_id), events=self._events):
            series = self._write_sample(pool_id, price)
            return score_samples(series.chronological())

    def _write_sample(self, pool_id: str, price: int) -> VolatilitySeries:
        self._registry.require_registered(pool_id)
        series = self._require_series(pool_id)
        slot = series.current_index
        series.write(price)
        self._events.emit("PriceRecorded", pool_id=pool_id, price=price, slot=slot)
        return series

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def volatility_score(self, pool_id: str) -> int:
        """Score of the current window."""
        return score_samples(self._require_series(pool_id).chronological())

    def ewma_volatility(self, pool_id: str, alpha_bps: Optional[int] = None) -> int:
        """EWMA variant of the score; does not touch state."""
        alpha = alpha_bps if alpha_bps is not None else self._config.ewma_alpha_bps
        if not 0 < alpha <= BPS:
            raise ValidationError("EWMA alpha out of range", field_name="alpha_bps", value=alpha)
        return ewma_score_samples(self._require_series(pool_id).chronological(), alpha)

    def samples(self, pool_id: str) -> List[int]:
        """Valid samples, oldest first."""
        return self._require_series(pool_id).chronological()

    def window(self, pool_id: str) -> VolatilitySeries:
        series = self._require_series(pool_id)
        return VolatilitySeries(
            window_size=series.window_size,
            prices=list(series.prices),
            current_index=series.current_index,
        )

    def _require_series(self, pool_id: str) -> VolatilitySeries:
        series = self._series.get(pool_id)
        if series is None:
            raise StateError(
                f"Volatility window not initialized: {pool_id}",
                context={"pool_id": pool_id},
            )
        return series
