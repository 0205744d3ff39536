"""
Risk Scoring Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the scorers and the aggregator.

- Rolling windows (volatility prices, liquidity history)
- Token metadata for market-cap scoring
- Memoized scores and the system-wide aggregate
- Score breakdowns returned to callers

============================================================
DESIGN PRINCIPLES
============================================================
- Scores are integers in basis points [0, 10000]
- Ring buffers mark unset slots with None, never with 0
- Output types are immutable

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ============================================================
# ROLLING WINDOWS
# ============================================================


@dataclass
class VolatilitySeries:
    """
    Fixed-capacity circular buffer of prices for one pool.

    `prices[i] is None` means the slot has never been written.
    `current_index` is the next slot to write (the oldest sample
    once the ring is full).
    """

    window_size: int
    prices: List[Optional[int]] = field(default_factory=list)
    current_index: int = 0

    def __post_init__(self) -> None:
        if not self.prices:
            self.prices = [None] * self.window_size

    def write(self, price: int) -> None:
        self.prices[self.current_index] = price
        self.current_index = (self.current_index + 1) % self.window_size

    def chronological(self) -> List[int]:
        """Populated samples, oldest first."""
        ordered = self.prices[self.current_index:] + self.prices[:self.current_index]
        return [p for p in ordered if p is not None]

    @property
    def valid_count(self) -> int:
        return sum(1 for p in self.prices if p is not None)


@dataclass
class LiquidityHistory:
    """Circular buffer of liquidity readings with timestamps."""

    capacity: int
    values: List[Optional[int]] = field(default_factory=list)
    timestamps: List[int] = field(default_factory=list)
    current_index: int = 0

    def __post_init__(self) -> None:
        if not self.values:
            self.values = [None] * self.capacity
            self.timestamps = [0] * self.capacity

    def append(self, value: int, timestamp: int) -> None:
        self.values[self.current_index] = value
        self.timestamps[self.current_index] = timestamp
        self.current_index = (self.current_index + 1) % self.capacity

    def chronological(self) -> List[int]:
        ordered = self.values[self.current_index:] + self.values[:self.current_index]
        return [v for v in ordered if v is not None]

    @property
    def count(self) -> int:
        return sum(1 for v in self.values if v is not None)


# ============================================================
# TOKEN METADATA
# ============================================================


@dataclass(frozen=True)
class TokenInfo:
    """Admin-maintained token metadata."""

    market_cap: int = 0
    daily_volume: int = 0
    last_update: int = 0

    @property
    def is_set(self) -> bool:
        return self.market_cap > 0


# ============================================================
# CACHES AND AGGREGATES
# ============================================================


@dataclass(frozen=True)
class RiskCache:
    """Memoized score; never the source of truth."""

    risk_score: int
    last_update: int


@dataclass
class SystemMetrics:
    """Online aggregate over every pool score computed."""

    total_risk: int = 0
    risk_count: int = 0
    high_risk_count: int = 0
    last_update: int = 0

    @property
    def average_risk(self) -> int:
        if self.risk_count == 0:
            return 0
        return self.total_risk // self.risk_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_risk": self.total_risk,
            "risk_count": self.risk_count,
            "high_risk_count": self.high_risk_count,
            "average_risk": self.average_risk,
            "last_update": self.last_update,
        }


# ============================================================
# OUTPUT TYPES
# ============================================================


@dataclass(frozen=True)
class LiquidityScoreBreakdown:
    """Result of one LiquidityScoring.score call."""

    market_cap_score: int
    distribution_score: int
    stability_score: int
    composite_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_cap_score": self.market_cap_score,
            "distribution_score": self.distribution_score,
            "stability_score": self.stability_score,
            "composite_score": self.composite_score,
        }


@dataclass(frozen=True)
class PoolRiskBreakdown:
    """Component scores behind a composite pool risk score."""

    pool_id: str
    volatility_score: int
    liquidity_score: int
    position_score: int
    risk_score: int
    computed_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "volatility_score": self.volatility_score,
            "liquidity_score": self.liquidity_score,
            "position_score": self.position_score,
            "risk_score": self.risk_score,
            "computed_at": self.computed_at,
        }
