"""
Risk Scoring Engine - Configuration.

============================================================
PURPOSE
============================================================
Defines all configuration dataclasses and weights for the
volatility oracle, the liquidity scorer and the aggregator.

All scores are basis points (0-10000).
Weights are integers and must sum to 100.

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from core.constants import (
    CACHE_DURATION_SECONDS,
    HIGH_RISK_THRESHOLD,
    LIQUIDITY_HISTORY_SIZE,
    MIN_VOLATILITY_WINDOW,
)


# ============================================================
# VOLATILITY CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class VolatilityConfig:
    """
    Configuration for the volatility oracle.

    ============================================================
    WHAT WE MEASURE
    ============================================================
    - Population stddev / |mean| of the price window (bps)
    - EWMA of relative absolute price deltas (bps), a faster
      reacting read-only signal

    ============================================================
    """

    min_window_size: int = MIN_VOLATILITY_WINDOW
    default_window_size: int = 24
    ewma_alpha_bps: int = 2_000       # weight of the newest delta

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_window_size": self.min_window_size,
            "default_window_size": self.default_window_size,
            "ewma_alpha_bps": self.ewma_alpha_bps,
        }


# ============================================================
# LIQUIDITY CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class LiquidityScoringConfig:
    """
    Configuration for the multi-factor liquidity score.

    ============================================================
    WEIGHTS
    ============================================================
    - market cap ratio      30
    - tick distribution     40
    - historical stability  30

    ============================================================
    """

    market_cap_weight: int = 30
    distribution_weight: int = 40
    stability_weight: int = 30
    history_size: int = LIQUIDITY_HISTORY_SIZE

    def __post_init__(self) -> None:
        total = self.market_cap_weight + self.distribution_weight + self.stability_weight
        if total != 100:
            raise ValueError(f"Liquidity weights must sum to 100, got {total}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_cap_weight": self.market_cap_weight,
            "distribution_weight": self.distribution_weight,
            "stability_weight": self.stability_weight,
            "history_size": self.history_size,
        }


# ============================================================
# AGGREGATOR CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class AggregatorConfig:
    """
    Configuration for the composite pool score.

    ============================================================
    WEIGHTS
    ============================================================
    - volatility  35
    - liquidity   35
    - position    30

    ============================================================
    """

    volatility_weight: int = 35
    liquidity_weight: int = 35
    position_weight: int = 30
    cache_duration_seconds: int = CACHE_DURATION_SECONDS
    high_risk_threshold: int = HIGH_RISK_THRESHOLD

    def __post_init__(self) -> None:
        total = self.volatility_weight + self.liquidity_weight + self.position_weight
        if total != 100:
            raise ValueError(f"Aggregator weights must sum to 100, got {total}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "volatility_weight": self.volatility_weight,
            "liquidity_weight": self.liquidity_weight,
            "position_weight": self.position_weight,
            "cache_duration_seconds": self.cache_duration_seconds,
            "high_risk_threshold": self.high_risk_threshold,
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class RiskScoringConfig:
    """Complete configuration for the scoring side of the engine."""

    volatility: VolatilityConfig = field(default_factory=VolatilityConfig)
    liquidity: LiquidityScoringConfig = field(default_factory=LiquidityScoringConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "volatility": self.volatility.to_dict(),
            "liquidity": self.liquidity.to_dict(),
            "aggregator": self.aggregator.to_dict(),
        }
