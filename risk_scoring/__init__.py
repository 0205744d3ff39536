"""
Risk Scoring Engine - Package.

============================================================
PURPOSE
============================================================
Measures pool risk and folds it into a single composite score.

============================================================
COMPONENTS
============================================================
1. VolatilityOracle: rolling price window per pool
2. LiquidityScoring: market-cap / distribution / stability
3. RiskAggregator: cached composite pool, user and system risk

============================================================
SCORING
============================================================
All scores are integers in basis points, 0 (safe) to 10000.

    pool risk = (35 * volatility + 35 * liquidity + 30 * position) / 100

============================================================
USAGE
============================================================
    from risk_scoring import RiskAggregator

    aggregator = RiskAggregator(
        registry, volatility, liquidity, positions,
        access, clock, events,
    )
    score = aggregator.pool_risk("ETH-USDC-3000")
    user = aggregator.user_risk("0xabc")
    metrics = aggregator.system_risk()

============================================================
"""

from .types import (
    VolatilitySeries,
    LiquidityHistory,
    TokenInfo,
    RiskCache,
    SystemMetrics,
    LiquidityScoreBreakdown,
    PoolRiskBreakdown,
)
from .config import (
    VolatilityConfig,
    LiquidityScoringConfig,
    AggregatorConfig,
    RiskScoringConfig,
)
from .volatility import VolatilityOracle, score_samples, ewma_score_samples
from .liquidity import (
    LiquidityScoring,
    market_cap_score,
    distribution_score,
    stability_score,
)
from .engine import RiskAggregator, liquidity_shortfall_score


__all__ = [
    # Types
    "VolatilitySeries",
    "LiquidityHistory",
    "TokenInfo",
    "RiskCache",
    "SystemMetrics",
    "LiquidityScoreBreakdown",
    "PoolRiskBreakdown",

    # Configuration
    "VolatilityConfig",
    "LiquidityScoringConfig",
    "AggregatorConfig",
    "RiskScoringConfig",

    # Scorers
    "VolatilityOracle",
    "score_samples",
    "ewma_score_samples",
    "LiquidityScoring",
    "market_cap_score",
    "distribution_score",
    "stability_score",

    # Aggregator
    "RiskAggregator",
    "liquidity_shortfall_score",
]


__version__ = "1.0.0"
