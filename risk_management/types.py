"""
Risk Management - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the pool registry and the position book.

- PoolRiskParameters: per-pool thresholds and active flag
- Position: a liquidity provider's stake in a pool

============================================================
"""

from dataclasses import dataclass, replace
from typing import Any, Dict


@dataclass(frozen=True)
class PoolRiskParameters:
    """
    Per-pool thresholds.

    volatility_threshold and concentration_threshold are basis
    points; liquidity_threshold is in the pool's liquidity units.
    A zeroed record is the "never registered" sentinel.
    """

    volatility_threshold: int
    liquidity_threshold: int
    concentration_threshold: int
    is_active: bool = False

    @property
    def has_valid_thresholds(self) -> bool:
        return (
            self.volatility_threshold > 0
            and self.liquidity_threshold > 0
            and self.concentration_threshold > 0
        )

    @property
    def was_registered(self) -> bool:
        return self.volatility_threshold > 0

    def with_active(self, is_active: bool) -> "PoolRiskParameters":
        return replace(self, is_active=is_active)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "volatility_threshold": self.volatility_threshold,
            "liquidity_threshold": self.liquidity_threshold,
            "concentration_threshold": self.concentration_threshold,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class Position:
    """A position keyed by (user, pool). Updates store a replaced copy."""

    size: int
    tick_lower: int
    tick_upper: int
    risk_score: int = 0
    last_update: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "risk_score": self.risk_score,
            "last_update": self.last_update,
        }
