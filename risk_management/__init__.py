"""
Risk Management Package.

Pool-level configuration and the position book:
- registry: RiskRegistry (thresholds, active flag, managers)
- positions: PositionManager (positions, risk scores, forced closes)
"""

from .types import PoolRiskParameters, Position
from .registry import RiskRegistry
from .positions import PositionManager

__all__ = [
    "PoolRiskParameters",
    "Position",
    "RiskRegistry",
    "PositionManager",
]
