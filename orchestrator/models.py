"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Result types returned by the engine facade for each ingested
pool event.

============================================================
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from risk_scoring.types import LiquidityScoreBreakdown
from system_risk_controller.types import ActionType


# ============================================================
# TRADE EVENT
# ============================================================

@dataclass(frozen=True)
class TradeResult:
    """Outcome of a trade event."""

    pool_id: str
    price: int
    timestamp: int

    volatility_score: Optional[int] = None
    """None until the window holds at least 2 samples."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "price": self.price,
            "timestamp": self.timestamp,
            "volatility_score": self.volatility_score,
        }


# ============================================================
# LIQUIDITY EVENT
# ============================================================

@dataclass(frozen=True)
class LiquidityChangeResult:
    """
    Outcome of a liquidity-change event.

    risk_score is None while the pool is still warming up
    (fewer than 2 price samples or liquidity readings).
    """

    pool_id: str
    timestamp: int
    liquidity: LiquidityScoreBreakdown
    concentration: int
    concentration_breached: bool
    risk_score: Optional[int] = None
    action: Optional[ActionType] = None
    action_executed: bool = False
    action_skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "timestamp": self.timestamp,
            "liquidity": self.liquidity.to_dict(),
            "concentration": self.concentration,
            "concentration_breached": self.concentration_breached,
            "risk_score": self.risk_score,
            "action": self.action.value if self.action else None,
            "action_executed": self.action_executed,
            "action_skipped_reason": self.action_skipped_reason,
        }
