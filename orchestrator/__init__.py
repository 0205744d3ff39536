"""
Orchestrator Package - Engine Facade.

============================================================
PACKAGE OVERVIEW
============================================================
The boundary between the event source and the risk engine.
The event source calls the facade on every trade and every
liquidity change; the facade drives the scoring and control
components and returns what happened.

============================================================
CORE PRINCIPLES
============================================================
1. The facade holds no risk state of its own
2. Every component keeps its own authorization checks
3. One clock, one event log, one pause guard per engine

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                   PoolRiskEngine                    |
    |-----------------------------------------------------|
    |  RiskRegistry      |  pool parameters, managers     |
    |  VolatilityOracle  |  price windows                 |
    |  LiquidityScoring  |  liquidity readings            |
    |  PositionManager   |  positions, forced closes      |
    |  RiskAggregator    |  pool / user / system risk     |
    |  RiskController    |  graduated pool controls       |
    |  RiskNotifier      |  notification feeds            |
    +-----------------------------------------------------+

============================================================
"""

from .config import ControlBands, EngineConfig
from .models import LiquidityChangeResult, TradeResult
from .core import PoolRiskEngine, create_pool_risk_engine, setup_logging


__all__ = [
    "ControlBands",
    "EngineConfig",
    "LiquidityChangeResult",
    "TradeResult",
    "PoolRiskEngine",
    "create_pool_risk_engine",
    "setup_logging",
]
