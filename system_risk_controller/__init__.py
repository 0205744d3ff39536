"""
System Risk Controller - Package.

============================================================
PURPOSE
============================================================
Graduated protective controls for liquidity pools.

- RiskController: WARNING / THROTTLE / PAUSE / EMERGENCY with
  per-action cooldowns and auto-escalation to throttle
- ControlStateMachine: per-pool ControlStatus transitions
- RiskNotifier: bounded per-user notification feeds

============================================================
USAGE
============================================================
    from system_risk_controller import RiskController, ActionType

    controller = RiskController(registry, notifier, access, clock, events)
    controller.execute_action(pool_id, ActionType.PAUSE, caller=operator)

    if controller.is_pool_paused(pool_id):
        # refuse pool state transitions

============================================================
"""

from .types import (
    ActionType,
    RiskLevel,
    ControlStatus,
    ControlActionResult,
    Notification,
)
from .config import (
    ControllerConfig,
    NotifierConfig,
    SystemRiskControllerConfig,
)
from .state_machine import ControlStateMachine
from .alerting import RiskNotifier
from .engine import RiskController, DEFAULT_CONTROLLER_ADDRESS


__all__ = [
    # Types
    "ActionType",
    "RiskLevel",
    "ControlStatus",
    "ControlActionResult",
    "Notification",

    # Configuration
    "ControllerConfig",
    "NotifierConfig",
    "SystemRiskControllerConfig",

    # Components
    "ControlStateMachine",
    "RiskNotifier",
    "RiskController",
    "DEFAULT_CONTROLLER_ADDRESS",
]
