"""
System Risk Controller - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for graduated pool controls and notifications.

ACTIONS (ascending severity):
- WARNING: notify only
- THROTTLE: temporary elevated restriction
- PAUSE: pool paused and deactivated in the registry
- EMERGENCY: unconditional pause + deactivation

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# ============================================================
# ENUMS
# ============================================================

class RiskLevel(int, Enum):
    """Notification severity levels."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class ActionType(str, Enum):
    """Graduated control actions."""

    WARNING = "warning"
    THROTTLE = "throttle"
    PAUSE = "pause"
    EMERGENCY = "emergency"

    @property
    def severity(self) -> int:
        """Notification severity (1-4) raised by the action."""
        return {
            ActionType.WARNING: RiskLevel.LOW,
            ActionType.THROTTLE: RiskLevel.MEDIUM,
            ActionType.PAUSE: RiskLevel.HIGH,
            ActionType.EMERGENCY: RiskLevel.CRITICAL,
        }[self].value


# ============================================================
# CONTROL STATUS
# ============================================================

@dataclass
class ControlStatus:
    """
    Control state of one pool.

    Mutated only by the RiskController. The throttle flag is not
    cleared at expiry; expiry is checked when the status is read.
    """

    is_paused: bool = False
    is_throttled: bool = False
    last_action_timestamp: int = 0
    throttle_end_time: int = 0
    action_count: int = 0
    last_action: Optional[ActionType] = None

    def is_throttle_active(self, now: int) -> bool:
        return self.is_throttled and now < self.throttle_end_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_paused": self.is_paused,
            "is_throttled": self.is_throttled,
            "last_action_timestamp": self.last_action_timestamp,
            "throttle_end_time": self.throttle_end_time,
            "action_count": self.action_count,
            "last_action": self.last_action.value if self.last_action else None,
        }


@dataclass(frozen=True)
class ControlActionResult:
    """Outcome of a successful execute_action call."""

    pool_id: str
    action: ActionType
    executed_at: int
    action_count: int
    escalated_to_throttle: bool
    status: Dict[str, Any]


# ============================================================
# NOTIFICATIONS
# ============================================================

@dataclass(frozen=True)
class Notification:
    """One live alert in a user's feed."""

    risk_level: int
    message: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level": self.risk_level,
            "message": self.message,
            "timestamp": self.timestamp,
        }
