"""
System Risk Controller - Configuration.

============================================================
PURPOSE
============================================================
Cooldowns, throttle window and escalation for pool controls,
plus the notification store limits.

============================================================
CONFIGURATION PHILOSOPHY
============================================================
1. All windows are explicit seconds
2. A cooldown only blocks repeats of the SAME action type
3. No auto-tuning

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from core.constants import (
    DEFAULT_NOTIFICATION_PAGE_SIZE,
    MAX_NOTIFICATIONS_PER_USER,
    SECONDS_PER_HOUR,
)

from .types import ActionType


def _default_cooldowns() -> Dict[ActionType, int]:
    return {
        ActionType.WARNING: 1 * SECONDS_PER_HOUR,
        ActionType.THROTTLE: 4 * SECONDS_PER_HOUR,
        ActionType.PAUSE: 12 * SECONDS_PER_HOUR,
        ActionType.EMERGENCY: 24 * SECONDS_PER_HOUR,
    }


# ============================================================
# CONTROLLER THRESHOLDS
# ============================================================

@dataclass(frozen=True)
class ControllerConfig:
    """
    Thresholds for the graduated control state machine.
    """

    cooldowns: Dict[ActionType, int] = field(default_factory=_default_cooldowns)
    """Minimum seconds before the same action type may repeat."""

    throttle_duration_seconds: int = SECONDS_PER_HOUR
    """Length of a throttle window."""

    escalation_action_count: int = 3
    """Successful actions after which throttle is auto-activated."""

    def cooldown_for(self, action: ActionType) -> int:
        return self.cooldowns[action]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cooldowns": {a.value: s for a, s in self.cooldowns.items()},
            "throttle_duration_seconds": self.throttle_duration_seconds,
            "escalation_action_count": self.escalation_action_count,
        }


# ============================================================
# NOTIFIER LIMITS
# ============================================================

@dataclass(frozen=True)
class NotifierConfig:
    """
    Limits for the per-user notification store.
    """

    max_notifications_per_user: int = MAX_NOTIFICATIONS_PER_USER
    """Live notifications before notify() is refused."""

    page_size: int = DEFAULT_NOTIFICATION_PAGE_SIZE
    """Default page size for paginated reads."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_notifications_per_user": self.max_notifications_per_user,
            "page_size": self.page_size,
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class SystemRiskControllerConfig:
    """Complete controller-side configuration."""

    controller: ControllerConfig = field(default_factory=ControllerConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "controller": self.controller.to_dict(),
            "notifier": self.notifier.to_dict(),
        }
