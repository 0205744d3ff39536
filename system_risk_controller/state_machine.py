"""
System Risk Controller - Control State Machine.

============================================================
PURPOSE
============================================================
Holds the ControlStatus of every pool and applies the
transition rules. Knows nothing about registries or
notifications; the controller engine drives it.

STATE TRANSITION RULES:
- not flagged  → throttled: THROTTLE
- any          → throttled: auto-escalation
- not paused   → paused: PAUSE
- any          → paused: EMERGENCY (unconditional)
- any          → zero state: explicit reset only

COOLDOWN RULE:
- An action is refused while it was the LAST action executed
  and its own cooldown has not elapsed. Other action types
  never block it.

THROTTLE EXPIRY:
- is_throttled stays set after throttle_end_time; readers
  check the window lazily. A set flag keeps refusing THROTTLE
  until the pool is reset.

============================================================
"""

import logging
from dataclasses import replace
from typing import Dict, Optional

from core.exceptions import AlreadyInStateError, CooldownActiveError
from core.guards import Transactional

from .types import ActionType, ControlStatus


logger = logging.getLogger(__name__)


class ControlStateMachine(Transactional):
    """Per-pool control status with transition rules."""

    _transactional_fields = ("_statuses",)
    _keyed_fields = ("_statuses",)

    def __init__(self):
        self._statuses: Dict[str, ControlStatus] = {}

    def _status(self, pool_id: str) -> ControlStatus:
        return self._statuses.setdefault(pool_id, ControlStatus())

    def status(self, pool_id: str) -> ControlStatus:
        """Copy of the status of a pool (zero state if never touched)."""
        return replace(self._statuses.get(pool_id, ControlStatus()))

    # --------------------------------------------------------
    # GUARDS
    # --------------------------------------------------------

    def check_cooldown(self, pool_id: str, action: ActionType, now: int, cooldown: int) -> None:
        status = self._statuses.get(pool_id)
        if status is None or status.last_action != action:
            return
        retry_at = status.last_action_timestamp + cooldown
        if now < retry_at:
            raise CooldownActiveError(pool_id, action.value, retry_at)

    def is_throttled(self, pool_id: str, now: int) -> bool:
        status = self._statuses.get(pool_id)
        return status is not None and status.is_throttle_active(now)

    def is_paused(self, pool_id: str) -> bool:
        status = self._statuses.get(pool_id)
        return status is not None and status.is_paused

    # --------------------------------------------------------
    # TRANSITIONS
    # --------------------------------------------------------

    def throttle(self, pool_id: str, now: int, duration: int) -> None:
        """THROTTLE transition; refused while the flag is set, expired or not."""
        status = self._statuses.get(pool_id)
        if status is not None and status.is_throttled:
            raise AlreadyInStateError(f"Pool already throttled: {pool_id}")
        self._activate_throttle(pool_id, now, duration)

    def _activate_throttle(self, pool_id: str, now: int, duration: int) -> None:
        status = self._status(pool_id)
        status.is_throttled = True
        status.throttle_end_time = now + duration
        logger.info(f"Throttle active: {pool_id} until {status.throttle_end_time}")

    def pause(self, pool_id: str) -> None:
        """PAUSE transition; refused when already paused."""
        if self.is_paused(pool_id):
            raise AlreadyInStateError(f"Pool already paused: {pool_id}")
        self._status(pool_id).is_paused = True

    def force_pause(self, pool_id: str) -> None:
        """EMERGENCY transition; pauses whatever the current state."""
        self._status(pool_id).is_paused = True

    def record_action(
        self,
        pool_id: str,
        action: ActionType,
        now: int,
        escalation_count: int,
        throttle_duration: int,
    ) -> bool:
        """
        Book a successful action and apply auto-escalation.

        Returns:
            True if the throttle was auto-activated
        """
        status = self._status(pool_id)
        status.action_count += 1
        status.last_action = action
        status.last_action_timestamp = now

        if status.action_count >= escalation_count:
            self._activate_throttle(pool_id, now, throttle_duration)
            return True
        return False

    def reset(self, pool_id: str) -> Optional[ControlStatus]:
        """Back to the zero state; returns the previous status."""
        previous = self._statuses.pop(pool_id, None)
        self._statuses[pool_id] = ControlStatus()
        return previous
