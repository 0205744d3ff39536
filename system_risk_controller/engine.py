"""
System Risk Controller - Engine.

============================================================
PURPOSE
============================================================
The RiskController executes graduated protective actions on
pools and has the authority to pause them in the registry.

============================================================
ACTIONS
============================================================
    Action      Cooldown   Effect                          Severity
    WARNING     1h         notify                          1
    THROTTLE    4h         throttle window (1h)            2
    PAUSE       12h        pause + deactivate pool         3
    EMERGENCY   24h        pause + deactivate, always      4

After every successful action the action count grows; from
the 3rd action on the throttle is auto-activated.

============================================================
ARCHITECTURE
============================================================

                    ┌─────────────────────┐
                    │   RiskController    │
                    └─────────┬───────────┘
                              │
        ┌─────────────────────┼─────────────────────┐
        │                     │                     │
        ▼                     ▼                     ▼
   ┌─────────┐          ┌─────────┐          ┌─────────┐
   │Registry │          │  State  │          │Notifier │
   │         │          │ Machine │          │         │
   └─────────┘          └─────────┘          └─────────┘

============================================================
"""

import logging
from typing import Optional, Union

from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import pool_manager_resource
from core.events import EventLog
from core.exceptions import AuthorizationError, ValidationError
from core.guards import PauseGuard, ReentrancyGuard, atomic
from risk_management.registry import RiskRegistry

from .alerting import RiskNotifier
from .config import ControllerConfig
from .state_machine import ControlStateMachine
from .types import ActionType, ControlActionResult, ControlStatus


logger = logging.getLogger(__name__)


DEFAULT_CONTROLLER_ADDRESS = "risk-controller"


class RiskController:
    """
    Cooldown-gated control state machine per pool.

    Usage:
    ```python
    controller = RiskController(registry, notifier, access, clock, events)

    controller.execute_action("ETH-USDC", ActionType.WARNING, caller=operator)

    if controller.is_pool_throttled("ETH-USDC"):
        # restrict the pool
    ```

    The controller acts on the registry and the notifier under
    its own address, which must hold the registry-control and
    notifier grants.
    """

    def __init__(
        self,
        registry: RiskRegistry,
        notifier: RiskNotifier,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        config: Optional[ControllerConfig] = None,
        pause_guard: Optional[PauseGuard] = None,
        address: str = DEFAULT_CONTROLLER_ADDRESS,
    ):
        self._registry = registry
        self._notifier = notifier
        self._access = access
        self._clock = clock
        self._events = events
        self._config = config or ControllerConfig()
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("controller")
        self._state = ControlStateMachine()
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    @property
    def state_machine(self) -> ControlStateMachine:
        return self._state

    # --------------------------------------------------------
    # STATE CHECKS
    # --------------------------------------------------------

    def get_status(self, pool_id: str) -> ControlStatus:
        return self._state.status(pool_id)

    def is_pool_throttled(self, pool_id: str) -> bool:
        """Throttle flag set AND the window has not expired."""
        return self._state.is_throttled(pool_id, self._clock.timestamp())

    def is_pool_paused(self, pool_id: str) -> bool:
        return self._state.is_paused(pool_id)

    # --------------------------------------------------------
    # ACTIONS
    # --------------------------------------------------------

    def execute_action(
        self,
        pool_id: str,
        action: Union[ActionType, str],
        caller: str,
    ) -> ControlActionResult:
        """
        Execute a control action on a pool.

        Raises:
            AuthorizationError: caller is not a manager of the pool
            PoolNotRegisteredError: pool never registered
            CooldownActiveError: same action repeated inside its cooldown
            AlreadyInStateError: THROTTLE while throttled, PAUSE while paused
        """
        self._pause_guard.require_not_paused("controller.execute_action")
        if not self._registry.is_manager(pool_id, caller):
            raise AuthorizationError(caller, pool_manager_resource(pool_id))
        try:
            action = ActionType(action)
        except ValueError:
            raise ValidationError("Unknown action type", field_name="action", value=action)

        with self._reentrancy.guard("execute_action"), \
                atomic(
                    self._state.scoped(pool_id),
                    self._registry.scoped(pool_id),
                    self._notifier.scoped(pool_id),
                    events=self._events,
                ):
            self._registry.require_registered(pool_id)
            now = self._clock.timestamp()
            self._state.check_cooldown(pool_id, action, now, self._config.cooldown_for(action))

            if action == ActionType.WARNING:
                self._warn(pool_id)
            elif action == ActionType.THROTTLE:
                self._throttle(pool_id, now)
            elif action == ActionType.PAUSE:
                self._pause(pool_id)
            else:
                self._emergency(pool_id, caller)

            escalated = self._state.record_action(
                pool_id,
                action,
                now,
                escalation_count=self._config.escalation_action_count,
                throttle_duration=self._config.throttle_duration_seconds,
            )
            status = self._state.status(pool_id)
            if escalated:
                self._events.emit(
                    "ThrottleActivated",
                    pool_id=pool_id,
                    throttle_end_time=status.throttle_end_time,
                    reason="escalation",
                )

            self._events.emit(
                "ControlActionExecuted",
                pool_id=pool_id,
                action=action.value,
                caller=caller,
                action_count=status.action_count,
            )
            logger.info(
                f"Control action {action.value} on {pool_id} by {caller} "
                f"(count={status.action_count}, escalated={escalated})"
            )

            return ControlActionResult(
                pool_id=pool_id,
                action=action,
                executed_at=now,
                action_count=status.action_count,
                escalated_to_throttle=escalated,
                status=status.to_dict(),
            )

    def _notify_pool(self, pool_id: str, action: ActionType, message: str) -> None:
        self._notifier.batch_notify([pool_id], action.severity, message, caller=self._address)

    def _warn(self, pool_id: str) -> None:
        self._notify_pool(pool_id, ActionType.WARNING, f"Risk warning for pool {pool_id}")

    def _throttle(self, pool_id: str, now: int) -> None:
        self._state.throttle(pool_id, now, self._config.throttle_duration_seconds)
        self._events.emit(
            "ThrottleActivated",
            pool_id=pool_id,
            throttle_end_time=now + self._config.throttle_duration_seconds,
            reason="action",
        )
        self._notify_pool(pool_id, ActionType.THROTTLE, f"Pool {pool_id} throttled")

    def _pause(self, pool_id: str) -> None:
        self._state.pause(pool_id)
        self._deactivate_in_registry(pool_id)
        self._events.emit("PoolPaused", pool_id=pool_id)
        self._notify_pool(pool_id, ActionType.PAUSE, f"Pool {pool_id} paused")

    def _emergency(self, pool_id: str, caller: str) -> None:
        self._state.force_pause(pool_id)
        self._deactivate_in_registry(pool_id)
        self._notify_pool(pool_id, ActionType.EMERGENCY, f"EMERGENCY shutdown of pool {pool_id}")
        self._events.emit("EmergencyShutdown", pool_id=pool_id, caller=caller)
        logger.critical(f"EMERGENCY shutdown of pool {pool_id} by {caller}")

    def _deactivate_in_registry(self, pool_id: str) -> None:
        if self._registry.is_active(pool_id):
            self._registry.deactivate(pool_id, caller=self._address)

    # --------------------------------------------------------
    # RECOVERY
    # --------------------------------------------------------

    def reset_controls(self, pool_id: str, caller: str) -> None:
        """Clear all counters and flags of a pool. Owner-only."""
        self._pause_guard.require_not_paused("controller.reset_controls")
        self._access.require_owner(caller)

        with self._reentrancy.guard("reset_controls"), \
                atomic(self._state.scoped(pool_id), events=self._events):
            self._registry.require_registered(pool_id)
            previous = self._state.reset(pool_id)
            self._events.emit(
                "ControlsReset",
                pool_id=pool_id,
                caller=caller,
                previous=previous.to_dict() if previous else None,
            )
            logger.warning(f"Controls reset for {pool_id} by {caller}")
