"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
The PoolRiskEngine facade - the boundary between the event
source and the risk components.

- Single entrypoint for trade and liquidity-change events
- Wires every component to one clock, one event log, one
  access control list and one global pause guard
- Turns threshold breaches into graduated control actions
- Engine-wide emergency shutdown and resume

============================================================
ARCHITECTURAL POSITION
============================================================
- The facade holds no risk state of its own
- It does NOT bypass any component authorization
- It acts under the owner identity only to provision a pool
  it has just registered (volatility window, controller as
  pool manager)
- Automatic control actions run under the controller address

============================================================
EVENT FLOW
============================================================

    on_trade ──────────▶ VolatilityOracle.record_price

    on_liquidity_change
        │
        ├──▶ LiquidityScoring.score
        ├──▶ PositionManager.concentration
        ├──▶ RiskAggregator.pool_risk
        └──▶ RiskController.execute_action (by score band)

============================================================
"""

import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from core.access_control import AccessControl
from core.clock import ClockProtocol, SystemClock
from core.constants import RESOURCE_PRICE_FEEDER, RESOURCE_REGISTRY_CONTROL, pool_manager_resource
from core.events import EventLog
from core.exceptions import (
    AlreadyInStateError,
    CooldownActiveError,
    InsufficientDataError,
    ValidationError,
)
from core.guards import PauseGuard, ReentrancyGuard, atomic
from database import AuditTrailWriter, initialize_database
from risk_management import PoolRiskParameters, PositionManager, RiskRegistry
from risk_scoring import (
    LiquidityScoring,
    PoolRiskBreakdown,
    RiskAggregator,
    SystemMetrics,
    VolatilityOracle,
)
from system_risk_controller import (
    ActionType,
    Notification,
    RiskController,
    RiskNotifier,
)

from .config import EngineConfig
from .models import LiquidityChangeResult, TradeResult


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


logger = logging.getLogger(__name__)


# ============================================================
# ENGINE FACADE
# ============================================================

class PoolRiskEngine:
    """
    Risk engine for the pools of one market maker.

    Usage:
    ```python
    engine = PoolRiskEngine(EngineConfig(owner="0xowner"))
    engine.register_pool("ETH-USDC", PoolRiskParameters(500, 1000, 2500), caller="0xowner")

    engine.on_trade("ETH-USDC", price, caller=feeder)
    result = engine.on_liquidity_change("ETH-USDC", ..., caller=feeder)
    ```
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._config = config or EngineConfig()
        errors = self._config.validate()
        if errors:
            raise ValidationError(f"Invalid engine configuration: {'; '.join(errors)}")

        self.clock = clock or SystemClock()
        self.events = EventLog(self.clock)
        self.access = AccessControl(self._config.owner)
        self.pause_guard = PauseGuard()
        self._reentrancy = ReentrancyGuard("engine")

        scoring = self._config.scoring
        self.registry = RiskRegistry(self.access, self.events, self.pause_guard)
        self.positions = PositionManager(
            self.registry,
            self.access,
            self.clock,
            self.events,
            self.pause_guard,
            high_risk_threshold=self._config.high_risk_threshold,
        )
        self.volatility = VolatilityOracle(
            self.registry, self.access, self.clock, self.events,
            scoring.volatility, self.pause_guard,
        )
        self.liquidity = LiquidityScoring(
            self.registry, self.access, self.clock, self.events,
            scoring.liquidity, self.pause_guard,
        )
        self.aggregator = RiskAggregator(
            self.registry, self.volatility, self.liquidity, self.positions,
            self.access, self.clock, self.events,
            scoring.aggregator, self.pause_guard,
        )
        self.notifier = RiskNotifier(
            self.access, self.clock, self.events,
            self._config.controller.notifier, self.pause_guard,
        )
        self.controller = RiskController(
            self.registry, self.notifier, self.access, self.clock, self.events,
            self._config.controller.controller, self.pause_guard,
        )

        # Controller acts on the registry and notifier under its own address
        self.access.grant(RESOURCE_REGISTRY_CONTROL, self.controller.address, caller=self.owner)
        self.notifier.add_notifier(self.controller.address, caller=self.owner)

        self._audit_writer: Optional[AuditTrailWriter] = None
        logger.info(f"Pool risk engine created (owner={self.owner})")

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def is_paused(self) -> bool:
        return self.pause_guard.is_paused

    # --------------------------------------------------------
    # Audit trail
    # --------------------------------------------------------

    def attach_audit_trail(self, session_factory: Callable[[], Session]) -> AuditTrailWriter:
        """Persist every committed event through session_factory."""
        if self._audit_writer is not None:
            self.events.unsubscribe(self._audit_writer)
        self._audit_writer = AuditTrailWriter(session_factory)
        self.events.subscribe(self._audit_writer)
        logger.info("Audit trail attached")
        return self._audit_writer

    # --------------------------------------------------------
    # Pool lifecycle
    # --------------------------------------------------------

    def register_pool(
        self,
        pool_id: str,
        params: PoolRiskParameters,
        caller: str,
        window_size: Optional[int] = None,
    ) -> PoolRiskParameters:
        """
        Register a pool and provision its price window.

        The controller becomes a manager of the pool so that
        automatic actions pass the pool authorization check.
        """
        self.pause_guard.require_not_paused("engine.register_pool")
        if window_size is None:
            window_size = self._config.scoring.volatility.default_window_size

        with self._reentrancy.guard("register_pool"), \
                atomic(
                    self.registry.scoped(pool_id),
                    self.access.scoped(pool_manager_resource(pool_id)),
                    self.volatility.scoped(pool_id),
                    events=self.events,
                ):
            self.registry.register(pool_id, params, caller)
            if not self.volatility.is_initialized(pool_id):
                self.volatility.initialize(pool_id, window_size, caller=self.owner)
            self.registry.add_manager(pool_id, self.controller.address, caller=self.owner)
            return self.registry.get_parameters(pool_id)

    def update_pool_parameters(
        self,
        pool_id: str,
        params: PoolRiskParameters,
        caller: str,
    ) -> PoolRiskParameters:
        self.registry.update(pool_id, params, caller)
        return self.registry.get_parameters(pool_id)

    # --------------------------------------------------------
    # Event ingestion
    # --------------------------------------------------------

    def on_trade(self, pool_id: str, price: int, caller: str) -> TradeResult:
        """Record a trade price; scores once the window holds 2 samples."""
        with self._reentrancy.guard("on_trade"):
            self.volatility.record_price(pool_id, price, caller)
            samples = self.volatility.samples(pool_id)
            score = self.volatility.volatility_score(pool_id) if len(samples) >= 2 else None

        return TradeResult(
            pool_id=pool_id,
            price=price,
            timestamp=self.clock.timestamp(),
            volatility_score=score,
        )

    def on_liquidity_change(
        self,
        pool_id: str,
        total_liquidity: int,
        price: int,
        token0: str,
        token1: str,
        tick_lower: int,
        tick_upper: int,
        caller: str,
    ) -> LiquidityChangeResult:
        """
        Score a liquidity change and act on threshold breaches.

        Raises:
            AuthorizationError: caller is not a price feeder
            ValidationError: invalid reading (see LiquidityScoring.score)
        """
        self.pause_guard.require_not_paused("engine.on_liquidity_change")
        self.access.require(caller, RESOURCE_PRICE_FEEDER)

        with self._reentrancy.guard("on_liquidity_change"), \
                atomic(self.liquidity.scoped(pool_id), self.aggregator.scoped(pool_id), events=self.events):
            params = self.registry.require_registered(pool_id)
            breakdown = self.liquidity.score(
                pool_id, total_liquidity, price, token0, token1, tick_lower, tick_upper,
            )

            concentration = self.positions.concentration(pool_id)
            breached = concentration > params.concentration_threshold
            if breached:
                self.events.emit(
                    "ConcentrationBreached",
                    pool_id=pool_id,
                    concentration=concentration,
                    threshold=params.concentration_threshold,
                )
                logger.warning(
                    f"Concentration breach on {pool_id}: "
                    f"{concentration} > {params.concentration_threshold}"
                )

            risk_score = self._current_risk(pool_id)
            action = self._select_action(risk_score, breached)
            executed, skipped_reason = False, None
            if action is not None:
                executed, skipped_reason = self._execute_automatic_action(pool_id, action)

            return LiquidityChangeResult(
                pool_id=pool_id,
                timestamp=self.clock.timestamp(),
                liquidity=breakdown,
                concentration=concentration,
                concentration_breached=breached,
                risk_score=risk_score,
                action=action,
                action_executed=executed,
                action_skipped_reason=skipped_reason,
            )

    def _current_risk(self, pool_id: str) -> Optional[int]:
        try:
            return self.aggregator.pool_risk(pool_id)
        except InsufficientDataError as e:
            logger.debug(f"Pool risk not yet available for {pool_id}: {e.message}")
            return None

    def _select_action(self, risk_score: Optional[int], concentration_breached: bool) -> Optional[ActionType]:
        bands = self._config.bands
        if risk_score is not None:
            if risk_score >= bands.pause:
                return ActionType.PAUSE
            if risk_score >= bands.throttle:
                return ActionType.THROTTLE
            if risk_score >= bands.warning:
                return ActionType.WARNING
        if concentration_breached:
            return ActionType.WARNING
        return None

    def _execute_automatic_action(self, pool_id: str, action: ActionType) -> Tuple[bool, Optional[str]]:
        try:
            self.controller.execute_action(pool_id, action, caller=self.controller.address)
        except (CooldownActiveError, AlreadyInStateError) as e:
            logger.info(f"Automatic {action.value} on {pool_id} skipped: {e.message}")
            return False, e.message
        return True, None

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------

    def get_pool_risk(self, pool_id: str) -> PoolRiskBreakdown:
        return self.aggregator.pool_risk_breakdown(pool_id)

    def get_position_risk(self, user: str, pool_id: str) -> int:
        return self.positions.get(user, pool_id).risk_score

    def get_user_risk(self, user: str) -> int:
        return self.aggregator.user_risk(user)

    def get_system_risk(self) -> SystemMetrics:
        return self.aggregator.system_risk()

    def get_notifications(
        self,
        user: str,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        return self.notifier.get_notifications_page(user, offset=offset, limit=limit)

    # --------------------------------------------------------
    # Engine-wide controls
    # --------------------------------------------------------

    def emergency_shutdown(self, caller: str, reason: str = "emergency shutdown") -> None:
        """
        Pause every state-mutating operation. Owner-only.

        Reads stay available while paused.
        """
        self.access.require_owner(caller)
        if self.pause_guard.is_paused:
            raise AlreadyInStateError("Engine already paused")

        with atomic(self.pause_guard, events=self.events):
            self.pause_guard.pause(reason)
            self.events.emit("EnginePaused", caller=caller, reason=reason)
        logger.critical(f"EMERGENCY SHUTDOWN: {reason} (by {caller})")

    def resume_operations(self, caller: str) -> None:
        """Lift the engine-wide pause. Owner-only."""
        self.access.require_owner(caller)
        if not self.pause_guard.is_paused:
            raise AlreadyInStateError("Engine is not paused")

        with atomic(self.pause_guard, events=self.events):
            self.pause_guard.unpause()
            self.events.emit("EngineResumed", caller=caller)
        logger.warning(f"Operations resumed by {caller}")

    def get_status(self) -> Dict[str, Any]:
        """Get engine status."""
        pools = self.registry.registered_pools()
        return {
            "owner": self.owner,
            "paused": self.pause_guard.is_paused,
            "pause_reason": self.pause_guard.reason,
            "registered_pools": len(pools),
            "active_pools": sum(1 for p in pools if self.registry.is_active(p)),
            "current_time": self.clock.timestamp(),
            "audit_trail": self._audit_writer is not None,
        }


# ============================================================
# ENGINE FACTORY
# ============================================================

def create_pool_risk_engine(
    config: Optional[EngineConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> PoolRiskEngine:
    """
    Factory function to create an engine.

    Args:
        config: Configuration (or load from environment)
        clock: Time source (system clock by default)

    Returns:
        Engine with the audit trail attached when a database
        URL is configured
    """
    if config is None:
        config = EngineConfig.from_env()

    engine = PoolRiskEngine(config=config, clock=clock)
    if config.database_url:
        engine.attach_audit_trail(initialize_database(config.database_url))
    return engine


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "PoolRiskEngine",
    "create_pool_risk_engine",
    "setup_logging",
]
