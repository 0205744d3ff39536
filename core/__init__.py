"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- clock: Engine time abstraction
- constants: Scales, thresholds and resource names
- exceptions: Custom exception hierarchy
- fixed_math: Fixed-point statistics
- access_control: Owner and allow-list authorization
- guards: Pause, reentrancy and atomic-operation guards
- events: Append-only audit log with observers
"""

from .clock import ClockProtocol, SystemClock, MockClock
from .access_control import AccessControl
from .events import EventLog, EngineEvent
from .guards import PauseGuard, ReentrancyGuard, Transactional, atomic
from .exceptions import (
    RiskEngineError,
    ValidationError,
    AuthorizationError,
    StateError,
    PoolNotRegisteredError,
    PoolInactiveError,
    PoolAlreadyRegisteredError,
    PositionNotFoundError,
    AlreadyInStateError,
    StaleDataError,
    ReentrantCallError,
    RateLimitError,
    CooldownActiveError,
    NotificationLimitError,
    InsufficientDataError,
    SystemPausedError,
)

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "AccessControl",
    "EventLog",
    "EngineEvent",
    "PauseGuard",
    "ReentrancyGuard",
    "Transactional",
    "atomic",
    "RiskEngineError",
    "ValidationError",
    "AuthorizationError",
    "StateError",
    "PoolNotRegisteredError",
    "PoolInactiveError",
    "PoolAlreadyRegisteredError",
    "PositionNotFoundError",
    "AlreadyInStateError",
    "StaleDataError",
    "ReentrantCallError",
    "RateLimitError",
    "CooldownActiveError",
    "NotificationLimitError",
    "InsufficientDataError",
    "SystemPausedError",
]
