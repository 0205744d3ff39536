"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the pool risk engine.

- Provides clear exception hierarchy
- Enables specific error handling
- Supports error categorization for alerting
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
RiskEngineError (base)
├── ValidationError
├── AuthorizationError
├── StateError
│   ├── PoolNotRegisteredError
│   ├── PoolInactiveError
│   ├── PoolAlreadyRegisteredError
│   ├── PositionNotFoundError
│   ├── AlreadyInStateError
│   ├── StaleDataError
│   └── ReentrantCallError
├── RateLimitError
│   ├── CooldownActiveError
│   └── NotificationLimitError
├── InsufficientDataError
└── SystemPausedError

Every error is a local failure of a single operation.
The engine never retries and never commits partially.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for alerting."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, may impact operations."""

    CRITICAL = "critical"
    """Critical issue, requires immediate action."""


# ============================================================
# ERROR CATEGORY
# ============================================================

class ErrorCategory(Enum):
    """Taxonomy bucket of an engine error."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE = "state"
    RATE_LIMIT = "rate_limit"
    INSUFFICIENT_DATA = "insufficient_data"
    PAUSED = "paused"


# ============================================================
# BASE EXCEPTION
# ============================================================

class RiskEngineError(Exception):
    """
    Base exception for all pool risk engine errors.

    All exceptions carry:
    - severity: for alerting
    - category: taxonomy bucket
    - context: for debugging
    - retryable: whether the caller may retry later unchanged
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    category: ErrorCategory = ErrorCategory.STATE
    retryable: bool = False

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    @property
    def requires_immediate_action(self) -> bool:
        """Check if error requires immediate action."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        base = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        return f"{base} | {ctx_str}" if ctx_str else base


# ============================================================
# VALIDATION ERRORS
# ============================================================

class ValidationError(RiskEngineError):
    """
    Input rejected before any state mutation.

    Zero/invalid thresholds, empty or mismatched arrays,
    invalid tick ranges, invalid severity, empty message.
    """

    default_severity = Severity.LOW
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None, **kwargs):
        context = kwargs.pop("context", {})
        if field_name:
            context["field"] = field_name
        if value is not None:
            context["value"] = str(value)[:100]
        super().__init__(message, context=context, **kwargs)


# ============================================================
# AUTHORIZATION ERRORS
# ============================================================

class AuthorizationError(RiskEngineError):
    """Caller is not on the allow-list for the resource."""

    default_severity = Severity.HIGH
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, caller: str, resource: str):
        self.caller = caller
        self.resource = resource
        super().__init__(
            f"Caller {caller} is not authorized for {resource}",
            context={"caller": caller, "resource": resource},
        )


# ============================================================
# STATE ERRORS
# ============================================================

class StateError(RiskEngineError):
    """Operation not allowed in the current state."""

    category = ErrorCategory.STATE


class PoolNotRegisteredError(StateError):
    """Pool was never registered."""

    def __init__(self, pool_id: str):
        self.pool_id = pool_id
        super().__init__(f"Pool not registered: {pool_id}", context={"pool_id": pool_id})


class PoolInactiveError(StateError):
    """Pool is registered but not active."""

    def __init__(self, pool_id: str):
        self.pool_id = pool_id
        super().__init__(f"Pool inactive: {pool_id}", context={"pool_id": pool_id})


class PoolAlreadyRegisteredError(StateError):
    """Pool is already registered and active."""

    def __init__(self, pool_id: str):
        self.pool_id = pool_id
        super().__init__(f"Pool already registered: {pool_id}", context={"pool_id": pool_id})


class PositionNotFoundError(StateError):
    """No position exists for (user, pool)."""

    def __init__(self, user: str, pool_id: str):
        self.user = user
        self.pool_id = pool_id
        super().__init__(
            f"Position not found: user={user} pool={pool_id}",
            context={"user": user, "pool_id": pool_id},
        )


class AlreadyInStateError(StateError):
    """Entity is already in the requested target state."""
    pass


class StaleDataError(StateError):
    """Derived aggregate is older than its freshness window."""
    pass


class ReentrantCallError(StateError):
    """A guarded operation was re-entered while still in progress."""

    default_severity = Severity.CRITICAL

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Reentrant call into {operation}",
            context={"operation": operation},
        )


# ============================================================
# RATE / COOLDOWN ERRORS
# ============================================================

class RateLimitError(RiskEngineError):
    """Rejected for now; caller may retry later."""

    category = ErrorCategory.RATE_LIMIT
    retryable = True


class CooldownActiveError(RateLimitError):
    """Same control action re-attempted before its cooldown elapsed."""

    def __init__(self, pool_id: str, action: str, retry_at: int):
        self.pool_id = pool_id
        self.action = action
        self.retry_at = retry_at
        super().__init__(
            f"Cooldown active for {action} on {pool_id} until {retry_at}",
            context={"pool_id": pool_id, "action": action, "retry_at": retry_at},
        )


class NotificationLimitError(RateLimitError):
    """Per-user notification cap reached."""

    def __init__(self, user: str, limit: int):
        self.user = user
        self.limit = limit
        super().__init__(
            f"Notification limit exceeded for {user} ({limit})",
            context={"user": user, "limit": limit},
        )


# ============================================================
# INSUFFICIENT DATA
# ============================================================

class InsufficientDataError(RiskEngineError):
    """Not enough observations to compute a score."""

    default_severity = Severity.LOW
    category = ErrorCategory.INSUFFICIENT_DATA
    retryable = True


# ============================================================
# SYSTEM PAUSED
# ============================================================

class SystemPausedError(RiskEngineError):
    """Engine is paused; mutating operations are refused."""

    default_severity = Severity.HIGH
    category = ErrorCategory.PAUSED
    retryable = True

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"System paused: {operation} refused",
            context={"operation": operation},
        )
