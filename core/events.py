"""
Core Module - Event Log.

============================================================
RESPONSIBILITY
============================================================
Append-only audit log of engine events with observer callbacks.

- Components emit named events with a payload
- Events raised inside an atomic() block stay pending until
  the outermost block commits; a rollback drops them
- Observers are called synchronously after commit, in order
- Events are for external observability only, never for
  correctness of internal state

============================================================
EVENT NAMES
============================================================
PoolRegistered, PoolParametersUpdated, PoolActivated,
PoolDeactivated, ManagerAdded, ManagerRemoved,
VolatilityInitialized, PriceRecorded, VolatilityWindowResized,
LiquidityScored, TokenInfoUpdated,
PositionUpdated, PositionRiskUpdated, PositionClosed,
PoolRiskUpdated, UserRiskUpdated, SystemMetricsReset,
ControlActionExecuted, ThrottleActivated, PoolPaused,
EmergencyShutdown, ControlsReset,
NotificationSent, NotificationsCleared,
EnginePaused, EngineResumed

============================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .clock import ClockProtocol, to_iso8601


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """A committed audit record."""

    sequence: int
    name: str
    timestamp: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "name": self.name,
            "timestamp": self.timestamp,
            "time": to_iso8601(self.timestamp),
            "payload": dict(self.payload),
        }


EventListener = Callable[[EngineEvent], None]


class EventLog:
    """Append-only event log with deferred publication."""

    def __init__(self, clock: ClockProtocol, max_history_size: int = 10_000):
        self._clock = clock
        self._history: List[EngineEvent] = []
        self._max_history_size = max_history_size
        self._next_sequence = 1
        self._pending: List[List[tuple]] = []
        self._listeners: List[EventListener] = []

    # --------------------------------------------------------
    # OBSERVERS
    # --------------------------------------------------------

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --------------------------------------------------------
    # TRANSACTION HOOKS (called by core.guards.atomic)
    # --------------------------------------------------------

    def begin(self) -> None:
        self._pending.append([])

    def commit(self) -> None:
        frame = self._pending.pop()
        if self._pending:
            # Inner block: hand events to the enclosing block
            self._pending[-1].extend(frame)
            return
        for name, timestamp, payload in frame:
            self._publish(name, timestamp, payload)

    def rollback(self) -> None:
        dropped = self._pending.pop()
        if dropped:
            logger.debug(f"Dropped {len(dropped)} uncommitted events")

    @property
    def in_transaction(self) -> bool:
        return bool(self._pending)

    # --------------------------------------------------------
    # EMISSION
    # --------------------------------------------------------

    def emit(self, name: str, **payload: Any) -> None:
        """Record an event; published now or at the outermost commit."""
        record = (name, self._clock.timestamp(), payload)
        if self._pending:
            self._pending[-1].append(record)
        else:
            self._publish(*record)

    def _publish(self, name: str, timestamp: int, payload: Dict[str, Any]) -> None:
        event = EngineEvent(
            sequence=self._next_sequence,
            name=name,
            timestamp=timestamp,
            payload=payload,
        )
        self._next_sequence += 1
        self._history.append(event)
        if len(self._history) > self._max_history_size:
            self._history = self._history[-self._max_history_size:]

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # Observers never undo a committed operation
                logger.error(f"Event listener failed on {name}: {e}", exc_info=True)

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def events(self, name: Optional[str] = None) -> List[EngineEvent]:
        if name is None:
            return list(self._history)
        return [e for e in self._history if e.name == name]

    def last(self, name: Optional[str] = None) -> Optional[EngineEvent]:
        matching = self.events(name)
        return matching[-1] if matching else None

    def since(self, sequence: int) -> List[EngineEvent]:
        return [e for e in self._history if e.sequence > sequence]
