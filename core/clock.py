"""
Core Module - Engine Clock.

============================================================
RESPONSIBILITY
============================================================
Provides the testable clock abstraction every component reads
its "current time" from.

- Engine time is integer unix seconds
- Cooldowns, throttle windows and cache freshness are pure
  timestamp comparisons against this clock
- No component sleeps, schedules or waits on it

============================================================
DESIGN PRINCIPLES
============================================================
- Single source of truth for engine time
- UTC only
- Mockable for deterministic tests

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import threading
import time


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the engine clock."""

    @abstractmethod
    def timestamp(self) -> int:
        """Get current unix timestamp in whole seconds."""
        pass

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return from_unix(self.timestamp())


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def timestamp(self) -> int:
        return int(time.time())


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_timestamp: Optional[int] = None):
        """
        Initialize mock clock.

        Args:
            initial_timestamp: Starting unix time (defaults to current time)
        """
        self._time = int(initial_timestamp if initial_timestamp is not None else time.time())
        self._lock = threading.Lock()

    def timestamp(self) -> int:
        with self._lock:
            return self._time

    def set_time(self, new_timestamp: int) -> None:
        """Set the current time."""
        with self._lock:
            self._time = int(new_timestamp)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            delta = timedelta(seconds=seconds, **kwargs)
            self._time += int(delta.total_seconds())


# ============================================================
# TIMESTAMP UTILITIES
# ============================================================

def from_unix(seconds: int) -> datetime:
    """Convert engine unix seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_iso8601(seconds: int) -> str:
    """Format engine unix seconds as ISO 8601."""
    return from_unix(seconds).isoformat()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "from_unix",
    "to_iso8601",
]
