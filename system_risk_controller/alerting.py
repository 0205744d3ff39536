"""
System Risk Controller - Notifier.

============================================================
PURPOSE
============================================================
Bounded per-user store of risk notifications.

- Append-only per user, at most 100 live entries
- notify() is REFUSED at the cap (no silent drop, no FIFO
  eviction) until the entries are pruned
- batch_notify() skips users at the cap instead of failing
- Only allow-listed senders may notify (owner is seeded)

Delivery to end users is the job of an external transport
reading these feeds.

============================================================
"""

import logging
from typing import Dict, List, Optional, Sequence

from core.access_control import AccessControl
from core.clock import ClockProtocol
from core.constants import MAX_RISK_LEVEL, MIN_RISK_LEVEL, RESOURCE_NOTIFIER
from core.events import EventLog
from core.exceptions import AuthorizationError, NotificationLimitError, ValidationError
from core.guards import PauseGuard, ReentrancyGuard, Transactional, atomic

from .config import NotifierConfig
from .types import Notification


logger = logging.getLogger(__name__)


class RiskNotifier(Transactional):
    """Per-user bounded notification feeds."""

    _transactional_fields = ("_feeds",)
    _keyed_fields = ("_feeds",)

    def __init__(
        self,
        access: AccessControl,
        clock: ClockProtocol,
        events: EventLog,
        config: Optional[NotifierConfig] = None,
        pause_guard: Optional[PauseGuard] = None,
    ):
        self._access = access
        self._clock = clock
        self._events = events
        self._config = config or NotifierConfig()
        self._pause_guard = pause_guard or PauseGuard()
        self._reentrancy = ReentrancyGuard("notifier")
        self._feeds: Dict[str, List[Notification]] = {}

    @property
    def max_notifications(self) -> int:
        return self._config.max_notifications_per_user

    # --------------------------------------------------------
    # SENDER ALLOW-LIST
    # --------------------------------------------------------

    def add_notifier(self, address: str, caller: str) -> None:
        self._access.grant(RESOURCE_NOTIFIER, address, caller)

    def remove_notifier(self, address: str, caller: str) -> None:
        self._access.revoke(RESOURCE_NOTIFIER, address, caller)

    def is_notifier(self, address: str) -> bool:
        return self._access.is_authorized(address, RESOURCE_NOTIFIER)

    # --------------------------------------------------------
    # VALIDATION
    # --------------------------------------------------------

    @staticmethod
    def _validate(risk_level: int, message: str) -> None:
        if not MIN_RISK_LEVEL <= risk_level <= MAX_RISK_LEVEL:
            raise ValidationError("Invalid risk level", field_name="risk_level", value=risk_level)
        if not message:
            raise ValidationError("Notification message is empty", field_name="message")

    # --------------------------------------------------------
    # SENDING
    # --------------------------------------------------------

    def notify(self, user: str, risk_level: int, message: str, caller: str) -> Notification:
        """Append a notification to a user's feed."""
        self._pause_guard.require_not_paused("notifier.notify")
        self._access.require(caller, RESOURCE_NOTIFIER)
        self._validate(risk_level, message)

        with self._reentrancy.guard("notify"), atomic(self.scoped(user), events=self._events):
            feed = self._feeds.setdefault(user, [])
            if len(feed) >= self.max_notifications:
                raise NotificationLimitError(user, self.max_notifications)
            return self._append(user, feed, risk_level, message)

    def batch_notify(self, users: Sequence[str], risk_level: int, message: str, caller: str) -> int:
        """
        Notify many users; users at the cap are skipped.

        Returns:
            Number of users notified
        """
        self._pause_guard.require_not_paused("notifier.batch_notify")
        self._access.require(caller, RESOURCE_NOTIFIER)
        if not users:
            raise ValidationError("Empty user list", field_name="users")
        self._validate(risk_level, message)

        delivered = 0
        with self._reentrancy.guard("batch_notify"), \
                atomic(self.scoped(*users), events=self._events):
            for user in users:
                feed = self._feeds.setdefault(user, [])
                if len(feed) >= self.max_notifications:
                    logger.warning(f"Notification skipped for {user}: feed full ({len(feed)})")
                    continue
                self._append(user, feed, risk_level, message)
                delivered += 1
        return delivered

    def _append(self, user: str, feed: List[Notification], risk_level: int, message: str) -> Notification:
        notification = Notification(
            risk_level=risk_level,
            message=message,
            timestamp=self._clock.timestamp(),
        )
        feed.append(notification)
        self._events.emit("NotificationSent", user=user, risk_level=risk_level, message=message)
        return notification

    # --------------------------------------------------------
    # PRUNING
    # --------------------------------------------------------

    def clear_expired_notifications(self, user: str, max_age: int, caller: str) -> int:
        """
        Drop notifications at least max_age seconds old, keeping order.

        Callable by the user or an allow-listed notifier.

        Returns:
            Number of notifications removed
        """
        self._pause_guard.require_not_paused("notifier.clear_expired_notifications")
        if caller != user and not self.is_notifier(caller):
            raise AuthorizationError(caller, RESOURCE_NOTIFIER)
        if max_age < 0:
            raise ValidationError("max_age cannot be negative", field_name="max_age", value=max_age)

        with self._reentrancy.guard("clear_expired_notifications"), \
                atomic(self.scoped(user), events=self._events):
            now = self._clock.timestamp()
            feed = self._feeds.get(user, [])
            kept = [n for n in feed if now - n.timestamp < max_age]
            removed = len(feed) - len(kept)
            if removed:
                self._feeds[user] = kept
                self._events.emit("NotificationsCleared", user=user, removed=removed)
                logger.info(f"Cleared {removed} notifications for {user}")
            return removed

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def get_notifications(self, user: str) -> List[Notification]:
        return list(self._feeds.get(user, []))

    def notification_count(self, user: str) -> int:
        return len(self._feeds.get(user, []))

    def get_notifications_page(
        self,
        user: str,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        if offset < 0:
            raise ValidationError("offset cannot be negative", field_name="offset", value=offset)
        limit = self._config.page_size if limit is None else limit
        if limit <= 0:
            raise ValidationError("limit must be positive", field_name="limit", value=limit)
        return self.get_notifications(user)[offset:offset + limit]
