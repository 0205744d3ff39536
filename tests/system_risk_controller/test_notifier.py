"""
Tests for RiskNotifier.

Tests cover:
- Sender allow-list
- Per-user cap, refusal and batch skipping
- Expiry pruning and pagination
"""

from unittest.mock import patch

import pytest

from core.exceptions import (
    AuthorizationError,
    NotificationLimitError,
    SystemPausedError,
    ValidationError,
)
from system_risk_controller import NotifierConfig, RiskNotifier

from tests.conftest import MANAGER, OUTSIDER, OWNER, START_TIME


USER = "0xuser"
OTHER_USER = "0xother"


@pytest.fixture
def small_notifier(access, clock, events, pause_guard):
    return RiskNotifier(
        access, clock, events,
        config=NotifierConfig(max_notifications_per_user=3, page_size=2),
        pause_guard=pause_guard,
    )


# =============================================================
# TEST: Sending
# =============================================================

class TestNotify:
    """Single notifications."""

    def test_appends_to_feed(self, notifier, clock, events):
        notification = notifier.notify(USER, 2, "volatility rising", OWNER)

        assert notification.risk_level == 2
        assert notification.timestamp == clock.timestamp()
        assert notifier.get_notifications(USER) == [notification]
        assert events.last("NotificationSent").payload["user"] == USER

    def test_sender_allow_list(self, notifier):
        with pytest.raises(AuthorizationError):
            notifier.notify(USER, 1, "hello", MANAGER)

        notifier.add_notifier(MANAGER, OWNER)
        assert notifier.is_notifier(MANAGER)
        notifier.notify(USER, 1, "hello", MANAGER)

        notifier.remove_notifier(MANAGER, OWNER)
        assert not notifier.is_notifier(MANAGER)

    def test_only_owner_manages_senders(self, notifier):
        with pytest.raises(AuthorizationError):
            notifier.add_notifier(OUTSIDER, MANAGER)

    @pytest.mark.parametrize("level", [0, 5])
    def test_invalid_level(self, notifier, level):
        with pytest.raises(ValidationError):
            notifier.notify(USER, level, "hello", OWNER)

    def test_empty_message(self, notifier):
        with pytest.raises(ValidationError):
            notifier.notify(USER, 1, "", OWNER)

    def test_refused_at_cap(self, small_notifier):
        for i in range(3):
            small_notifier.notify(USER, 1, f"n{i}", OWNER)

        with pytest.raises(NotificationLimitError):
            small_notifier.notify(USER, 4, "critical", OWNER)
        # No eviction of the oldest entry
        assert [n.message for n in small_notifier.get_notifications(USER)] == ["n0", "n1", "n2"]

    def test_default_cap_of_100(self, notifier):
        for i in range(100):
            notifier.notify(USER, 1, f"n{i}", OWNER)

        with pytest.raises(NotificationLimitError):
            notifier.notify(USER, 1, "one too many", OWNER)
        assert notifier.notification_count(USER) == 100

        assert notifier.clear_expired_notifications(USER, 0, USER) == 100
        assert notifier.notification_count(USER) == 0
        notifier.notify(USER, 2, "after pruning", OWNER)
        assert [n.message for n in notifier.get_notifications(USER)] == ["after pruning"]

    def test_snapshots_only_target_feed(self, notifier):
        notifier.notify(OTHER_USER, 1, "unrelated", OWNER)

        with patch.object(notifier, "snapshot_state", wraps=notifier.snapshot_state) as snapshot:
            notifier.notify(USER, 1, "hello", OWNER)

        assert snapshot.call_args.args[0] == (USER,)
        assert notifier.notification_count(OTHER_USER) == 1

    def test_blocked_while_paused(self, notifier, pause_guard):
        pause_guard.pause("test")
        with pytest.raises(SystemPausedError):
            notifier.notify(USER, 1, "hello", OWNER)


class TestBatchNotify:
    """Batch notifications with skipping."""

    def test_skips_full_feeds(self, small_notifier):
        for i in range(3):
            small_notifier.notify(USER, 1, f"n{i}", OWNER)

        delivered = small_notifier.batch_notify([USER, OTHER_USER], 3, "pool paused", OWNER)

        assert delivered == 1
        assert small_notifier.notification_count(USER) == 3
        assert small_notifier.notification_count(OTHER_USER) == 1

    def test_empty_user_list(self, notifier):
        with pytest.raises(ValidationError):
            notifier.batch_notify([], 1, "hello", OWNER)

    def test_requires_sender_grant(self, notifier):
        with pytest.raises(AuthorizationError):
            notifier.batch_notify([USER], 1, "hello", OUTSIDER)


# =============================================================
# TEST: Pruning And Reads
# =============================================================

class TestClearExpired:
    """Age-based pruning."""

    @pytest.fixture
    def aged_feed(self, notifier, clock):
        for age in (250, 150, 50):
            notifier.notify(USER, 1, f"age {age}", OWNER)
            clock.advance(100)
        clock.set_time(START_TIME + 250)
        return notifier

    def test_removes_old_entries(self, aged_feed, events):
        removed = aged_feed.clear_expired_notifications(USER, 100, USER)

        assert removed == 2
        assert [n.message for n in aged_feed.get_notifications(USER)] == ["age 50"]
        assert events.last("NotificationsCleared").payload["removed"] == 2

    def test_nothing_expired(self, aged_feed, events):
        assert aged_feed.clear_expired_notifications(USER, 1_000, OWNER) == 0
        assert events.last("NotificationsCleared") is None

    def test_stranger_denied(self, aged_feed):
        with pytest.raises(AuthorizationError):
            aged_feed.clear_expired_notifications(USER, 100, OUTSIDER)

    def test_negative_age(self, aged_feed):
        with pytest.raises(ValidationError):
            aged_feed.clear_expired_notifications(USER, -1, USER)

    def test_frees_capacity(self, small_notifier, clock):
        for i in range(3):
            small_notifier.notify(USER, 1, f"n{i}", OWNER)
        clock.advance(100)

        small_notifier.clear_expired_notifications(USER, 100, USER)
        small_notifier.notify(USER, 1, "fresh", OWNER)
        assert small_notifier.notification_count(USER) == 1


class TestPagination:
    """Paginated feed reads."""

    def test_default_page_size(self, small_notifier):
        for i in range(3):
            small_notifier.notify(USER, 1, f"n{i}", OWNER)

        page = small_notifier.get_notifications_page(USER)
        assert [n.message for n in page] == ["n0", "n1"]
        assert [n.message for n in small_notifier.get_notifications_page(USER, offset=2)] == ["n2"]

    def test_unknown_user(self, notifier):
        assert notifier.get_notifications_page(USER) == []

    def test_invalid_arguments(self, notifier):
        with pytest.raises(ValidationError):
            notifier.get_notifications_page(USER, offset=-1)
        with pytest.raises(ValidationError):
            notifier.get_notifications_page(USER, limit=0)
