"""Tests for the MarkNotificationRead command."""

from datetime import UTC, datetime, timedelta

import pytest
from notifications.notification.events import NotificationRead
from notifications.notification.notification import Notification, NotificationType
from notifications.notification.reading import MarkNotificationRead
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _stored(sent=False):
    n = Notification.create(
        recipient_email="reader@example.com",
        subject="Welcome",
        body="Thanks for joining",
        notification_type=NotificationType.WELCOME.value,
    )
    if sent:
        n.mark_sent()
    n.updated_at = datetime.now(UTC) - timedelta(hours=1)
    current_domain.repository_for(Notification).add(n)
    return n


class TestMarkNotificationRead:
    def test_touches_updated_at_only(self):
        n = _stored(sent=True)
        before = current_domain.repository_for(Notification).get(n.id)

        current_domain.process(MarkNotificationRead(notification_id=n.id), asynchronous=False)

        stored = current_domain.repository_for(Notification).get(n.id)
        assert stored.updated_at > before.updated_at
        assert stored.status == before.status
        assert stored.sent_at == before.sent_at
        assert stored.retry_count == before.retry_count

    def test_unknown_notification(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(MarkNotificationRead(notification_id="missing"), asynchronous=False)

    def test_deactivated_notification(self):
        n = _stored()
        n.deactivate()
        current_domain.repository_for(Notification).add(n)

        with pytest.raises(ObjectNotFoundError):
            current_domain.process(MarkNotificationRead(notification_id=n.id), asynchronous=False)


class TestMarkRead:
    def test_raises_read_event(self):
        n = Notification.create(
            recipient_email="reader@example.com",
            subject="Welcome",
            body="Thanks for joining",
            notification_type=NotificationType.WELCOME.value,
        )
        n._events.clear()

        n.mark_read()

        [event] = n._events
        assert isinstance(event, NotificationRead)
        assert event.notification_id == str(n.id)
