"""Shared BDD fixtures and step definitions for the Notifications domain."""

import pytest
from notifications.notification.events import (
    NotificationCreated,
    NotificationDeactivated,
    NotificationFailed,
    NotificationRetried,
    NotificationSent,
)
from notifications.notification.notification import Notification, NotificationType
from pytest_bdd import given, parsers, then

_NOTIFICATION_EVENT_CLASSES = {
    "NotificationCreated": NotificationCreated,
    "NotificationSent": NotificationSent,
    "NotificationFailed": NotificationFailed,
    "NotificationRetried": NotificationRetried,
    "NotificationDeactivated": NotificationDeactivated,
}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _notification(recipient="admin@bookmanagement.com"):
    return Notification.create(
        recipient_email=recipient,
        subject="New Book Added: Dune",
        body="A new book has been added to the system",
        notification_type=NotificationType.BOOK_CREATED.value,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a new notification for "{recipient}"'),
    target_fixture="notification",
)
def new_notification(recipient):
    return _notification(recipient)


@given("a pending notification", target_fixture="notification")
def pending_notification():
    n = _notification()
    n._events.clear()
    return n


@given("a sent notification", target_fixture="notification")
def sent_notification():
    n = _notification()
    n.mark_sent()
    n._events.clear()
    return n


@given("a failed notification", target_fixture="notification")
def failed_notification():
    n = _notification()
    n.mark_failed("Delivery error")
    n._events.clear()
    return n


@given(
    parsers.cfparse("a notification that has failed {times:d} times"),
    target_fixture="notification",
)
def exhausted_notification(times):
    n = _notification()
    for attempt in range(times):
        if attempt:
            n.reset_for_retry()
        n.mark_failed("Delivery error")
    n._events.clear()
    return n


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the notification status is "{status}"'))
def notification_status_is(notification, status):
    assert notification.status == status


@then(parsers.cfparse("the retry count is {count:d}"))
def retry_count_is(notification, count):
    assert notification.retry_count == count


@then(parsers.cfparse("a {event_type} event is raised"))
def notification_event_raised(notification, event_type):
    event_cls = _NOTIFICATION_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in notification._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in notification._events]}"


@then("the action fails with a validation error")
def action_fails(error):
    assert error["exc"] is not None
