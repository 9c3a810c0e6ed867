"""BDD tests for notification lifecycle."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/notification_lifecycle.feature")


@when(
    "the notification is marked as sent",
    target_fixture="notification",
)
def mark_sent(notification):
    notification.mark_sent()
    return notification


@when(
    parsers.cfparse('the delivery fails with "{reason}"'),
    target_fixture="notification",
)
def delivery_fails(notification, reason):
    notification.mark_failed(reason)
    return notification


@when("the notification is reset for retry")
def reset_for_retry(notification, error):
    try:
        notification.reset_for_retry()
    except ValidationError as exc:
        error["exc"] = exc


@when(
    "the notification is deactivated",
    target_fixture="notification",
)
def deactivate(notification):
    notification.deactivate()
    return notification


@then("the notification can no longer be retried")
def cannot_retry(notification):
    assert notification.can_retry() is False


@then("the notification is inactive")
def is_inactive(notification):
    assert notification.is_active is False
