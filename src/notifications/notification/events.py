"""Domain events for the Notification aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, Integer, String, Text


@notifications.event(part_of="Notification")
class NotificationCreated:
    """A notification was recorded and is waiting for its first delivery attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_email: String(required=True)
    notification_type: String(required=True)
    subject: String()
    template_name: String()
    reference_id: String()
    reference_type: String()
    correlation_id: String()
    created_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationSent:
    """The delivery sink accepted the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_email: String(required=True)
    attempts: Integer(required=True)
    sent_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationFailed:
    """A delivery attempt failed."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_email: String(required=True)
    reason: Text(required=True)
    retry_count: Integer(required=True)
    max_retries: Integer(required=True)
    failed_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationRetried:
    """A failed notification was put back to PENDING for another attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_email: String(required=True)
    retry_count: Integer(required=True)
    retried_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationDeactivated:
    """A notification was soft-deleted."""

    __version__ = 1

    notification_id: Identifier(required=True)
    status: String(required=True)
    deactivated_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationRead:
    """The recipient opened the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    read_at: DateTime(required=True)
