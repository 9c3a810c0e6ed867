"""Materialisation helpers — domain events in, PENDING notifications out.

Book events are addressed to the catalogue administrator and rendered from
the template registered for their type. NotificationRequested events carry
their own recipient and content.
"""

import structlog
from notifications.notification.notification import Notification, NotificationType
from notifications.templates import get_template

from shared.events.books import DomainEvent, EventType

logger = structlog.get_logger(__name__)

REFERENCE_TYPE_BOOK = "BOOK"

_NOTIFICATION_TYPES = {notification_type.value for notification_type in NotificationType}


def notification_from_event(event: DomainEvent, admin_email: str, admin_name: str | None = None) -> Notification:
    """Build the notification a consumed event asks for.

    Raises ``ValueError`` when the event cannot be turned into a notification.
    """
    if event.event_type is EventType.NOTIFICATION_REQUESTED:
        return _requested_notification(event)

    template_cls = get_template(event.event_type.value)
    context = {**event.payload.model_dump(), "timestamp": event.timestamp}
    rendered = template_cls.render(context)

    return Notification.create(
        recipient_email=admin_email,
        recipient_name=admin_name,
        subject=rendered["subject"],
        body=rendered["body"],
        notification_type=template_cls.notification_type,
        template_name=template_cls.name,
        reference_id=event.payload.book_id,
        reference_type=REFERENCE_TYPE_BOOK,
        correlation_id=event.correlation_id,
    )


def _requested_notification(event: DomainEvent) -> Notification:
    payload = event.payload
    if payload.notification_type not in _NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {payload.notification_type}")

    return Notification.create(
        recipient_email=payload.recipient_email,
        recipient_name=payload.recipient_name,
        subject=payload.subject,
        body=payload.body,
        notification_type=payload.notification_type,
        reference_id=payload.reference_id,
        reference_type=payload.reference_type,
        correlation_id=event.correlation_id,
    )
