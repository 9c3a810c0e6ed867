"""Template registry — maps NotificationType to template classes.

Each template renders subject and body from the payload of the event that
produced the notification.
"""

from notifications.notification.notification import NotificationType
from notifications.templates.book_created import BookCreatedTemplate
from notifications.templates.book_deleted import BookDeletedTemplate
from notifications.templates.book_updated import BookUpdatedTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.BOOK_CREATED.value: BookCreatedTemplate,
    NotificationType.BOOK_UPDATED.value: BookUpdatedTemplate,
    NotificationType.BOOK_DELETED.value: BookDeletedTemplate,
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls
