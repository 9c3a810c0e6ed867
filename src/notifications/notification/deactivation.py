"""DeactivateNotification command + handler — soft-delete a notification."""

from notifications.domain import notifications
from notifications.notification.notification import Notification
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.command(part_of="Notification")
class DeactivateNotification:
    """Request to hide a notification from queries and from the retry sweep."""

    notification_id: Identifier(required=True)


@notifications.command_handler(part_of=Notification)
class DeactivateNotificationHandler:
    @handle(DeactivateNotification)
    def deactivate_notification(self, command: DeactivateNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.deactivate()
        repo.add(notification)
