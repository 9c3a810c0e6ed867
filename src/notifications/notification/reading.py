"""MarkNotificationRead command + handler."""

from notifications.domain import notifications
from notifications.notification.notification import Notification
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle


@notifications.command(part_of="Notification")
class MarkNotificationRead:
    notification_id: Identifier(required=True)


@notifications.command_handler(part_of=Notification)
class MarkNotificationReadHandler:
    @handle(MarkNotificationRead)
    def mark_notification_read(self, command: MarkNotificationRead):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        if not notification.is_active:
            raise ObjectNotFoundError(f"Notification with id {command.notification_id} does not exist")
        notification.mark_read()
        repo.add(notification)
