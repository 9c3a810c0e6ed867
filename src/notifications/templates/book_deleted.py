"""Book deleted template."""

from notifications.notification.notification import NotificationType
from notifications.templates.formatting import SIGNATURE, or_na, or_system, timestamp


class BookDeletedTemplate:
    notification_type = NotificationType.BOOK_DELETED.value
    name = "book_deleted"

    @staticmethod
    def render(context: dict) -> dict:
        title = context.get("title", "")
        deletion_type = context.get("deletion_type")
        return {
            "subject": f"Book Deleted: {title}",
            "body": (
                "A book has been deleted from the system:\n\n"
                f"Title: {title}\n"
                f"Author: {context.get('author', '')}\n"
                f"ISBN: {or_na(context.get('isbn'))}\n"
                f"Deletion Type: {getattr(deletion_type, 'value', deletion_type) or 'SOFT'}\n"
                f"Deleted By: {or_system(context.get('deleted_by'))}\n"
                f"Deleted At: {timestamp(context.get('timestamp'))}\n\n"
                "This action has been logged for audit purposes.\n\n"
                f"{SIGNATURE}\n"
            ),
        }
