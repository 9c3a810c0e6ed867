"""Book updated template — lists the new values and what they replaced."""

from notifications.notification.notification import NotificationType
from notifications.templates.formatting import SIGNATURE, or_na, or_system, price, timestamp


def _previous(values: dict | None) -> str:
    if not values:
        return "N/A"
    return ", ".join(f"{field}={value}" for field, value in sorted(values.items()))


class BookUpdatedTemplate:
    notification_type = NotificationType.BOOK_UPDATED.value
    name = "book_updated"

    @staticmethod
    def render(context: dict) -> dict:
        title = context.get("title", "")
        return {
            "subject": f"Book Updated: {title}",
            "body": (
                "A book has been updated in the system:\n\n"
                f"Title: {title}\n"
                f"Author: {context.get('author', '')}\n"
                f"ISBN: {or_na(context.get('isbn'))}\n"
                f"Genre: {or_na(context.get('genre'))}\n"
                f"Publisher: {or_na(context.get('publisher'))}\n"
                f"Published Date: {or_na(context.get('published_date'))}\n"
                f"Price: {price(context.get('price'))}\n"
                f"Updated By: {or_system(context.get('updated_by'))}\n"
                f"Updated At: {timestamp(context.get('timestamp'))}\n\n"
                f"Previous Values: {_previous(context.get('previous_values'))}\n\n"
                "Please review the changes to ensure accuracy.\n\n"
                f"{SIGNATURE}\n"
            ),
        }
