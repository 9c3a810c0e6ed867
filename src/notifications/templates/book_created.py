"""Book created template — tells the catalogue administrator about a new title."""

from notifications.notification.notification import NotificationType
from notifications.templates.formatting import SIGNATURE, or_na, or_system, price, timestamp


class BookCreatedTemplate:
    notification_type = NotificationType.BOOK_CREATED.value
    name = "book_created"

    @staticmethod
    def render(context: dict) -> dict:
        title = context.get("title", "")
        return {
            "subject": f"New Book Added: {title}",
            "body": (
                "A new book has been added to the system:\n\n"
                f"Title: {title}\n"
                f"Author: {context.get('author', '')}\n"
                f"ISBN: {or_na(context.get('isbn'))}\n"
                f"Genre: {or_na(context.get('genre'))}\n"
                f"Publisher: {or_na(context.get('publisher'))}\n"
                f"Published Date: {or_na(context.get('published_date'))}\n"
                f"Price: {price(context.get('price'))}\n"
                f"Created By: {or_system(context.get('created_by'))}\n"
                f"Created At: {timestamp(context.get('timestamp'))}\n\n"
                "Please review the new addition to ensure it meets our quality standards.\n\n"
                f"{SIGNATURE}\n"
            ),
        }
