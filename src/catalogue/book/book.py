"""Book aggregate root — an entry in the catalog."""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, DateTime, Float, String, Text

from catalogue.domain import catalogue

# Fields a catalog update may change
UPDATABLE_FIELDS = (
    "title",
    "author",
    "isbn",
    "published_date",
    "price",
    "genre",
    "publisher",
    "description",
)


@catalogue.aggregate
class Book:
    """A title in the catalog.

    Every committed change is announced to the rest of the system as a
    BookCreated, BookUpdated or BookDeleted event on the broker.
    """

    title: String(required=True, max_length=255)
    author: String(required=True, max_length=255)
    isbn: String(max_length=20)
    published_date: Date()
    price: Float(min_value=0.0)
    genre: String(max_length=100)
    publisher: String(max_length=255)
    description: Text()
    is_active: Boolean(default=True)
    created_by: String(max_length=100)
    updated_by: String(max_length=100)
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        title,
        author,
        isbn=None,
        published_date=None,
        price=None,
        genre=None,
        publisher=None,
        description=None,
        created_by=None,
    ):
        from catalogue.book.events import BookAdded

        now = datetime.now(UTC)
        book = cls(
            title=title,
            author=author,
            isbn=isbn,
            published_date=published_date,
            price=price,
            genre=genre,
            publisher=publisher,
            description=description,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        book.raise_(
            BookAdded(
                book_id=book.id,
                title=title,
                author=author,
                isbn=isbn,
                created_by=created_by,
            )
        )
        return book

    def update_details(self, updated_by=None, **changes) -> dict:
        """Apply the given changes and return the previous value of every field that changed."""
        from catalogue.book.events import BookDetailsUpdated

        if not self.is_active:
            raise ValidationError({"book": ["Deleted books cannot be updated"]})

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError({field: ["Field cannot be updated"] for field in sorted(unknown)})

        previous_values = {}
        for field, value in changes.items():
            if value is None or getattr(self, field) == value:
                continue
            previous_values[field] = getattr(self, field)
            setattr(self, field, value)

        self.updated_by = updated_by
        self.updated_at = datetime.now(UTC)

        self.raise_(
            BookDetailsUpdated(
                book_id=self.id,
                previous_values={field: plain_value(value) for field, value in previous_values.items()},
                updated_by=updated_by,
            )
        )
        return previous_values

    def remove(self, deletion_type, deleted_by=None):
        from catalogue.book.events import BookRemoved

        if not self.is_active:
            raise ValidationError({"book": ["Book is already deleted"]})

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_by = deleted_by
        self.updated_at = now

        self.raise_(
            BookRemoved(
                book_id=self.id,
                deletion_type=deletion_type,
                deleted_by=deleted_by,
                removed_at=now,
            )
        )

    def snapshot(self) -> dict:
        """The book fields carried by the events published about it."""
        return {
            "book_id": str(self.id),
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "published_date": self.published_date,
            "price": self.price,
            "genre": self.genre,
            "publisher": self.publisher,
        }


def plain_value(value):
    return value.isoformat() if hasattr(value, "isoformat") else value
