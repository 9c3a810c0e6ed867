"""Domain events for the Book aggregate.

These stay inside the catalogue. What leaves the service is the broker
contract in ``shared.events.books``, built from the committed book.
"""

from protean.fields import DateTime, Dict, Identifier, String

from catalogue.domain import catalogue


@catalogue.event(part_of="Book")
class BookAdded:
    """A book was added to the catalog."""

    __version__ = 1

    book_id: Identifier(required=True)
    title: String(required=True)
    author: String(required=True)
    isbn: String()
    created_by: String()


@catalogue.event(part_of="Book")
class BookDetailsUpdated:
    """One or more of a book's details changed."""

    __version__ = 1

    book_id: Identifier(required=True)
    previous_values: Dict()
    updated_by: String()


@catalogue.event(part_of="Book")
class BookRemoved:
    """A book was taken out of the catalog."""

    __version__ = 1

    book_id: Identifier(required=True)
    deletion_type: String(required=True)
    deleted_by: String()
    removed_at: DateTime(required=True)
