"""Book management — commands and handlers.

Handlers return the committed book's snapshot so the caller can announce
the change on the broker once the write has gone through.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Date, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from catalogue.book.book import Book, plain_value
from catalogue.domain import catalogue
from shared.events.books import DeletionType


@catalogue.command(part_of="Book")
class CreateBook:
    title: String(required=True, max_length=255)
    author: String(required=True, max_length=255)
    isbn: String(max_length=20)
    published_date: Date()
    price: Float(min_value=0.0)
    genre: String(max_length=100)
    publisher: String(max_length=255)
    description: Text()
    created_by: String(max_length=100)


@catalogue.command(part_of="Book")
class UpdateBook:
    book_id: Identifier(required=True)
    title: String(max_length=255)
    author: String(max_length=255)
    isbn: String(max_length=20)
    published_date: Date()
    price: Float(min_value=0.0)
    genre: String(max_length=100)
    publisher: String(max_length=255)
    description: Text()
    updated_by: String(max_length=100)


@catalogue.command(part_of="Book")
class DeleteBook:
    book_id: Identifier(required=True)
    deletion_type: String(max_length=10, default=DeletionType.SOFT.value)
    deleted_by: String(max_length=100)


@catalogue.command_handler(part_of=Book)
class ManageBookHandler:
    @handle(CreateBook)
    def create_book(self, command):
        book = Book.create(
            title=command.title,
            author=command.author,
            isbn=command.isbn,
            published_date=command.published_date,
            price=command.price,
            genre=command.genre,
            publisher=command.publisher,
            description=command.description,
            created_by=command.created_by,
        )
        current_domain.repository_for(Book).add(book)
        return book.snapshot()

    @handle(UpdateBook)
    def update_book(self, command):
        repo = current_domain.repository_for(Book)
        book = repo.get(command.book_id)
        previous_values = book.update_details(
            updated_by=command.updated_by,
            title=command.title,
            author=command.author,
            isbn=command.isbn,
            published_date=command.published_date,
            price=command.price,
            genre=command.genre,
            publisher=command.publisher,
            description=command.description,
        )
        repo.add(book)
        return {
            "book": book.snapshot(),
            "previous_values": {field: plain_value(value) for field, value in previous_values.items()},
        }

    @handle(DeleteBook)
    def delete_book(self, command):
        try:
            deletion_type = DeletionType(command.deletion_type)
        except ValueError:
            raise ValidationError({"deletion_type": ["Must be SOFT or HARD"]}) from None

        repo = current_domain.repository_for(Book)
        book = repo.get(command.book_id)
        snapshot = book.snapshot()
        book.remove(deletion_type.value, deleted_by=command.deleted_by)

        if deletion_type is DeletionType.HARD:
            repo._dao.delete(book)
        else:
            repo.add(book)
        return snapshot
