"""Tests for the book management commands."""

from datetime import date

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from catalogue.book.book import Book
from catalogue.book.management import CreateBook, DeleteBook, UpdateBook


def _create(**overrides):
    fields = {"title": "Dune", "author": "Frank Herbert", "price": 9.99, "created_by": "alice"}
    fields.update(overrides)
    return current_domain.process(CreateBook(**fields), asynchronous=False)


class TestCreateBook:
    def test_returns_snapshot(self):
        snapshot = _create(published_date=date(1965, 8, 1))
        assert snapshot["book_id"]
        assert snapshot["title"] == "Dune"
        assert snapshot["published_date"] == date(1965, 8, 1)

    def test_book_is_persisted(self):
        snapshot = _create()
        book = current_domain.repository_for(Book).get(snapshot["book_id"])
        assert book.created_by == "alice"

    def test_invalid_command(self):
        with pytest.raises(ValidationError):
            CreateBook(author="Nobody")


class TestUpdateBook:
    def test_returns_book_and_previous_values(self):
        book_id = _create()["book_id"]
        result = current_domain.process(
            UpdateBook(book_id=book_id, price=12.5, updated_by="bob"),
            asynchronous=False,
        )
        assert result["book"]["price"] == 12.5
        assert result["previous_values"] == {"price": 9.99}

    def test_dates_in_previous_values_are_strings(self):
        book_id = _create(published_date=date(1965, 8, 1))["book_id"]
        result = current_domain.process(
            UpdateBook(book_id=book_id, published_date=date(1966, 1, 1)),
            asynchronous=False,
        )
        assert result["previous_values"] == {"published_date": "1965-08-01"}

    def test_update_is_persisted(self):
        book_id = _create()["book_id"]
        current_domain.process(UpdateBook(book_id=book_id, genre="SF"), asynchronous=False)
        assert current_domain.repository_for(Book).get(book_id).genre == "SF"

    def test_unknown_book(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(UpdateBook(book_id="missing", price=1.0), asynchronous=False)


class TestDeleteBook:
    def test_soft_delete_keeps_the_record(self):
        book_id = _create()["book_id"]
        snapshot = current_domain.process(DeleteBook(book_id=book_id, deleted_by="carol"), asynchronous=False)
        assert snapshot["title"] == "Dune"
        assert current_domain.repository_for(Book).get(book_id).is_active is False

    def test_hard_delete_removes_the_record(self):
        book_id = _create()["book_id"]
        current_domain.process(DeleteBook(book_id=book_id, deletion_type="HARD"), asynchronous=False)
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Book).get(book_id)

    def test_unknown_deletion_type(self):
        book_id = _create()["book_id"]
        with pytest.raises(ValidationError) as exc_info:
            current_domain.process(DeleteBook(book_id=book_id, deletion_type="SHRED"), asynchronous=False)
        assert "deletion_type" in exc_info.value.messages
