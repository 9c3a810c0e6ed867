"""FastAPI endpoints for the Catalogue domain.

Each mutation is processed synchronously; once the catalog write is committed
the matching domain event is published. A publish failure does not undo the
write: the response reports ``event_published: false`` instead.
"""

from uuid import uuid4

from fastapi import APIRouter, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from catalogue.api.schemas import (
    BookMutationResponse,
    BookResponse,
    CreateBookRequest,
    UpdateBookRequest,
)
from catalogue.book.book import Book
from catalogue.book.management import CreateBook, DeleteBook, UpdateBook
from catalogue.book.publishing import publish_book_event
from shared.events.books import DeletionType, book_created, book_deleted, book_updated

book_router = APIRouter(prefix="/books", tags=["books"])


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


def _publisher(request: Request):
    return getattr(request.app.state, "publisher", None)


def _max_retries(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    return settings.publish_max_retries if settings is not None else 3


@book_router.post("", status_code=201, response_model=BookMutationResponse)
async def create_book(body: CreateBookRequest, request: Request) -> BookMutationResponse:
    command = CreateBook(
        title=body.title,
        author=body.author,
        isbn=body.isbn,
        published_date=body.published_date,
        price=body.price,
        genre=body.genre,
        publisher=body.publisher,
        description=body.description,
        created_by=body.created_by,
    )
    book = current_domain.process(command, asynchronous=False)

    correlation_id = _correlation_id(request)
    event = book_created(book, correlation_id, created_by=body.created_by)
    published = await publish_book_event(_publisher(request), event, _max_retries(request))
    return BookMutationResponse(book=BookResponse(**book), correlation_id=correlation_id, event_published=published)


@book_router.put("/{book_id}", response_model=BookMutationResponse)
async def update_book(book_id: str, body: UpdateBookRequest, request: Request) -> BookMutationResponse:
    command = UpdateBook(
        book_id=book_id,
        title=body.title,
        author=body.author,
        isbn=body.isbn,
        published_date=body.published_date,
        price=body.price,
        genre=body.genre,
        publisher=body.publisher,
        description=body.description,
        updated_by=body.updated_by,
    )
    result = current_domain.process(command, asynchronous=False)

    correlation_id = _correlation_id(request)
    event = book_updated(
        result["book"],
        correlation_id,
        updated_by=body.updated_by,
        previous_values=result["previous_values"],
    )
    published = await publish_book_event(_publisher(request), event, _max_retries(request))
    return BookMutationResponse(
        book=BookResponse(**result["book"]),
        correlation_id=correlation_id,
        event_published=published,
        previous_values=result["previous_values"],
    )


@book_router.delete("/{book_id}", response_model=BookMutationResponse)
async def delete_book(
    book_id: str,
    request: Request,
    deletion_type: DeletionType = DeletionType.SOFT,
    deleted_by: str | None = None,
) -> BookMutationResponse:
    command = DeleteBook(book_id=book_id, deletion_type=deletion_type.value, deleted_by=deleted_by)
    book = current_domain.process(command, asynchronous=False)

    correlation_id = _correlation_id(request)
    event = book_deleted(book, correlation_id, deleted_by=deleted_by, deletion_type=deletion_type)
    published = await publish_book_event(_publisher(request), event, _max_retries(request))
    return BookMutationResponse(book=BookResponse(**book), correlation_id=correlation_id, event_published=published)


@book_router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: str) -> BookResponse:
    book = current_domain.repository_for(Book).get(book_id)
    if not book.is_active:
        raise ObjectNotFoundError(f"Book with id {book_id} does not exist")
    return BookResponse(**book.snapshot())
