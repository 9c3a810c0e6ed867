"""Cross-service event contracts published on the broker.

One immutable envelope (``DomainEvent``) carries a ``payload`` variant
discriminated by ``kind``. Exchange and routing key are looked up from the
event type, so every event of a given type always travels the same route.

The JSON wire shape uses camelCase keys::

    {"eventId": "...", "eventType": "BookCreated", "aggregateId": "42",
     "aggregateType": "Book", "sourceService": "book-service",
     "correlationId": "abc", "timestamp": "...", "version": "1.0",
     "payload": {"kind": "BookCreated", "bookId": "42", ...}}
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from shared.messaging import constants


class EventType(Enum):
    BOOK_CREATED = "BookCreated"
    BOOK_UPDATED = "BookUpdated"
    BOOK_DELETED = "BookDeleted"
    NOTIFICATION_REQUESTED = "NotificationRequested"


class DeletionType(Enum):
    SOFT = "SOFT"
    HARD = "HARD"


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    exchange: str
    routing_key: str


ROUTES: dict[EventType, Route] = {
    EventType.BOOK_CREATED: Route(
        exchange=constants.BOOK_EXCHANGE,
        routing_key=constants.BOOK_CREATED_ROUTING_KEY,
    ),
    EventType.BOOK_UPDATED: Route(
        exchange=constants.BOOK_EXCHANGE,
        routing_key=constants.BOOK_UPDATED_ROUTING_KEY,
    ),
    EventType.BOOK_DELETED: Route(
        exchange=constants.BOOK_EXCHANGE,
        routing_key=constants.BOOK_DELETED_ROUTING_KEY,
    ),
    EventType.NOTIFICATION_REQUESTED: Route(
        exchange=constants.NOTIFICATION_EXCHANGE,
        routing_key=constants.NOTIFICATION_SEND_ROUTING_KEY,
    ),
}


def route_for(event_type: EventType) -> Route:
    """Return the exchange/routing-key pair for an event type."""
    return ROUTES[event_type]


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------
class _Payload(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BookSnapshot(_Payload):
    """Book fields relevant to a create/update notification."""

    book_id: str = Field(min_length=1)
    title: str
    author: str
    isbn: str | None = None
    published_date: date | None = None
    price: Decimal | None = None
    genre: str | None = None
    publisher: str | None = None


class BookCreatedPayload(BookSnapshot):
    kind: Literal["BookCreated"] = "BookCreated"
    created_by: str | None = None


class BookUpdatedPayload(BookSnapshot):
    kind: Literal["BookUpdated"] = "BookUpdated"
    updated_by: str | None = None
    previous_values: dict[str, Any] | None = None


class BookDeletedPayload(_Payload):
    kind: Literal["BookDeleted"] = "BookDeleted"
    book_id: str = Field(min_length=1)
    title: str
    author: str
    isbn: str | None = None
    deleted_by: str | None = None
    deletion_type: DeletionType = DeletionType.SOFT


class NotificationRequestedPayload(_Payload):
    kind: Literal["NotificationRequested"] = "NotificationRequested"
    recipient_email: str = Field(min_length=3)
    recipient_name: str | None = None
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    notification_type: str = "SystemAlert"
    reference_id: str | None = None
    reference_type: str | None = None


EventPayload = Annotated[
    BookCreatedPayload | BookUpdatedPayload | BookDeletedPayload | NotificationRequestedPayload,
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
class DomainEvent(BaseModel):
    """Immutable envelope for one domain occurrence."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    aggregate_id: str = Field(min_length=1)
    aggregate_type: str
    source_service: str
    correlation_id: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str = "1.0"
    payload: EventPayload

    @model_validator(mode="after")
    def payload_must_match_event_type(self):
        if self.payload.kind != self.event_type.value:
            raise ValueError(f"Payload kind {self.payload.kind} does not match event type {self.event_type.value}")
        return self

    @property
    def exchange(self) -> str:
        return route_for(self.event_type).exchange

    @property
    def routing_key(self) -> str:
        return route_for(self.event_type).routing_key

    def headers(self) -> dict[str, str]:
        """Tracing headers attached to every published message."""
        return {
            constants.CORRELATION_ID_HEADER: self.correlation_id,
            constants.EVENT_TYPE_HEADER: self.event_type.value,
            constants.SOURCE_SERVICE_HEADER: self.source_service,
            constants.TIMESTAMP_HEADER: self.timestamp.isoformat(),
        }

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_json(cls, body: bytes | str) -> "DomainEvent":
        """Parse a wire payload. Raises ``ValueError`` for anything malformed."""
        return cls.model_validate_json(body)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
def _require(value, name: str) -> str:
    if value is None or str(value).strip() == "":
        raise ValueError(f"{name} is required to build an event")
    return str(value)


def book_created(book: dict, correlation_id: str, created_by: str | None = None) -> DomainEvent:
    book_id = _require(book.get("book_id"), "book_id")
    return DomainEvent(
        event_type=EventType.BOOK_CREATED,
        aggregate_id=book_id,
        aggregate_type=constants.BOOK_AGGREGATE,
        source_service=constants.BOOK_SERVICE,
        correlation_id=_require(correlation_id, "correlation_id"),
        payload=BookCreatedPayload(**{**book, "book_id": book_id}, created_by=created_by),
    )


def book_updated(
    book: dict,
    correlation_id: str,
    updated_by: str | None = None,
    previous_values: dict | None = None,
) -> DomainEvent:
    book_id = _require(book.get("book_id"), "book_id")
    return DomainEvent(
        event_type=EventType.BOOK_UPDATED,
        aggregate_id=book_id,
        aggregate_type=constants.BOOK_AGGREGATE,
        source_service=constants.BOOK_SERVICE,
        correlation_id=_require(correlation_id, "correlation_id"),
        payload=BookUpdatedPayload(
            **{**book, "book_id": book_id},
            updated_by=updated_by,
            previous_values=previous_values,
        ),
    )


def book_deleted(
    book: dict,
    correlation_id: str,
    deleted_by: str | None = None,
    deletion_type: DeletionType = DeletionType.SOFT,
) -> DomainEvent:
    book_id = _require(book.get("book_id"), "book_id")
    return DomainEvent(
        event_type=EventType.BOOK_DELETED,
        aggregate_id=book_id,
        aggregate_type=constants.BOOK_AGGREGATE,
        source_service=constants.BOOK_SERVICE,
        correlation_id=_require(correlation_id, "correlation_id"),
        payload=BookDeletedPayload(
            book_id=book_id,
            title=book.get("title"),
            author=book.get("author"),
            isbn=book.get("isbn"),
            deleted_by=deleted_by,
            deletion_type=deletion_type,
        ),
    )


def notification_requested(
    correlation_id: str,
    recipient_email: str,
    subject: str,
    body: str,
    recipient_name: str | None = None,
    notification_type: str = "SystemAlert",
    reference_id: str | None = None,
    reference_type: str | None = None,
) -> DomainEvent:
    return DomainEvent(
        event_type=EventType.NOTIFICATION_REQUESTED,
        aggregate_id=reference_id or str(uuid4()),
        aggregate_type=constants.NOTIFICATION_AGGREGATE,
        source_service=constants.NOTIFICATION_SERVICE,
        correlation_id=_require(correlation_id, "correlation_id"),
        payload=NotificationRequestedPayload(
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            subject=subject,
            body=body,
            notification_type=notification_type,
            reference_id=reference_id,
            reference_type=reference_type,
        ),
    )
