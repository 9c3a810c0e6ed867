"""Announce committed catalog changes on the broker.

The catalog write has already been committed when these run. A publish that
still fails after its retries is logged and reported back as ``False``; the
write is never rolled back for it.
"""

import structlog

from shared.events.books import DomainEvent
from shared.messaging import constants
from shared.messaging.exceptions import EventPublishError
from shared.messaging.publisher import EventPublisher

logger = structlog.get_logger(__name__)


async def publish_book_event(
    publisher: EventPublisher | None,
    event: DomainEvent,
    max_retries: int = constants.MAX_RETRY_COUNT,
) -> bool:
    """Publish with retries. Returns whether the event reached the broker."""
    if publisher is None:
        logger.warning("No event publisher configured, event not published", event_type=event.event_type.value)
        return False

    try:
        await publisher.publish_with_retry(event, max_retries=max_retries)
    except EventPublishError as exc:
        logger.error(
            "Book event could not be published",
            event_type=event.event_type.value,
            event_id=event.event_id,
            book_id=event.aggregate_id,
            correlation_id=event.correlation_id,
            attempts=exc.attempts,
            error=str(exc),
        )
        return False
    return True
