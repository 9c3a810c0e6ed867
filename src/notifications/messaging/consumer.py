"""Event consumer — drains the notification queues with a pool of workers.

For every message taken from a primary queue:

1. Decode the envelope and check its type belongs on that queue. Anything
   undecodable or misrouted is poison: rejected without requeue, so the
   broker dead-letters it. No notification is created.
2. Materialise the notification and hand it to the dispatcher, which
   persists it, attempts delivery and persists the outcome.
3. Ack only once the outcome is stored.

If step 2 blows up (the store is down, say) the message is requeued until
its delivery count passes ``max_redeliveries``, then rejected without
requeue so it lands in the dead-letter queue instead of looping forever.

Delivery is at-least-once and messages are not de-duplicated: a redelivered
or re-published event produces another notification. Queues are drained
independently, so events about one book can be handled out of order.
"""

import asyncio
import contextlib
from enum import Enum

import structlog
from notifications.domain import notifications
from notifications.notification.delivery import NotificationDispatcher
from notifications.notification.helpers import notification_from_event
from protean.exceptions import ValidationError

from shared.events.books import DomainEvent, EventType
from shared.logging import bind_correlation_id, unbind_correlation_id
from shared.messaging import constants
from shared.messaging.broker import Broker, Delivery
from shared.messaging.exceptions import BrokerUnavailableError

logger = structlog.get_logger(__name__)

QUEUE_EVENT_TYPES = {
    constants.BOOK_CREATED_QUEUE: EventType.BOOK_CREATED,
    constants.BOOK_UPDATED_QUEUE: EventType.BOOK_UPDATED,
    constants.BOOK_DELETED_QUEUE: EventType.BOOK_DELETED,
    constants.NOTIFICATION_SEND_QUEUE: EventType.NOTIFICATION_REQUESTED,
}


class ConsumeResult(Enum):
    ACKED = "acked"
    REQUEUED = "requeued"
    DEAD_LETTERED = "dead_lettered"


class PoisonMessageError(ValueError):
    """A message that can never be processed, however often it is retried."""


class EventConsumer:
    def __init__(
        self,
        broker: Broker,
        dispatcher: NotificationDispatcher,
        domain=notifications,
        queues: list[str] | None = None,
        workers_per_queue: int = 2,
        poll_interval: float = 0.5,
        max_redeliveries: int = constants.MAX_RETRY_COUNT,
        admin_email: str = "admin@bookmanagement.com",
        admin_name: str = "Admin",
    ):
        self.broker = broker
        self.dispatcher = dispatcher
        self.domain = domain
        self.queues = list(queues or QUEUE_EVENT_TYPES)
        self.workers_per_queue = workers_per_queue
        self.poll_interval = poll_interval
        self.max_redeliveries = max_redeliveries
        self.admin_email = admin_email
        self.admin_name = admin_name

    # -------------------------------------------------------------------
    # Single message
    # -------------------------------------------------------------------
    def decode(self, delivery: Delivery) -> DomainEvent:
        """Parse a delivery into an event, or raise ``PoisonMessageError``."""
        try:
            event = DomainEvent.from_json(delivery.body)
        except ValueError as exc:
            raise PoisonMessageError(f"Undecodable message: {exc}") from exc

        expected = QUEUE_EVENT_TYPES.get(delivery.queue)
        if expected is not None and event.event_type is not expected:
            raise PoisonMessageError(f"{event.event_type.value} event does not belong on {delivery.queue}")
        return event

    async def handle_delivery(self, delivery: Delivery) -> ConsumeResult:
        bind_correlation_id(delivery.correlation_id or delivery.headers.get(constants.CORRELATION_ID_HEADER))
        try:
            with self.domain.domain_context():
                return await self._handle(delivery)
        finally:
            unbind_correlation_id()

    async def _handle(self, delivery: Delivery) -> ConsumeResult:
        try:
            event = self.decode(delivery)
            notification = notification_from_event(event, self.admin_email, self.admin_name)
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Poison message rejected",
                queue=delivery.queue,
                message_id=delivery.message_id,
                error=str(exc),
            )
            await self.broker.reject(delivery, requeue=False)
            return ConsumeResult.DEAD_LETTERED

        logger.info(
            "Processing event",
            queue=delivery.queue,
            event_type=event.event_type.value,
            event_id=event.event_id,
            aggregate_id=event.aggregate_id,
            delivery_count=delivery.delivery_count,
        )

        try:
            await self.dispatcher.send(notification)
        except Exception as exc:
            requeue = delivery.delivery_count <= self.max_redeliveries
            logger.error(
                "Event processing failed",
                queue=delivery.queue,
                event_id=event.event_id,
                delivery_count=delivery.delivery_count,
                requeue=requeue,
                error=str(exc),
            )
            await self.broker.reject(delivery, requeue=requeue)
            return ConsumeResult.REQUEUED if requeue else ConsumeResult.DEAD_LETTERED

        await self.broker.ack(delivery)
        logger.info(
            "Event processed",
            event_id=event.event_id,
            notification_id=str(notification.id),
            status=notification.status,
        )
        return ConsumeResult.ACKED

    async def process_next(self, queue: str) -> ConsumeResult | None:
        """Take one message from ``queue`` and handle it. ``None`` if the queue is empty."""
        delivery = await self.broker.get(queue, timeout=self.poll_interval)
        if delivery is None:
            return None
        return await self.handle_delivery(delivery)

    async def drain(self, queues: list[str] | None = None) -> dict[str, int]:
        """Process every queue until empty. Returns the number of messages handled per queue."""
        handled = {}
        for queue in queues or self.queues:
            count = 0
            while await self.process_next(queue) is not None:
                count += 1
            handled[queue] = count
        return handled

    # -------------------------------------------------------------------
    # Worker pool
    # -------------------------------------------------------------------
    async def _worker(self, queue: str, worker_id: int, stop: asyncio.Event) -> None:
        log = logger.bind(queue=queue, worker_id=worker_id)
        log.debug("Consumer worker started")
        while not stop.is_set():
            try:
                result = await self.process_next(queue)
            except BrokerUnavailableError as exc:
                log.warning("Broker unavailable, backing off", error=str(exc))
                result = None

            if result is None:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
        log.debug("Consumer worker stopped")

    async def run(self, stop: asyncio.Event) -> None:
        """Run ``workers_per_queue`` workers on every queue until ``stop`` is set."""
        logger.info("Starting event consumer", queues=self.queues, workers_per_queue=self.workers_per_queue)
        workers = [
            asyncio.create_task(self._worker(queue, worker_id, stop))
            for queue in self.queues
            for worker_id in range(self.workers_per_queue)
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()
            logger.info("Event consumer stopped")
