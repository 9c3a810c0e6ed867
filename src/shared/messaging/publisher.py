"""Event publisher — hands domain events to the broker.

``publish`` sends once. ``publish_with_retry`` makes at most ``max_retries``
attempts, waiting a fixed backoff between transient failures, and raises
``EventPublishError`` once they are exhausted. Failures are never swallowed:
the caller decides whether to alert, but always learns about them.

A publish may reach the broker even though the confirmation is lost, so a
retry can duplicate a message. Consumers see at-least-once delivery.
"""

import asyncio
from typing import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from shared.events.books import DomainEvent
from shared.messaging import constants
from shared.messaging.broker import Broker, OutboundMessage
from shared.messaging.exceptions import BrokerUnavailableError, EventPublishError

logger = structlog.get_logger(__name__)

TRANSIENT_PUBLISH_ERRORS = (BrokerUnavailableError, asyncio.TimeoutError, ConnectionError)


def is_transient_publish_failure(exc: BaseException) -> bool:
    return isinstance(exc, EventPublishError) and isinstance(exc.__cause__, TRANSIENT_PUBLISH_ERRORS)


class EventPublisher:
    def __init__(
        self,
        broker: Broker,
        publish_timeout: float = 5.0,
        retry_backoff: float = constants.RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.broker = broker
        self.publish_timeout = publish_timeout
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    @staticmethod
    def to_message(event: DomainEvent) -> OutboundMessage:
        return OutboundMessage(
            body=event.to_json(),
            headers=event.headers(),
            message_id=event.event_id,
            correlation_id=event.correlation_id,
            timestamp=event.timestamp,
        )

    async def _send(self, event: DomainEvent) -> None:
        await asyncio.wait_for(
            self.broker.publish(
                event.exchange,
                event.routing_key,
                self.to_message(event),
                timeout=self.publish_timeout,
            ),
            timeout=self.publish_timeout,
        )

    async def publish(self, event: DomainEvent) -> None:
        """Publish once to the exchange/routing key the event declares."""
        logger.info(
            "Publishing event",
            event_type=event.event_type.value,
            event_id=event.event_id,
            exchange=event.exchange,
            routing_key=event.routing_key,
            correlation_id=event.correlation_id,
        )
        try:
            await self._send(event)
        except Exception as exc:
            logger.error(
                "Event publish failed",
                event_type=event.event_type.value,
                event_id=event.event_id,
                error=str(exc),
            )
            raise EventPublishError(
                f"Failed to publish event: {event.event_type.value}",
                event_type=event.event_type.value,
            ) from exc

        logger.info("Event published", event_type=event.event_type.value, event_id=event.event_id)

    def _log_retry(self, event: DomainEvent):
        def _before_sleep(retry_state: RetryCallState) -> None:
            logger.warning(
                "Transient publish failure",
                event_type=event.event_type.value,
                attempt=retry_state.attempt_number,
                error=str(retry_state.outcome.exception().__cause__),
            )

        return _before_sleep

    async def publish_with_retry(
        self,
        event: DomainEvent,
        max_retries: int = constants.MAX_RETRY_COUNT,
    ) -> int:
        """Publish, retrying transient failures. Returns the number of attempts used."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(max_retries, 1)),
            wait=wait_fixed(self.retry_backoff),
            retry=retry_if_exception(is_transient_publish_failure),
            before_sleep=self._log_retry(event),
            sleep=self._sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    await self.publish(event)
                    return attempt.retry_state.attempt_number
        except RetryError as exc:
            attempts = exc.last_attempt.attempt_number
            last_error = exc.last_attempt.exception()
            logger.error(
                "Event publish retries exhausted",
                event_type=event.event_type.value,
                event_id=event.event_id,
                attempts=attempts,
            )
            raise EventPublishError(
                f"Failed to publish event after {attempts} attempts",
                event_type=event.event_type.value,
                attempts=attempts,
            ) from last_error.__cause__
