"""In-memory broker with AMQP-style routing and dead-lettering.

Used by the test suite and by local runs without RabbitMQ. It honours the
parts of the AMQP model the services rely on:

- topic, direct and fanout exchanges (``*`` matches one word, ``#`` zero or more)
- per-queue ``x-dead-letter-exchange`` / ``x-dead-letter-routing-key``
- per-queue ``x-message-ttl``, expired at the head of the queue on fetch
- unacknowledged deliveries are requeued when the connection closes
"""

import itertools
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Callable

import structlog

from shared.messaging import constants
from shared.messaging.broker import Broker, Delivery, ExchangeKind, OutboundMessage
from shared.messaging.exceptions import BrokerError, BrokerUnavailableError

logger = structlog.get_logger(__name__)


def topic_matches(pattern: str, routing_key: str) -> bool:
    """Match a dot-separated routing key against a topic binding pattern."""
    return _match_words(pattern.split("."), routing_key.split("."))


def _match_words(pattern: list[str], words: list[str]) -> bool:
    if not pattern:
        return not words
    head, rest = pattern[0], pattern[1:]
    if head == "#":
        return any(_match_words(rest, words[i:]) for i in range(len(words) + 1))
    if not words:
        return False
    if head == "*" or head == words[0]:
        return _match_words(rest, words[1:])
    return False


@dataclass
class _StoredMessage:
    message: OutboundMessage
    exchange: str
    routing_key: str
    enqueued_at: float
    delivery_count: int = 0


@dataclass
class _Queue:
    name: str
    durable: bool
    arguments: dict
    messages: deque = field(default_factory=deque)

    @property
    def ttl_ms(self) -> int | None:
        return self.arguments.get(constants.MESSAGE_TTL_ARG)


class InMemoryBroker(Broker):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._exchanges: dict[str, ExchangeKind] = {}
        self._queues: dict[str, _Queue] = {}
        self._bindings: list[tuple[str, str, str]] = []
        self._in_flight: dict[int, tuple[str, _StoredMessage]] = {}
        self._tags = itertools.count(1)
        self._connected = False
        self._available = True
        self._failing_publishes = 0

    # -------------------------------------------------------------------
    # Fault injection
    # -------------------------------------------------------------------
    def set_available(self, available: bool) -> None:
        """Simulate the broker going down (or coming back)."""
        self._available = available

    def fail_next_publishes(self, count: int) -> None:
        """Make the next ``count`` publishes fail as if the channel broke."""
        self._failing_publishes = count

    # -------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------
    async def connect(self) -> None:
        if not self._available:
            raise BrokerUnavailableError("Broker is unreachable")
        self._connected = True

    async def close(self) -> None:
        # Anything still unacknowledged goes back to the head of its queue
        for tag in sorted(self._in_flight, reverse=True):
            queue_name, stored = self._in_flight.pop(tag)
            self._queues[queue_name].messages.appendleft(stored)
        self._connected = False

    def _ensure_connected(self) -> None:
        if not self._available or not self._connected:
            raise BrokerUnavailableError("Broker connection is not open")

    # -------------------------------------------------------------------
    # Topology
    # -------------------------------------------------------------------
    async def declare_exchange(self, name: str, kind: ExchangeKind, durable: bool = True) -> None:
        self._ensure_connected()
        existing = self._exchanges.get(name)
        if existing is not None and existing != kind:
            raise BrokerError(f"Exchange {name} already declared as {existing.value}")
        self._exchanges[name] = kind

    async def declare_queue(self, name: str, durable: bool = True, arguments: dict | None = None) -> None:
        self._ensure_connected()
        arguments = dict(arguments or {})
        existing = self._queues.get(name)
        if existing is not None:
            if existing.arguments != arguments:
                raise BrokerError(f"Queue {name} already declared with different arguments")
            return
        self._queues[name] = _Queue(name=name, durable=durable, arguments=arguments)

    async def bind_queue(self, queue: str, exchange: str, routing_key: str) -> None:
        self._ensure_connected()
        if exchange not in self._exchanges:
            raise BrokerError(f"Cannot bind to unknown exchange {exchange}")
        if queue not in self._queues:
            raise BrokerError(f"Cannot bind unknown queue {queue}")
        binding = (exchange, queue, routing_key)
        if binding not in self._bindings:
            self._bindings.append(binding)

    # -------------------------------------------------------------------
    # Publishing and routing
    # -------------------------------------------------------------------
    async def publish(
        self,
        exchange: str,
        routing_key: str,
        message: OutboundMessage,
        timeout: float | None = None,
    ) -> None:
        self._ensure_connected()
        if self._failing_publishes > 0:
            self._failing_publishes -= 1
            raise BrokerUnavailableError("Channel closed while publishing")
        if exchange not in self._exchanges:
            raise BrokerError(f"Exchange {exchange} does not exist")
        self._route(exchange, routing_key, message)

    def _route(self, exchange: str, routing_key: str, message: OutboundMessage) -> int:
        kind = self._exchanges[exchange]
        delivered = 0
        for bound_exchange, queue_name, pattern in self._bindings:
            if bound_exchange != exchange:
                continue
            if kind is ExchangeKind.TOPIC and not topic_matches(pattern, routing_key):
                continue
            if kind is ExchangeKind.DIRECT and pattern != routing_key:
                continue
            self._queues[queue_name].messages.append(
                _StoredMessage(
                    message=message,
                    exchange=exchange,
                    routing_key=routing_key,
                    enqueued_at=self._clock(),
                )
            )
            delivered += 1

        if delivered == 0:
            logger.warning("Unroutable message dropped", exchange=exchange, routing_key=routing_key)
        return delivered

    def _dead_letter(self, queue: _Queue, stored: _StoredMessage, reason: str) -> None:
        dlx = queue.arguments.get(constants.DEAD_LETTER_EXCHANGE_ARG)
        if dlx is None or dlx not in self._exchanges:
            logger.warning("Message discarded without dead-letter route", queue=queue.name, reason=reason)
            return

        dl_routing_key = queue.arguments.get(constants.DEAD_LETTER_ROUTING_KEY_ARG, stored.routing_key)
        headers = dict(stored.message.headers)
        headers["x-death"] = [
            {
                "queue": queue.name,
                "reason": reason,
                "exchange": stored.exchange,
                "routing-keys": [stored.routing_key],
                "count": 1,
            }
        ] + list(headers.get("x-death", []))
        headers["x-first-death-queue"] = headers["x-death"][-1]["queue"]
        headers["x-first-death-reason"] = headers["x-death"][-1]["reason"]

        self._route(dlx, dl_routing_key, replace(stored.message, headers=headers))
        logger.info("Message dead-lettered", queue=queue.name, reason=reason, dead_letter_exchange=dlx)

    def _expire_head(self, queue: _Queue) -> None:
        ttl_ms = queue.ttl_ms
        if ttl_ms is None:
            return
        now = self._clock()
        while queue.messages and (now - queue.messages[0].enqueued_at) * 1000 >= ttl_ms:
            self._dead_letter(queue, queue.messages.popleft(), reason="expired")

    # -------------------------------------------------------------------
    # Consuming
    # -------------------------------------------------------------------
    def _queue(self, name: str) -> _Queue:
        try:
            return self._queues[name]
        except KeyError:
            raise BrokerError(f"Queue {name} does not exist") from None

    async def get(self, queue: str, timeout: float | None = None) -> Delivery | None:
        self._ensure_connected()
        q = self._queue(queue)
        self._expire_head(q)
        if not q.messages:
            return None

        stored = q.messages.popleft()
        stored.delivery_count += 1
        tag = next(self._tags)
        self._in_flight[tag] = (queue, stored)

        message = stored.message
        return Delivery(
            queue=queue,
            body=message.body,
            headers=dict(message.headers),
            delivery_tag=tag,
            exchange=stored.exchange,
            routing_key=stored.routing_key,
            message_id=message.message_id,
            correlation_id=message.correlation_id,
            redelivered=stored.delivery_count > 1,
            delivery_count=stored.delivery_count,
        )

    def _settle(self, delivery: Delivery) -> tuple[str, _StoredMessage]:
        self._ensure_connected()
        try:
            return self._in_flight.pop(delivery.delivery_tag)
        except KeyError:
            raise BrokerError(f"Unknown delivery tag {delivery.delivery_tag}") from None

    async def ack(self, delivery: Delivery) -> None:
        self._settle(delivery)

    async def reject(self, delivery: Delivery, requeue: bool) -> None:
        queue_name, stored = self._settle(delivery)
        queue = self._queues[queue_name]
        if requeue:
            queue.messages.appendleft(stored)
        else:
            self._dead_letter(queue, stored, reason="rejected")

    async def queue_depth(self, queue: str) -> int:
        self._ensure_connected()
        q = self._queue(queue)
        self._expire_head(q)
        return len(q.messages)

    # -------------------------------------------------------------------
    # Inspection helpers
    # -------------------------------------------------------------------
    def peek(self, queue: str) -> list[OutboundMessage]:
        """Return the messages waiting in a queue without consuming them."""
        return [stored.message for stored in self._queue(queue).messages]

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def exchanges(self) -> dict[str, ExchangeKind]:
        return dict(self._exchanges)

    def queue_arguments(self, queue: str) -> dict:
        return dict(self._queue(queue).arguments)

    def bindings(self) -> list[tuple[str, str, str]]:
        return list(self._bindings)
