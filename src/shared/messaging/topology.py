"""Broker topology — exchanges, queues, bindings and dead-letter routing.

Declared once at process startup, in dependency order:

    exchanges → queues (primary and dead-letter) → bindings → dead-letter bindings

Primary queues are quorum queues, so the broker counts redeliveries in the
``x-delivery-count`` header the consumer caps requeues with. Every primary
queue dead-letters to ``dlq.exchange`` under its own ``*.dlq``
routing key, both when a consumer rejects a message without requeue and when
a message outlives the queue's TTL. Any declaration failure is fatal.
"""

from dataclasses import dataclass

import structlog

from shared.messaging import constants
from shared.messaging.broker import Broker, ExchangeKind
from shared.messaging.exceptions import MessagingError, TopologyDeclarationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ExchangeDeclaration:
    name: str
    kind: ExchangeKind
    durable: bool = True


@dataclass(frozen=True)
class QueueDeclaration:
    name: str
    durable: bool = True
    dead_letter_exchange: str | None = None
    dead_letter_routing_key: str | None = None
    message_ttl_ms: int | None = None
    queue_type: str | None = None

    def arguments(self) -> dict:
        arguments = {}
        if self.queue_type is not None:
            arguments[constants.QUEUE_TYPE_ARG] = self.queue_type
        if self.dead_letter_exchange is not None:
            arguments[constants.DEAD_LETTER_EXCHANGE_ARG] = self.dead_letter_exchange
        if self.dead_letter_routing_key is not None:
            arguments[constants.DEAD_LETTER_ROUTING_KEY_ARG] = self.dead_letter_routing_key
        if self.message_ttl_ms is not None:
            arguments[constants.MESSAGE_TTL_ARG] = self.message_ttl_ms
        return arguments


@dataclass(frozen=True)
class BindingDeclaration:
    queue: str
    exchange: str
    routing_key: str


@dataclass(frozen=True)
class Topology:
    exchanges: tuple[ExchangeDeclaration, ...]
    queues: tuple[QueueDeclaration, ...]
    bindings: tuple[BindingDeclaration, ...]
    dead_letter_bindings: tuple[BindingDeclaration, ...]

    def dead_letter_queue_for(self, queue: str) -> str | None:
        for declaration in self.queues:
            if declaration.name == queue:
                return declaration.dead_letter_routing_key
        return None

    @property
    def dead_letter_queues(self) -> list[str]:
        return [binding.queue for binding in self.dead_letter_bindings]


# (primary queue, exchange, routing key, dead-letter queue)
_QUEUE_ROUTES = (
    (
        constants.BOOK_CREATED_QUEUE,
        constants.BOOK_EXCHANGE,
        constants.BOOK_CREATED_ROUTING_KEY,
        constants.BOOK_CREATED_DLQ,
    ),
    (
        constants.BOOK_UPDATED_QUEUE,
        constants.BOOK_EXCHANGE,
        constants.BOOK_UPDATED_ROUTING_KEY,
        constants.BOOK_UPDATED_DLQ,
    ),
    (
        constants.BOOK_DELETED_QUEUE,
        constants.BOOK_EXCHANGE,
        constants.BOOK_DELETED_ROUTING_KEY,
        constants.BOOK_DELETED_DLQ,
    ),
    (
        constants.NOTIFICATION_SEND_QUEUE,
        constants.NOTIFICATION_EXCHANGE,
        constants.NOTIFICATION_SEND_ROUTING_KEY,
        constants.NOTIFICATION_SEND_DLQ,
    ),
)


def build_topology(message_ttl_ms: int = constants.MESSAGE_TTL_MS) -> Topology:
    exchanges = (
        ExchangeDeclaration(constants.BOOK_EXCHANGE, ExchangeKind.TOPIC),
        ExchangeDeclaration(constants.USER_EXCHANGE, ExchangeKind.TOPIC),
        ExchangeDeclaration(constants.NOTIFICATION_EXCHANGE, ExchangeKind.TOPIC),
        ExchangeDeclaration(constants.DLQ_EXCHANGE, ExchangeKind.DIRECT),
    )

    queues = []
    bindings = []
    dead_letter_bindings = []
    for queue, exchange, routing_key, dlq in _QUEUE_ROUTES:
        queues.append(
            QueueDeclaration(
                name=queue,
                dead_letter_exchange=constants.DLQ_EXCHANGE,
                dead_letter_routing_key=dlq,
                message_ttl_ms=message_ttl_ms,
                queue_type=constants.QUORUM_QUEUE_TYPE,
            )
        )
        queues.append(QueueDeclaration(name=dlq))
        bindings.append(BindingDeclaration(queue=queue, exchange=exchange, routing_key=routing_key))
        dead_letter_bindings.append(BindingDeclaration(queue=dlq, exchange=constants.DLQ_EXCHANGE, routing_key=dlq))

    return Topology(
        exchanges=exchanges,
        queues=tuple(queues),
        bindings=tuple(bindings),
        dead_letter_bindings=tuple(dead_letter_bindings),
    )


async def declare_topology(broker: Broker, topology: Topology | None = None) -> Topology:
    """Declare every exchange, queue and binding, or raise ``TopologyDeclarationError``."""
    topology = topology or build_topology()
    step = "topology"
    try:
        for exchange in topology.exchanges:
            step = f"exchange {exchange.name}"
            await broker.declare_exchange(exchange.name, exchange.kind, durable=exchange.durable)

        for queue in topology.queues:
            step = f"queue {queue.name}"
            await broker.declare_queue(queue.name, durable=queue.durable, arguments=queue.arguments())

        for binding in topology.bindings + topology.dead_letter_bindings:
            step = f"binding {binding.exchange} -> {binding.queue}"
            await broker.bind_queue(binding.queue, binding.exchange, binding.routing_key)
    except MessagingError as exc:
        logger.error("Topology declaration failed", step=step, error=str(exc))
        raise TopologyDeclarationError(f"Failed to declare {step}: {exc}") from exc

    logger.info(
        "Broker topology declared",
        exchanges=len(topology.exchanges),
        queues=len(topology.queues),
        bindings=len(topology.bindings) + len(topology.dead_letter_bindings),
    )
    return topology
