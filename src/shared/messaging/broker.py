"""Broker contract shared by the in-memory and RabbitMQ backends.

Publishers and consumers only see this interface. A backend is an explicitly
constructed resource: the owning process connects it, hands it to the
publisher/consumer and closes it on shutdown.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ExchangeKind(Enum):
    DIRECT = "direct"
    TOPIC = "topic"
    FANOUT = "fanout"


@dataclass(frozen=True)
class OutboundMessage:
    """A message body plus the properties a publisher sets on it."""

    body: bytes
    headers: dict[str, Any] = field(default_factory=dict)
    message_id: str | None = None
    correlation_id: str | None = None
    content_type: str = "application/json"
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Delivery:
    """A message handed to a consumer and awaiting ack or reject."""

    queue: str
    body: bytes
    headers: dict[str, Any]
    delivery_tag: Any
    exchange: str = ""
    routing_key: str = ""
    message_id: str | None = None
    correlation_id: str | None = None
    redelivered: bool = False
    delivery_count: int = 1
    raw: Any = field(default=None, repr=False)


class Broker(ABC):
    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def declare_exchange(self, name: str, kind: ExchangeKind, durable: bool = True) -> None: ...

    @abstractmethod
    async def declare_queue(self, name: str, durable: bool = True, arguments: dict | None = None) -> None: ...

    @abstractmethod
    async def bind_queue(self, queue: str, exchange: str, routing_key: str) -> None: ...

    @abstractmethod
    async def publish(
        self,
        exchange: str,
        routing_key: str,
        message: OutboundMessage,
        timeout: float | None = None,
    ) -> None:
        """Send a message. Raises ``BrokerUnavailableError`` on transient failure."""

    @abstractmethod
    async def get(self, queue: str, timeout: float | None = None) -> Delivery | None:
        """Fetch a single message without prefetching, or ``None`` if the queue is empty."""

    @abstractmethod
    async def ack(self, delivery: Delivery) -> None: ...

    @abstractmethod
    async def reject(self, delivery: Delivery, requeue: bool) -> None:
        """Reject a delivery. Without requeue, the queue's dead-letter routing applies."""

    @abstractmethod
    async def queue_depth(self, queue: str) -> int: ...

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *args):
        await self.close()
