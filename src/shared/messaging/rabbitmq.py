"""RabbitMQ broker backed by aio-pika connection and channel pools.

Every operation acquires a channel from the pool for its own duration and
releases it afterwards. Deliveries keep a reference to the incoming message so
that ack/reject happen on the channel the message arrived on.
"""

import asyncio

import aio_pika
import structlog
from aio_pika.abc import AbstractChannel, AbstractRobustConnection
from aio_pika.exceptions import AMQPError
from aio_pika.pool import Pool

from shared.messaging import constants
from shared.messaging.broker import Broker, Delivery, ExchangeKind, OutboundMessage
from shared.messaging.exceptions import BrokerError, BrokerUnavailableError

logger = structlog.get_logger(__name__)

_EXCHANGE_TYPES = {
    ExchangeKind.DIRECT: aio_pika.ExchangeType.DIRECT,
    ExchangeKind.TOPIC: aio_pika.ExchangeType.TOPIC,
    ExchangeKind.FANOUT: aio_pika.ExchangeType.FANOUT,
}

_TRANSIENT_ERRORS = (AMQPError, ConnectionError, asyncio.TimeoutError)


class RabbitMQBroker(Broker):
    def __init__(
        self,
        url: str,
        connect_timeout: float = 10.0,
        connection_pool_size: int = 2,
        channel_pool_size: int = 10,
    ):
        self._url = url
        self._connect_timeout = connect_timeout
        self._connection_pool_size = connection_pool_size
        self._channel_pool_size = channel_pool_size
        self._connections: Pool | None = None
        self._channels: Pool | None = None

    async def _open_connection(self) -> AbstractRobustConnection:
        return await aio_pika.connect_robust(self._url, timeout=self._connect_timeout)

    async def _open_channel(self) -> AbstractChannel:
        async with self._connections.acquire() as connection:
            channel = await connection.channel()
            # One unacknowledged message per channel at a time
            await channel.set_qos(prefetch_count=1)
            return channel

    async def connect(self) -> None:
        self._connections = Pool(self._open_connection, max_size=self._connection_pool_size)
        self._channels = Pool(self._open_channel, max_size=self._channel_pool_size)

        # Fail fast: prove the broker is reachable before anyone relies on it
        try:
            async with self._channels.acquire():
                pass
        except _TRANSIENT_ERRORS as exc:
            await self.close()
            raise BrokerUnavailableError(f"Cannot connect to RabbitMQ: {exc}") from exc

        logger.info("Connected to RabbitMQ", pool_size=self._channel_pool_size)

    async def close(self) -> None:
        if self._channels is not None:
            await self._channels.close()
            self._channels = None
        if self._connections is not None:
            await self._connections.close()
            self._connections = None
        logger.info("Disconnected from RabbitMQ")

    def _pool(self) -> Pool:
        if self._channels is None:
            raise BrokerUnavailableError("RabbitMQ broker is not connected")
        return self._channels

    # -------------------------------------------------------------------
    # Topology
    # -------------------------------------------------------------------
    async def declare_exchange(self, name: str, kind: ExchangeKind, durable: bool = True) -> None:
        try:
            async with self._pool().acquire() as channel:
                await channel.declare_exchange(name, _EXCHANGE_TYPES[kind], durable=durable)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to declare exchange {name}: {exc}") from exc

    async def declare_queue(self, name: str, durable: bool = True, arguments: dict | None = None) -> None:
        try:
            async with self._pool().acquire() as channel:
                await channel.declare_queue(name, durable=durable, arguments=arguments or {})
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to declare queue {name}: {exc}") from exc

    async def bind_queue(self, queue: str, exchange: str, routing_key: str) -> None:
        try:
            async with self._pool().acquire() as channel:
                amqp_queue = await channel.get_queue(queue, ensure=False)
                await amqp_queue.bind(exchange, routing_key=routing_key)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to bind {queue} to {exchange}: {exc}") from exc

    # -------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------
    async def publish(
        self,
        exchange: str,
        routing_key: str,
        message: OutboundMessage,
        timeout: float | None = None,
    ) -> None:
        amqp_message = aio_pika.Message(
            body=message.body,
            headers=message.headers,
            content_type=message.content_type,
            content_encoding="utf-8",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=message.message_id,
            correlation_id=message.correlation_id,
            timestamp=message.timestamp,
        )
        try:
            async with self._pool().acquire() as channel:
                amqp_exchange = await channel.get_exchange(exchange, ensure=False)
                await amqp_exchange.publish(amqp_message, routing_key=routing_key, timeout=timeout)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to publish to {exchange}/{routing_key}: {exc}") from exc

    # -------------------------------------------------------------------
    # Consuming
    # -------------------------------------------------------------------
    async def get(self, queue: str, timeout: float | None = None) -> Delivery | None:
        try:
            async with self._pool().acquire() as channel:
                amqp_queue = await channel.get_queue(queue, ensure=False)
                incoming = await amqp_queue.get(no_ack=False, fail=False, timeout=timeout)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to fetch from {queue}: {exc}") from exc

        if incoming is None:
            return None

        headers = dict(incoming.headers or {})
        # Quorum queues count earlier attempts; classic queues only flag redelivery
        delivery_count = headers.get(constants.DELIVERY_COUNT_HEADER)
        if delivery_count is None:
            delivery_count = 2 if incoming.redelivered else 1
        else:
            delivery_count = int(delivery_count) + 1

        return Delivery(
            queue=queue,
            body=incoming.body,
            headers=headers,
            delivery_tag=incoming.delivery_tag,
            exchange=incoming.exchange or "",
            routing_key=incoming.routing_key or "",
            message_id=incoming.message_id,
            correlation_id=incoming.correlation_id,
            redelivered=bool(incoming.redelivered),
            delivery_count=delivery_count,
            raw=incoming,
        )

    async def ack(self, delivery: Delivery) -> None:
        try:
            await delivery.raw.ack()
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to ack delivery {delivery.delivery_tag}: {exc}") from exc

    async def reject(self, delivery: Delivery, requeue: bool) -> None:
        try:
            await delivery.raw.reject(requeue=requeue)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerUnavailableError(f"Failed to reject delivery {delivery.delivery_tag}: {exc}") from exc

    async def queue_depth(self, queue: str) -> int:
        try:
            async with self._pool().acquire() as channel:
                amqp_queue = await channel.declare_queue(queue, passive=True)
        except _TRANSIENT_ERRORS as exc:
            raise BrokerError(f"Failed to inspect queue {queue}: {exc}") from exc
        return amqp_queue.declaration_result.message_count
