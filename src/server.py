"""Notification worker for Bookstream.

Connects to the broker, declares the topology and drains the notification
queues with a pool of asyncio workers. Optionally runs the retry sweeper on
a fixed interval alongside the consumers.

Needs BROKER_BACKEND=rabbitmq. Exits non-zero if the broker is not
configured for it, cannot be reached, or the topology cannot be declared.

Usage:
    python src/server.py                          # Consume until SIGINT/SIGTERM
    python src/server.py --sweep-interval 300     # Also sweep failed notifications every 5 minutes
    python src/server.py --workers 4              # Workers per queue
"""

import argparse
import asyncio
import contextlib
import signal
import sys

import structlog

from shared.config import MessagingSettings, build_shared_broker
from shared.logging import configure_logging
from shared.messaging.exceptions import (
    BrokerConfigurationError,
    BrokerUnavailableError,
    TopologyDeclarationError,
)
from shared.messaging.topology import build_topology, declare_topology

logger = structlog.get_logger(__name__)


async def sweep_periodically(sweeper, interval: float, stop: asyncio.Event) -> None:
    """Run a retry sweep every ``interval`` seconds until ``stop`` is set."""
    while not stop.is_set():
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval)
            return
        try:
            await sweeper.sweep()
        except Exception:
            logger.exception("Periodic retry sweep failed")


async def run(settings: MessagingSettings, sweep_interval: float | None = None) -> None:
    broker = build_shared_broker(settings)

    from notifications.domain import notifications

    notifications.init()

    from notifications.messaging.consumer import EventConsumer
    from notifications.notification.delivery import NotificationDispatcher
    from notifications.notification.retry import RetrySweeper

    await broker.connect()
    try:
        await declare_topology(broker, build_topology(settings.message_ttl_ms))

        dispatcher = NotificationDispatcher(timeout=settings.delivery_timeout)
        consumer = EventConsumer(
            broker,
            dispatcher,
            domain=notifications,
            workers_per_queue=settings.consumer_workers_per_queue,
            poll_interval=settings.consumer_poll_interval,
            max_redeliveries=settings.consumer_max_redeliveries,
            admin_email=settings.admin_email,
            admin_name=settings.admin_name,
        )

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        with notifications.domain_context():
            tasks = [consumer.run(stop)]
            if sweep_interval:
                sweeper = RetrySweeper(dispatcher, batch_size=settings.sweep_batch_size)
                tasks.append(sweep_periodically(sweeper, sweep_interval, stop))
            await asyncio.gather(*tasks)
    finally:
        await broker.close()


def main():
    parser = argparse.ArgumentParser(description="Bookstream notification worker")
    parser.add_argument(
        "--sweep-interval",
        type=float,
        default=None,
        help="Seconds between retry sweeps (default: no periodic sweep)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Workers per queue (default: CONSUMER_WORKERS_PER_QUEUE)",
    )
    args = parser.parse_args()

    configure_logging(log_file_prefix="notification-worker")
    settings = MessagingSettings()
    if args.workers:
        settings = settings.model_copy(update={"consumer_workers_per_queue": args.workers})

    try:
        asyncio.run(run(settings, sweep_interval=args.sweep_interval))
    except (BrokerConfigurationError, BrokerUnavailableError, TopologyDeclarationError) as exc:
        logger.error("Notification worker failed to start", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
