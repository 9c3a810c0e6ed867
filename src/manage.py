"""Bookstream operator CLI.

Database schema management for both domains, plus broker and notification
maintenance.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py declare-topology         # Declare exchanges, queues and bindings (RabbitMQ)
    python src/manage.py dlq-depth                # Messages waiting in each dead-letter queue (RabbitMQ)
    python src/manage.py retry-failed [--dry-run] # Sweep failed notifications
"""

import argparse
import asyncio
import sys

from shared.config import MessagingSettings, build_shared_broker
from shared.messaging.exceptions import MessagingError
from shared.messaging.topology import build_topology, declare_topology

DOMAIN_NAMES = ["catalogue", "notifications"]


def _get_domains(names=None):
    from catalogue.domain import catalogue
    from notifications.domain import notifications

    all_domains = {
        "catalogue": catalogue,
        "notifications": notifications,
    }
    return {name: all_domains[name] for name in names} if names else all_domains


def setup_databases(domains=None):
    """Create database schemas for the specified (or all) domains."""
    from shared.db import setup_db

    for name, domain in _get_domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Creating {name} database schema...")
        setup_db(domain)
        print(f"  {name} schema ready.")

    print("Done.")


def drop_databases(domains=None):
    """Drop database schemas for the specified (or all) domains."""
    from shared.db import drop_db

    for name, domain in _get_domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Dropping {name} database schema...")
        drop_db(domain)
        print(f"  {name} schema dropped.")

    print("Done.")


async def declare(settings: MessagingSettings, broker=None):
    broker = broker or build_shared_broker(settings)
    await broker.connect()
    try:
        topology = await declare_topology(broker, build_topology(settings.message_ttl_ms))
    finally:
        await broker.close()

    for exchange in topology.exchanges:
        print(f"  exchange {exchange.name} ({exchange.kind.value})")
    for queue in topology.queues:
        print(f"  queue    {queue.name}")
    print("Done.")
    return topology


async def dlq_depth(settings: MessagingSettings, broker=None) -> dict[str, int]:
    """Print and return the number of messages parked in each dead-letter queue."""
    broker = broker or build_shared_broker(settings)
    await broker.connect()
    depths = {}
    try:
        for queue in build_topology(settings.message_ttl_ms).dead_letter_queues:
            depths[queue] = await broker.queue_depth(queue)
    finally:
        await broker.close()

    for queue, depth in depths.items():
        print(f"  {queue}: {depth}")
    return depths


async def retry_failed(settings: MessagingSettings, dry_run: bool = False):
    from notifications.domain import notifications

    notifications.init()

    from notifications.notification.delivery import NotificationDispatcher
    from notifications.notification.retry import RetrySweeper

    sweeper = RetrySweeper(
        NotificationDispatcher(timeout=settings.delivery_timeout),
        batch_size=settings.sweep_batch_size,
    )
    with notifications.domain_context():
        report = await sweeper.sweep(dry_run=dry_run)

    if dry_run:
        print(f"{report.eligible} notification(s) eligible for retry (dry run, nothing sent).")
    else:
        print(
            f"Retried {report.attempted} of {report.eligible} eligible notification(s): "
            f"{report.sent} sent, {report.failed} failed, {report.skipped} skipped."
        )
    return report


def main():
    parser = argparse.ArgumentParser(description="Bookstream management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create all database tables")
    setup_parser.add_argument(
        "--domain",
        choices=DOMAIN_NAMES,
        nargs="*",
        help="Specific domain(s) to set up (default: all)",
    )

    drop_parser = subparsers.add_parser("drop-db", help="Drop all database tables")
    drop_parser.add_argument(
        "--domain",
        choices=DOMAIN_NAMES,
        nargs="*",
        help="Specific domain(s) to drop (default: all)",
    )

    subparsers.add_parser("declare-topology", help="Declare broker exchanges, queues and bindings")
    subparsers.add_parser("dlq-depth", help="Show how many messages each dead-letter queue holds")

    retry_parser = subparsers.add_parser("retry-failed", help="Re-attempt failed notifications")
    retry_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only count the notifications that would be retried",
    )

    args = parser.parse_args()
    settings = MessagingSettings()

    try:
        if args.command == "setup-db":
            setup_databases(args.domain)
        elif args.command == "drop-db":
            drop_databases(args.domain)
        elif args.command == "declare-topology":
            asyncio.run(declare(settings))
        elif args.command == "dlq-depth":
            asyncio.run(dlq_depth(settings))
        elif args.command == "retry-failed":
            asyncio.run(retry_failed(settings, dry_run=args.dry_run))
        else:
            parser.print_help()
            sys.exit(1)
    except MessagingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
