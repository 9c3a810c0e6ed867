import asyncio
import os

import pytest

from shared.messaging.memory import InMemoryBroker
from shared.messaging.topology import declare_topology


@pytest.fixture(scope="session")
def _notifications_domain(request):
    """Initialize the notifications domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from notifications.domain import notifications

    notifications.init()
    return notifications


@pytest.fixture(scope="session", autouse=True)
def setup_db(_notifications_domain):
    from shared.db import drop_db, setup_db

    setup_db(_notifications_domain)

    yield

    drop_db(_notifications_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_notifications_domain):
    """Push domain context before each test, cleanup after."""
    from notifications.channel import reset_channels

    ctx = _notifications_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    reset_channels()
    ctx.pop()


@pytest.fixture
def email():
    from notifications.channel.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture
def dispatcher(email):
    from notifications.notification.delivery import NotificationDispatcher

    return NotificationDispatcher(sink=email, timeout=1.0)


@pytest.fixture
def broker():
    """A connected in-memory broker with the full topology declared."""
    broker = InMemoryBroker()

    async def _setup():
        await broker.connect()
        await declare_topology(broker)

    asyncio.run(_setup())
    return broker
